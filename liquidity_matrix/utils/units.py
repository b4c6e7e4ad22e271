"""
代币单位换算

链上金额均为 base units（planck）整数，1 DOT = 10^10 planck。
换算使用 Decimal，保证比例本身不被舍入。
"""
from decimal import Decimal, localcontext

PLANCKS_PER_TOKEN = 10**10
AMOUNT_PLACES = 10

# u128 最多 39 位，60 位精度足以精确表示任意 u128 / 10^decimals
_PRECISION = 60


def to_tokens(base_units: int, decimals: int = AMOUNT_PLACES) -> Decimal:
    """base units → tokens（精确）"""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(int(base_units)) / (Decimal(10) ** decimals)


def format_amount(amount: Decimal, places: int = AMOUNT_PLACES) -> str:
    """格式化为固定小数位字符串，如 100.0000000000"""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return f"{amount:.{places}f}"
