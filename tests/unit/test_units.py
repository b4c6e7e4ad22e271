"""
代币单位换算测试
"""
from decimal import Decimal

from liquidity_matrix.utils.units import format_amount, to_tokens


class TestUnits:
    """planck ↔ DOT 换算测试"""

    def test_to_tokens_is_exact(self):
        assert to_tokens(1) == Decimal("0.0000000001")
        assert to_tokens(100 * 10**10) == Decimal(100)
        # u128 最大值不丢失精度
        assert str(to_tokens(2**128 - 1)) == "34028236692093846346337460743.1768211455"

    def test_format_amount(self):
        assert format_amount(Decimal(100)) == "100.0000000000"
        assert format_amount(to_tokens(12_345)) == "0.0000012345"
        assert format_amount(Decimal("0.5"), places=2) == "0.50"
