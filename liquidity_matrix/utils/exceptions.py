"""
自定义异常类
"""


class LiquidityMatrixError(Exception):
    """Liquidity Matrix基础异常"""

    pass


class ConfigurationError(LiquidityMatrixError):
    """配置错误"""

    pass


class InputError(LiquidityMatrixError):
    """地址输入错误（文件不可读、输入为空等）"""

    pass


class ChainError(LiquidityMatrixError):
    """链上读取错误基类"""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class ChainConnectionError(ChainError):
    """无法连接RPC节点"""

    pass


class ChainFetchError(ChainError):
    """存储项读取失败（传输层）"""

    pass


class ChainTimeoutError(ChainFetchError):
    """存储项读取超时"""

    pass


class ChainDecodeError(ChainFetchError):
    """存储项解码失败（返回结构与预期不符）"""

    pass


class AddressParseError(LiquidityMatrixError):
    """地址解析错误"""

    def __init__(self, address: str, message: str):
        self.address = address
        self.message = message
        super().__init__(f"Invalid address '{address}': {message}")


class InvariantViolationError(LiquidityMatrixError):
    """锁仓计算不变量被破坏（如 conviction > 6）"""

    pass


class ReportWriteError(LiquidityMatrixError):
    """报告文件写入失败"""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"Failed to write report {path}: {message}")
