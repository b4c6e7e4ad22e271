"""中间件模块"""
from .error_handler import ErrorAggregator, with_retry

__all__ = [
    "with_retry",
    "ErrorAggregator",
]
