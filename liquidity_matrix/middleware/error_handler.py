"""
错误处理中间件

提供链上读取的错误处理：
- 指数退避重试
- 单次运行内的错误聚合（按账户、按存储项统计）
"""
import asyncio
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from liquidity_matrix.utils.exceptions import ChainDecodeError, ChainTimeoutError
from liquidity_matrix.utils.logger import get_logger

logger = get_logger(__name__)


def with_retry(
    max_attempts: int = 3,
    backoff_base: float = 2.0,
    max_backoff: float = 30.0,
    retry_exceptions: tuple = (ChainTimeoutError,),
    no_retry_exceptions: tuple = (ChainDecodeError,),
):
    """
    重试装饰器（支持指数退避，仅用于 async 函数）

    Args:
        max_attempts: 最大尝试次数
        backoff_base: 退避基数（每次重试延迟 = backoff_base ^ (attempt - 1)）
        max_backoff: 最大退避时间（秒）
        retry_exceptions: 需要重试的异常类型
        no_retry_exceptions: 不重试的异常类型（直接抛出）

    Example:
        @with_retry(max_attempts=3, backoff_base=2.0)
        async def query_storage():
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            last_exception = None

            for attempt in range(1, max_attempts + 1):
                try:
                    result = await func(*args, **kwargs)
                    if attempt > 1:
                        logger.info(
                            "retry_success",
                            function=func.__name__,
                            attempt=attempt,
                        )
                    return result

                except no_retry_exceptions as e:
                    logger.warning(
                        "no_retry_exception",
                        function=func.__name__,
                        exception=type(e).__name__,
                        message=str(e),
                    )
                    raise

                except retry_exceptions as e:
                    last_exception = e
                    if attempt < max_attempts:
                        backoff = min(
                            backoff_base ** (attempt - 1),
                            max_backoff,
                        )
                        logger.warning(
                            "retry_attempt",
                            function=func.__name__,
                            attempt=attempt,
                            max_attempts=max_attempts,
                            exception=type(e).__name__,
                            backoff_seconds=backoff,
                        )
                        await asyncio.sleep(backoff)
                    else:
                        logger.error(
                            "retry_exhausted",
                            function=func.__name__,
                            attempts=max_attempts,
                            exception=type(e).__name__,
                        )

            # 所有重试都失败
            if last_exception:
                raise last_exception

        return async_wrapper

    return decorator


class ErrorAggregator:
    """
    错误聚合器

    收集一次运行中所有被容忍的读取失败，运行结束时输出摘要
    """

    def __init__(self):
        self._errors: List[Dict[str, Any]] = []

    def record_error(
        self,
        account: str,
        item: str,
        exception: Exception,
        key: Optional[str] = None,
    ):
        """
        记录错误

        Args:
            account: 账户地址
            item: 存储项名称，如 convictionVoting.votingFor
            exception: 异常对象
            key: 附加键（track、referendum id 等）
        """
        self._errors.append(
            {
                "timestamp": datetime.now(timezone.utc),
                "account": account,
                "item": item,
                "key": key,
                "exception_type": type(exception).__name__,
                "message": str(exception),
            }
        )

    @property
    def errors(self) -> List[Dict[str, Any]]:
        return list(self._errors)

    def errors_for(self, account: str) -> List[Dict[str, Any]]:
        """获取指定账户的错误记录"""
        return [e for e in self._errors if e["account"] == account]

    def get_error_summary(self) -> Dict[str, Any]:
        """获取错误摘要"""
        item_counts: Dict[str, int] = {}
        exception_counts: Dict[str, int] = {}
        accounts = set()

        for error in self._errors:
            item_counts[error["item"]] = item_counts.get(error["item"], 0) + 1
            exception_type = error["exception_type"]
            exception_counts[exception_type] = exception_counts.get(exception_type, 0) + 1
            accounts.add(error["account"])

        return {
            "total_errors": len(self._errors),
            "accounts_affected": len(accounts),
            "errors_by_item": item_counts,
            "errors_by_type": exception_counts,
        }

    def clear(self):
        """清空记录"""
        self._errors.clear()
