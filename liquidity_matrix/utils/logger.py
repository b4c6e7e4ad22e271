"""
结构化日志配置

日志统一输出到 stderr，stdout 只用于打印报告文件路径。
每条日志带 component 字段（模块路径去掉包名前缀），便于按模块过滤。
"""
import logging
import sys
from typing import Any

import structlog

PACKAGE_PREFIX = "liquidity_matrix."

# substrate-interface / websocket-client 在 INFO 级别会输出每次RPC请求
_NOISY_LOGGERS = ("substrateinterface", "websocket")


def setup_logging(level: str = "INFO") -> None:
    """
    配置结构化日志

    Args:
        level: DEBUG / INFO / WARNING / ERROR
    """
    numeric_level = getattr(logging, level.upper())

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def component_name(name: str) -> str:
    """liquidity_matrix.tools.liquidity.ladder → tools.liquidity.ladder"""
    if name.startswith(PACKAGE_PREFIX):
        return name[len(PACKAGE_PREFIX):]
    return name


def get_logger(name: str) -> Any:
    """获取带 component 字段的logger实例"""
    return structlog.get_logger(name, component=component_name(name))
