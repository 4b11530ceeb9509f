"""
typed_bus 日志模块

提供基于 loguru 的日志记录功能。
"""

from .logger import configure_from_config, get_logger

__all__ = [
    "configure_from_config",
    "get_logger",
]
