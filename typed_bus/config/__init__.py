"""
typed_bus 配置模块
"""

from .loader import ConfigError, load_settings, parse_settings
from .schemas import BusSettings, EventBusConfig, LoggingConfig

__all__ = [
    "BusSettings",
    "ConfigError",
    "EventBusConfig",
    "LoggingConfig",
    "load_settings",
    "parse_settings",
]
