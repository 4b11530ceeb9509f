"""
typed_bus 事件系统模块

包含 EventBus 事件总线和 EventRegistry 事件 Schema 注册表。
"""

from .event_bus import EventBus, EventStats, Handler, PayloadValidationError, handler_key
from .registry import EventRegistry

__all__ = [
    "EventBus",
    "EventRegistry",
    "EventStats",
    "Handler",
    "PayloadValidationError",
    "handler_key",
]
