"""
typed_bus - 进程内同步发布/订阅事件总线
"""

from typed_bus.events import EventBus, EventRegistry, EventStats, PayloadValidationError

__version__ = "0.1.0"

__all__ = [
    "EventBus",
    "EventRegistry",
    "EventStats",
    "PayloadValidationError",
]
