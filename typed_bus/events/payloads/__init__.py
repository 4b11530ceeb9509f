"""
事件 Payload 定义
"""

from .base import BasePayload, summarize

__all__ = [
    "BasePayload",
    "summarize",
]
