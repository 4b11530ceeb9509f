"""
事件 Payload 基类

结构化 Payload 可继承 BasePayload，获得紧凑的字符串表示，
EventBus 在 debug 日志中使用它描述每次分发的内容。
"""

from typing import Any, List

from pydantic import BaseModel

MAX_TEXT_LENGTH = 50


def summarize(value: Any, limit: int = MAX_TEXT_LENGTH) -> str:
    """
    生成值的简短描述

    字符串加引号并截断，容器只显示元素个数，其余类型使用 str()。
    """
    if isinstance(value, BaseModel):
        return str(value)
    if isinstance(value, str):
        if len(value) > limit:
            return f'"{value[: limit - 3]}..."'
        return f'"{value}"'
    if isinstance(value, dict):
        return f"{{...{len(value)} keys}}" if value else "{}"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"[...{len(value)} items]" if value else "[]"
    text = str(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


class BasePayload(BaseModel):
    """
    事件 Payload 基类

    子类通过覆盖 _debug_fields() 控制在日志中显示哪些字段。

    Example:
        >>> class LoginPayload(BasePayload):
        ...     user: str
        ...     token: str
        ...
        ...     def _debug_fields(self):
        ...         return ["user"]  # 不显示 token
    """

    def _debug_fields(self) -> List[str]:
        """返回需要在日志中显示的字段名列表，默认全部字段"""
        return list(self.__class__.model_fields.keys())

    def __str__(self) -> str:
        parts = [f"{name}={summarize(getattr(self, name))}" for name in self._debug_fields() if hasattr(self, name)]
        return f"{self.__class__.__name__}({', '.join(parts)})"
