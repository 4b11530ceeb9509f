"""
事件 Schema 注册表

记录事件名到 Payload 类型的映射，并使用 pydantic 在运行时校验 Payload。
"""

from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ConfigDict, PydanticSchemaGenerationError, TypeAdapter

from typed_bus.logging import get_logger


def _build_adapter(payload_type: Any) -> TypeAdapter:
    """
    构造 Payload 类型的 TypeAdapter

    pydantic 无法生成 schema 的普通类（包括嵌套在容器中的）退化为 isinstance 检查。
    BaseModel 等自带配置的类型不允许再传入 config，因此只在首次构造失败时重试。
    """
    try:
        return TypeAdapter(payload_type)
    except PydanticSchemaGenerationError:
        return TypeAdapter(payload_type, config=ConfigDict(arbitrary_types_allowed=True))


class EventRegistry:
    """
    事件 Schema 注册表

    每个 EventBus 持有一个独立的注册表，由总线的所有者在创建时声明。
    Payload 类型可以是 pydantic 能够校验的任意类型（str、int、list[int]、
    BaseModel 子类等）。未声明的事件名不做校验。
    """

    def __init__(self, events: Optional[Mapping[str, Any]] = None):
        self._events: Dict[str, Any] = {}
        self._adapters: Dict[str, TypeAdapter] = {}
        self._logger = get_logger("EventRegistry")
        for event_name, payload_type in (events or {}).items():
            self.register(event_name, payload_type)

    @classmethod
    def from_mapping(cls, schema: Union["EventRegistry", Mapping[str, Any], None]) -> "EventRegistry":
        """从字典或已有注册表构造注册表（已有注册表原样返回）"""
        if isinstance(schema, EventRegistry):
            return schema
        return cls(schema)

    # ==================== 注册 API ====================

    def register(self, event_name: str, payload_type: Any) -> None:
        """
        注册事件的 Payload 类型

        Args:
            event_name: 事件名称
            payload_type: Payload 类型

        已存在且类型相同则跳过；类型不同则覆盖并发出警告。
        """
        existing = self._events.get(event_name)
        if event_name in self._events:
            if existing == payload_type:
                self._logger.debug(f"事件已注册（类型相同，跳过）: {event_name}")
                return
            self._logger.warning(f"事件已注册，将覆盖: {event_name} (旧: {existing!r}, 新: {payload_type!r})")

        self._events[event_name] = payload_type
        self._adapters[event_name] = _build_adapter(payload_type)
        self._logger.debug(f"注册事件: {event_name} -> {payload_type!r}")

    def unregister(self, event_name: str) -> bool:
        """
        移除事件注册

        Returns:
            是否成功移除（False 表示事件未注册）
        """
        if event_name in self._events:
            del self._events[event_name]
            del self._adapters[event_name]
            self._logger.debug(f"移除事件: {event_name}")
            return True
        self._logger.debug(f"尝试移除未注册的事件: {event_name}")
        return False

    # ==================== 查询 API ====================

    def get(self, event_name: str) -> Optional[Any]:
        """获取事件的 Payload 类型，未注册返回 None"""
        return self._events.get(event_name)

    def is_registered(self, event_name: str) -> bool:
        return event_name in self._events

    def list_all_events(self) -> Dict[str, Any]:
        """列出所有注册的事件"""
        return self._events.copy()

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_name: object) -> bool:
        return event_name in self._events

    # ==================== 校验 API ====================

    def validate(self, event_name: str, value: Any) -> None:
        """
        校验 Payload 是否符合事件声明的类型

        使用严格模式，不做类型转换（"123" 不是 int）。

        Raises:
            pydantic.ValidationError: Payload 与声明类型不符
        """
        adapter = self._adapters.get(event_name)
        if adapter is None:
            return
        adapter.validate_python(value, strict=True)
