"""
同步事件总线实现

核心契约:
- on(name, handler): 订阅，同一处理器重复订阅无效果（按引用去重）
- emit(name, value): 先复制处理器快照，再按注册顺序同步调用
- off() / off(name) / off(name, handler): 清空全部 / 清空同名事件 / 移除指定处理器

附加功能:
- 运行时 Payload 校验（基于 EventRegistry 声明的类型）
- 统计功能(emit 次数、监听器数量、错误次数、执行时间)
- 可选的错误隔离(单个 handler 异常不影响其他)

使用示例:
    bus = EventBus(schema={"foo": str, "bar": int})

    def on_foo(value: str) -> None:
        print(value)

    bus.on("foo", on_foo)
    bus.emit("foo", "hello")
    bus.off("foo", on_foo)
"""

import copy
import inspect
import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Hashable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from typed_bus.events.payloads import summarize
from typed_bus.events.registry import EventRegistry
from typed_bus.logging import get_logger

if TYPE_CHECKING:
    from typed_bus.config.schemas import BusSettings

Handler = Callable[[Any], None]


class PayloadValidationError(TypeError):
    """严格模式下 Payload 与事件声明类型不符"""

    def __init__(self, event_name: str, error: ValidationError):
        self.event_name = event_name
        self.validation_error = error
        super().__init__(f"事件 {event_name} 的 Payload 不符合声明类型 ({error.error_count()} 个错误): {error}")


@dataclass
class EventStats:
    """
    事件统计信息

    Attributes:
        emit_count: 发布次数（没有监听器的发布不计入）
        listener_count: 最近一次发布时的监听器数量
        error_count: 处理器异常次数
        last_emit_time: 最后发布时间(Unix时间戳,秒)
        last_error_time: 最后错误时间(Unix时间戳,秒)
        total_execution_time_ms: 总执行时间(毫秒)
    """

    emit_count: int = 0
    listener_count: int = 0
    error_count: int = 0
    last_emit_time: float = 0
    last_error_time: float = 0
    total_execution_time_ms: float = 0


def handler_key(handler: Handler) -> Hashable:
    """
    计算处理器的身份键

    普通函数、lambda 和可调用对象按对象身份区分；绑定方法每次访问都会生成
    新对象，因此按 (实例, 函数) 的身份区分。不调用处理器自身的 __eq__/__hash__。
    """
    if inspect.ismethod(handler):
        return (id(handler.__self__), id(handler.__func__))
    owner = getattr(handler, "__self__", None)
    if inspect.isbuiltin(handler) and owner is not None and not inspect.ismodule(owner):
        return (id(owner), handler.__name__)
    return id(handler)


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class EventBus:
    """
    同步事件总线

    所有操作都在调用者线程上同步完成。内部映射由 RLock 保护，
    处理器在锁外调用，因此处理器内部可以再次订阅、取消订阅或发布。
    """

    def __init__(
        self,
        schema: Union[EventRegistry, Mapping[str, Any], None] = None,
        enable_stats: bool = True,
        strict: bool = False,
        error_isolate: bool = False,
    ):
        """
        初始化事件总线

        Args:
            schema: 事件名到 Payload 类型的映射（或 EventRegistry）
            enable_stats: 是否启用统计功能
            strict: Payload 不符合声明类型时是否抛出 PayloadValidationError（否则仅警告）
            error_isolate: emit 的默认错误隔离策略
        """
        # 每个事件名对应一个按插入顺序排列、按身份去重的处理器表
        self._handlers: Dict[str, Dict[Hashable, Handler]] = {}
        self._stats: Dict[str, EventStats] = defaultdict(EventStats)
        self._lock = threading.RLock()
        self.schema = EventRegistry.from_mapping(schema)
        self.enable_stats = enable_stats
        self.strict = strict
        self.error_isolate = error_isolate
        self.logger = get_logger("EventBus")
        self.logger.debug(
            f"EventBus 初始化完成 (schema={len(self.schema)} 个事件, stats={enable_stats}, strict={strict})"
        )

    @classmethod
    def from_settings(
        cls, settings: "BusSettings", schema: Union[EventRegistry, Mapping[str, Any], None] = None
    ) -> "EventBus":
        """根据 BusSettings 中的 [event_bus] 配置创建事件总线"""
        options = settings.event_bus
        return cls(
            schema=schema,
            enable_stats=options.enable_stats,
            strict=options.strict,
            error_isolate=options.error_isolate,
        )

    # ==================== 订阅 ====================

    def on(self, event_name: str, handler: Handler) -> None:
        """
        订阅事件

        Args:
            event_name: 事件名称
            handler: 接收一个 Payload 参数的处理器

        同一处理器对同一事件重复订阅不会产生第二条记录，也保持原有顺序。

        Raises:
            TypeError: handler 不可调用
        """
        if not callable(handler):
            raise TypeError(f"EventBus.on() 要求 handler 可调用，收到类型: {type(handler).__name__}")

        key = handler_key(handler)
        with self._lock:
            handlers = self._handlers.setdefault(event_name, {})
            if key in handlers:
                self.logger.debug(f"处理器已订阅，跳过: {event_name} -> {_handler_name(handler)}")
                return
            handlers[key] = handler
        self.logger.debug(f"注册事件监听器: {event_name} -> {_handler_name(handler)}")

    # ==================== 发布 ====================

    def emit(self, event_name: str, value: Any, error_isolate: Optional[bool] = None) -> None:
        """
        发布事件

        Args:
            event_name: 事件名称
            value: Payload，类型应与事件声明的类型一致
            error_isolate: 错误隔离策略（None 表示使用总线默认值）
                - False: 第一个异常传播到调用者，快照中剩余的处理器不再调用
                - True: 异常被记录，继续调用剩余的处理器

        处理器在调用前先被复制为快照，处理器内部对本事件的订阅变更只影响之后的发布。

        Raises:
            PayloadValidationError: 严格模式下 Payload 不符合声明类型
            Exception: error_isolate=False 时处理器抛出的异常
        """
        if error_isolate is None:
            error_isolate = self.error_isolate

        self._check_payload(event_name, value)

        with self._lock:
            handlers = self._handlers.get(event_name)
            snapshot: Tuple[Handler, ...] = tuple(handlers.values()) if handlers else ()
            if snapshot and self.enable_stats:
                stats = self._stats[event_name]
                stats.emit_count += 1
                stats.last_emit_time = time.time()
                stats.listener_count = len(snapshot)

        if not snapshot:
            self.logger.debug(f"事件 {event_name} 没有监听器")
            return

        # 只有 DEBUG 日志实际输出时才生成 Payload 描述
        self.logger.opt(lazy=True).debug(
            "[{}] 分发给 {} 个监听器: {}", lambda: event_name, lambda: len(snapshot), lambda: summarize(value)
        )

        start_time = time.perf_counter()
        try:
            for handler in snapshot:
                try:
                    handler(value)
                except Exception as e:
                    self._record_error(event_name)
                    if not error_isolate:
                        self.logger.error(
                            f"事件处理器执行错误，中断本次分发 (事件: {event_name}, 处理器: {_handler_name(handler)}): {e}"
                        )
                        raise
                    self.logger.opt(exception=e).error(
                        f"事件处理器执行错误 (事件: {event_name}, 处理器: {_handler_name(handler)}): {e}"
                    )
        finally:
            if self.enable_stats:
                execution_time = (time.perf_counter() - start_time) * 1000
                with self._lock:
                    # 分发期间统计可能已被 reset_stats() 清除
                    stats = self._stats.get(event_name)
                    if stats is not None:
                        stats.total_execution_time_ms += execution_time

    def _check_payload(self, event_name: str, value: Any) -> None:
        """
        校验 Payload

        策略：
        - 未声明事件：不校验
        - 已声明事件：严格模式抛出异常，否则仅警告，不阻断分发
        """
        if not self.schema.is_registered(event_name):
            return
        try:
            self.schema.validate(event_name, value)
        except ValidationError as e:
            if self.strict:
                raise PayloadValidationError(event_name, e) from e
            self.logger.warning(
                f"事件 Payload 不符合声明类型 ({event_name}, 期望: {self.schema.get(event_name)!r}, "
                f"收到: {type(value).__name__}): {e.error_count()} 个错误"
            )
            for error in e.errors():
                self.logger.debug(f"  - {error['loc']}: {error['msg']}")

    def _record_error(self, event_name: str) -> None:
        if not self.enable_stats:
            return
        with self._lock:
            stats = self._stats[event_name]
            stats.error_count += 1
            stats.last_error_time = time.time()

    # ==================== 取消订阅 ====================

    def off(self, event_name: Optional[str] = None, handler: Optional[Handler] = None) -> None:
        """
        取消订阅

        按参数是否提供（而非参数的真假值）区分三种用法:
        - off(): 清除所有事件的所有处理器
        - off(event_name): 清除该事件的所有处理器
        - off(event_name, handler): 只移除指定处理器

        未订阅的事件或处理器静默忽略。
        """
        if event_name is None:
            if handler is not None:
                self.logger.warning(f"off() 未指定事件名，忽略处理器 {_handler_name(handler)} 并清除所有监听器")
            with self._lock:
                count = len(self._handlers)
                self._handlers.clear()
            self.logger.debug(f"已清除所有事件监听器 ({count} 个事件)")
            return

        if handler is None:
            with self._lock:
                removed = self._handlers.pop(event_name, None)
            if removed:
                self.logger.debug(f"已清除事件监听器: {event_name} ({len(removed)} 个)")
            return

        with self._lock:
            handlers = self._handlers.get(event_name)
            if not handlers:
                return
            removed_handler = handlers.pop(handler_key(handler), None)
            # 该事件没有监听器后删除条目
            if not handlers:
                del self._handlers[event_name]
        if removed_handler is not None:
            self.logger.debug(f"移除事件监听器: {event_name} -> {_handler_name(handler)}")

    def clear(self) -> None:
        """清除所有事件监听器和统计信息"""
        self.off()
        self.reset_stats()
        self.logger.info("已清除所有事件监听器和统计信息")

    subscribe = on
    publish = emit
    unsubscribe = off

    # ==================== 查询 ====================

    def get_listeners_count(self, event_name: str) -> int:
        with self._lock:
            return len(self._handlers.get(event_name, ()))

    def has_listeners(self, event_name: str) -> bool:
        return self.get_listeners_count(event_name) > 0

    def listeners(self, event_name: str) -> Tuple[Handler, ...]:
        """按注册顺序返回该事件处理器的快照"""
        with self._lock:
            return tuple(self._handlers.get(event_name, {}).values())

    def list_events(self) -> List[str]:
        """列出所有有监听器的事件"""
        with self._lock:
            return [name for name, handlers in self._handlers.items() if handlers]

    # ==================== 统计 ====================

    def get_stats(self, event_name: str) -> Optional[EventStats]:
        """
        获取事件统计信息

        Returns:
            统计信息的拷贝；未启用统计或没有记录时返回 None
        """
        if not self.enable_stats:
            return None
        with self._lock:
            stats = self._stats.get(event_name)
            return copy.copy(stats) if stats is not None else None

    def get_all_stats(self) -> Dict[str, EventStats]:
        if not self.enable_stats:
            return {}
        with self._lock:
            return {name: copy.copy(stats) for name, stats in self._stats.items()}

    def reset_stats(self, event_name: Optional[str] = None) -> None:
        """
        重置统计信息

        Args:
            event_name: 事件名称，为 None 时重置所有
        """
        with self._lock:
            if event_name is None:
                self._stats.clear()
            else:
                self._stats.pop(event_name, None)
