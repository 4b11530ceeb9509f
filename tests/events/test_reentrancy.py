"""
快照分发与重入测试

处理器在分发过程中修改订阅，只影响之后的发布。
"""

import threading

from typed_bus.events import EventBus


def test_subscribe_during_emit_applies_to_next_emit():
    """测试分发中新增的处理器不参与本次分发"""
    bus = EventBus()
    calls = []

    def late(value):
        calls.append(("late", value))

    def registering(value):
        calls.append(("registering", value))
        bus.on("foo", late)

    bus.on("foo", registering)

    bus.emit("foo", 1)
    assert calls == [("registering", 1)]

    bus.emit("foo", 2)
    assert calls == [("registering", 1), ("registering", 2), ("late", 2)]


def test_unsubscribe_pending_handler_during_emit():
    """测试分发中移除尚未调用的处理器，本次仍会调用，之后不再调用"""
    bus = EventBus()
    calls = []

    def second(value):
        calls.append(("second", value))

    def first(value):
        calls.append(("first", value))
        bus.off("foo", second)

    bus.on("foo", first)
    bus.on("foo", second)

    bus.emit("foo", 1)
    assert calls == [("first", 1), ("second", 1)]

    bus.emit("foo", 2)
    assert calls == [("first", 1), ("second", 1), ("first", 2)]


def test_clear_all_during_emit_finishes_snapshot():
    """测试分发中清除全部监听器，本次快照仍完整执行"""
    bus = EventBus()
    calls = []

    def clearing(value):
        calls.append("clearing")
        bus.off()

    bus.on("foo", clearing)
    bus.on("foo", lambda v: calls.append("after"))

    bus.emit("foo", None)
    bus.emit("foo", None)

    assert calls == ["clearing", "after"]


def test_handler_unsubscribes_itself():
    """测试一次性处理器：调用时取消自身订阅"""
    bus = EventBus()
    calls = []

    def once(value):
        calls.append(value)
        bus.off("foo", once)

    bus.on("foo", once)
    bus.emit("foo", "a")
    bus.emit("foo", "b")

    assert calls == ["a"]
    assert not bus.has_listeners("foo")


def test_nested_emit_from_handler():
    """测试处理器内部发布其他事件（同步嵌套调用）"""
    bus = EventBus()
    order = []

    def on_bar(value):
        order.append(("bar", value))

    def on_foo(value):
        order.append(("foo:start", value))
        bus.emit("bar", value * 2)
        order.append(("foo:end", value))

    bus.on("foo", on_foo)
    bus.on("bar", on_bar)
    bus.emit("foo", 21)

    assert order == [("foo:start", 21), ("bar", 42), ("foo:end", 21)]


def test_concurrent_subscribe_keeps_every_handler():
    """测试多线程并发订阅不会丢失注册"""
    bus = EventBus()
    received = []
    lock = threading.Lock()
    barrier = threading.Barrier(8)

    def make_handler(i):
        def handler(value):
            with lock:
                received.append(i)

        return handler

    handlers = [make_handler(i) for i in range(200)]

    def worker(chunk):
        barrier.wait()
        for handler in chunk:
            bus.on("foo", handler)

    threads = [threading.Thread(target=worker, args=(handlers[i::8],)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    bus.emit("foo", None)

    assert bus.get_listeners_count("foo") == 200
    assert sorted(received) == list(range(200))
