"""
Pytest 全局共享 fixtures
"""

from typing import Generator, List

import pytest
from loguru import logger

from typed_bus.events import EventBus


@pytest.fixture
def event_bus() -> EventBus:
    """
    创建干净的 EventBus 实例

    每个测试获得独立的事件总线，避免测试间相互干扰。
    """
    return EventBus()


@pytest.fixture
def typed_bus() -> EventBus:
    """声明了 foo: str / bar: int 的事件总线（宽松模式）"""
    return EventBus(schema={"foo": str, "bar": int})


@pytest.fixture
def log_records() -> Generator[List[dict], None, None]:
    """
    捕获 loguru 日志记录

    Yields:
        list: 每条记录为 {"level", "module", "message"} 字典
    """
    records: List[dict] = []

    def sink(message):
        record = message.record
        records.append(
            {
                "level": record["level"].name,
                "module": record["extra"].get("module"),
                "message": record["message"],
            }
        )

    handler_id = logger.add(sink, level="DEBUG")
    yield records
    logger.remove(handler_id)
