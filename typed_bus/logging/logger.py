"""日志配置模块。

typed_bus 作为库被导入时不主动配置日志：首次调用 get_logger() 时才安装一个
INFO 级别的 stderr 处理器，并替换掉 loguru 自带的 DEBUG 级别处理器，
避免同一条日志输出两次。宿主程序可调用 configure_from_config() 接管全部输出。
"""

import contextlib
import json
import os
import sys
import time
from pathlib import Path
from typing import Any, Callable, Optional

from loguru import logger as loguru_logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan> - <level>{message}</level>"
)
FILE_PREFIX = "typed_bus"
LOGURU_BUILTIN_HANDLER_ID = 0

_CONFIGURED = False
_HANDLER_IDS: list[int] = []
_DEFAULT_HANDLER_ID: int | None = None


def _ensure_default_handler() -> Optional[int]:
    global _DEFAULT_HANDLER_ID
    if _CONFIGURED or _DEFAULT_HANDLER_ID is not None:
        return _DEFAULT_HANDLER_ID

    # 宿主程序可能已经移除了 loguru 自带的处理器
    with contextlib.suppress(ValueError):
        loguru_logger.remove(LOGURU_BUILTIN_HANDLER_ID)
    _DEFAULT_HANDLER_ID = loguru_logger.add(sys.stderr, level="INFO", colorize=True, format=CONSOLE_FORMAT)
    return _DEFAULT_HANDLER_ID


def _options(config: Any) -> dict:
    """LoggingConfig、字典或 None 统一转换为字典"""
    if config is None:
        return {}
    if hasattr(config, "model_dump"):
        return config.model_dump()
    return dict(config)


def _module_filter(modules) -> Optional[Callable[[dict], bool]]:
    """只放行指定模块的日志，WARNING 及以上级别总是放行"""
    if not modules:
        return None
    if callable(modules):
        return modules

    allowed = frozenset(modules)
    threshold = loguru_logger.level("WARNING").no
    return lambda record: record["extra"].get("module", "unknown") in allowed or record["level"].no >= threshold


def _session_stamp(split_by_session: bool) -> str:
    return time.strftime("%Y%m%d_%H%M%S" if split_by_session else "%Y-%m-%d")


def _jsonl_writer(file_path: Path) -> Callable:
    def write(message) -> None:
        record = message.record
        line = json.dumps(
            {
                "timestamp": record["time"].isoformat(),
                "level": record["level"].name,
                "module": record["extra"].get("module", "unknown"),
                "message": record["message"],
            },
            ensure_ascii=False,
        )
        with open(file_path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    return write


def _add_file_handler(options: dict) -> None:
    directory = options.get("directory", "logs")
    level = options.get("level", "INFO")
    split_by_session = options.get("split_by_session", False)

    try:
        os.makedirs(directory, exist_ok=True)
    except OSError as e:
        get_logger("Logging").warning(f"无法创建日志目录 {directory}，仅使用控制台输出: {e}")
        return

    if options.get("format", "jsonl") == "jsonl":
        file_path = Path(directory) / f"{FILE_PREFIX}_{_session_stamp(split_by_session)}.jsonl"
        _HANDLER_IDS.append(loguru_logger.add(_jsonl_writer(file_path), level=level))
        return

    if split_by_session:
        file_name = f"{FILE_PREFIX}_{_session_stamp(True)}.log"
    else:
        # 同一天的多次运行写入同一文件，按 rotation 轮转
        file_name = FILE_PREFIX + "_{time:YYYY-MM-DD}.log"
    _HANDLER_IDS.append(
        loguru_logger.add(
            os.path.join(directory, file_name),
            level=level,
            format=CONSOLE_FORMAT,
            rotation=options.get("rotation", "10 MB"),
            retention=options.get("retention", "7 days"),
            compression=options.get("compression", "zip"),
            encoding="utf-8",
        )
    )


def configure_from_config(config: Any = None) -> None:
    """按配置重建全部日志处理器。

    Args:
        config: LoggingConfig 实例、等价的字典或 None（仅控制台输出）。
            console_level 和 filter 作用于 stderr；enabled 为真时按 format
            写入 jsonl 或 text 文件，其余键见 LoggingConfig。

    可以重复调用，每次都会先移除 loguru 中已有的全部处理器。
    """
    global _CONFIGURED, _DEFAULT_HANDLER_ID

    options = _options(config)
    _CONFIGURED = True
    loguru_logger.remove()
    _DEFAULT_HANDLER_ID = None
    _HANDLER_IDS.clear()

    _HANDLER_IDS.append(
        loguru_logger.add(
            sys.stderr,
            level=options.get("console_level", "INFO"),
            colorize=True,
            format=CONSOLE_FORMAT,
            filter=_module_filter(options.get("filter")),
        )
    )
    if options.get("enabled", False):
        _add_file_handler(options)


def get_logger(module_name: str):
    """返回绑定了 module 字段的 loguru logger，未配置时先安装默认处理器。"""
    _ensure_default_handler()
    return loguru_logger.bind(module=module_name)


__all__ = ["get_logger", "configure_from_config"]
