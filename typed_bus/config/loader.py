"""TOML 配置加载"""

import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from typed_bus.config.schemas import BusSettings
from typed_bus.logging import get_logger

logger = get_logger("ConfigLoader")

DEFAULT_CONFIG_FILE = "config.toml"


class ConfigError(Exception):
    """配置文件无法解析或不符合 Schema"""


def read_toml(file_path: Union[str, Path]) -> Dict[str, Any]:
    """使用 tomllib 读取 TOML 文件"""
    with open(file_path, "rb") as f:
        return tomllib.load(f)


def parse_settings(data: Dict[str, Any]) -> BusSettings:
    """
    将配置字典转换为 BusSettings

    只读取 [event_bus] 和 [logging] 两个 section，其余 section 忽略。

    Raises:
        ConfigError: 配置不符合 Schema
    """
    sections = {key: data[key] for key in ("event_bus", "logging") if key in data}
    try:
        return BusSettings.model_validate(sections)
    except ValidationError as e:
        raise ConfigError(f"配置校验失败: {e.error_count()} 个错误\n{e}") from e


def load_settings(path: Optional[Union[str, Path]] = None) -> BusSettings:
    """
    加载配置文件

    Args:
        path: 配置文件路径，默认为当前目录下的 config.toml

    Returns:
        BusSettings；文件不存在时返回默认配置

    Raises:
        ConfigError: TOML 格式错误或配置不符合 Schema
    """
    config_path = Path(path) if path is not None else Path(DEFAULT_CONFIG_FILE)
    if not config_path.exists():
        logger.info(f"配置文件不存在，使用默认配置: {config_path}")
        return BusSettings()

    try:
        data = read_toml(config_path)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"配置文件格式错误 ({config_path}): {e}") from e

    settings = parse_settings(data)
    logger.debug(f"已加载配置文件: {config_path}")
    return settings
