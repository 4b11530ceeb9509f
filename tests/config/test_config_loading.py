"""
配置加载测试

测试 TOML 配置文件的读取、Schema 校验，以及从配置创建 EventBus。
"""

import tomllib

import pytest

from typed_bus.config import BusSettings, ConfigError, EventBusConfig, LoggingConfig, load_settings, parse_settings
from typed_bus.events import EventBus, PayloadValidationError


@pytest.fixture
def config_file(tmp_path):
    def write(content: str):
        path = tmp_path / "config.toml"
        path.write_text(content, encoding="utf-8")
        return path

    return write


def test_missing_file_returns_defaults(tmp_path):
    settings = load_settings(tmp_path / "absent.toml")

    assert settings == BusSettings()
    assert settings.event_bus.enable_stats is True
    assert settings.event_bus.strict is False
    assert settings.logging.enabled is False


def test_load_sections(config_file):
    path = config_file(
        """
[event_bus]
strict = true
enable_stats = false

[logging]
format = "text"
level = "DEBUG"
filter = ["EventBus"]

[unrelated]
value = 1
"""
    )

    settings = load_settings(path)

    assert settings.event_bus == EventBusConfig(strict=True, enable_stats=False)
    assert settings.logging.format == "text"
    assert settings.logging.level == "DEBUG"
    assert settings.logging.filter == ["EventBus"]


def test_load_accepts_str_path(config_file):
    path = config_file("[event_bus]\nerror_isolate = true\n")
    assert load_settings(str(path)).event_bus.error_isolate is True


def test_malformed_toml_raises_config_error(config_file):
    path = config_file("[event_bus\nstrict = ")

    with pytest.raises(ConfigError) as exc_info:
        load_settings(path)

    assert isinstance(exc_info.value.__cause__, tomllib.TOMLDecodeError)


def test_schema_violation_raises_config_error(config_file):
    path = config_file('[logging]\nformat = "xml"\n')

    with pytest.raises(ConfigError):
        load_settings(path)


def test_parse_settings_ignores_unknown_sections():
    settings = parse_settings({"general": {"name": "x"}, "event_bus": {"strict": True}})
    assert settings.event_bus.strict is True
    assert settings.logging == LoggingConfig()


def test_generated_template_matches_defaults():
    data = tomllib.loads(BusSettings.generate_toml())
    assert parse_settings(data) == BusSettings()


def test_event_bus_from_settings():
    settings = BusSettings(event_bus=EventBusConfig(strict=True, enable_stats=False, error_isolate=True))
    bus = EventBus.from_settings(settings, schema={"bar": int})

    assert bus.strict is True
    assert bus.enable_stats is False
    assert bus.error_isolate is True
    with pytest.raises(PayloadValidationError):
        bus.emit("bar", "oops")
