"""
配置 Schema

定义事件总线和日志系统的配置结构。
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class LoggingConfig(BaseModel):
    """日志配置"""

    enabled: bool = Field(default=False, description="启用文件日志")
    format: Literal["jsonl", "text"] = Field(
        default="jsonl", description="日志格式：jsonl（每行一个JSON对象）或 text（纯文本）"
    )
    directory: str = Field(default="logs", description="日志目录")
    level: str = Field(default="INFO", description="文件日志级别（DEBUG, INFO, WARNING, ERROR, CRITICAL）")
    console_level: str = Field(default="INFO", description="控制台日志级别")
    rotation: str = Field(default="10 MB", description="日志轮转触发条件（如 '10 MB', '1 GB'），仅 text 格式")
    retention: str = Field(default="7 days", description="日志保留时间（如 '7 days', '1 month'），仅 text 格式")
    compression: str = Field(default="zip", description="压缩格式（zip, gz, tar, tar.gz），仅 text 格式")
    split_by_session: bool = Field(default=False, description="是否按会话分割日志文件")
    filter: Optional[List[str]] = Field(default=None, description="控制台只显示这些模块的日志（WARNING 及以上总是显示）")


class EventBusConfig(BaseModel):
    """事件总线配置"""

    enable_stats: bool = Field(default=True, description="是否启用统计功能")
    strict: bool = Field(default=False, description="Payload 不符合声明类型时抛出异常（否则仅警告）")
    error_isolate: bool = Field(default=False, description="emit 默认是否隔离处理器异常")


class BusSettings(BaseModel):
    """完整配置，对应配置文件的各个 section"""

    event_bus: EventBusConfig = Field(default_factory=EventBusConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def generate_toml(cls) -> str:
        """生成 TOML 配置模板"""
        return """# 事件总线配置
[event_bus]
# 是否启用统计功能
enable_stats = true
# Payload 不符合声明类型时抛出异常（false 时仅记录警告）
strict = false
# emit 默认是否隔离处理器异常（false 时第一个异常中断分发并传播给调用者）
error_isolate = false

# 日志配置
[logging]
# 启用文件日志
enabled = false
# 日志格式：jsonl（每行一个JSON对象）或 text（纯文本）
format = "jsonl"
# 日志目录
directory = "logs"
# 文件日志级别（DEBUG, INFO, WARNING, ERROR, CRITICAL）
level = "INFO"
# 控制台日志级别
console_level = "INFO"
# 日志轮转触发条件（仅 text 格式）
rotation = "10 MB"
# 日志保留时间（仅 text 格式）
retention = "7 days"
# 压缩格式（仅 text 格式）
compression = "zip"
# 是否按会话分割日志文件
split_by_session = false
"""
