"""集中化配置管理。"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["dev", "staging", "prod"] = "dev"

    # 时间线拼接
    near_zero_tolerance_s: float = 0.001  # 边界比较容差：1 毫秒，吸收浮点舍入误差
    min_clip_duration_s: float = 1.0  # 由媒体起止时间算出的片段最短时长

    # JSON 信封
    envelope_include_trace: bool = True  # 错误信封中是否附带调用栈

    # 时间线注册表
    max_timelines: int = 256

    # 日志与可观测性
    log_dir: str = "logs"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    otel_enabled: bool = False
    otel_endpoint: str = "http://localhost:4317"


@lru_cache()
def get_settings() -> AppSettings:
    return AppSettings()


# 便捷别名
settings = get_settings()
