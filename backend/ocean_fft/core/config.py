"""
全局配置。

集中管理进程级参数，可通过 OCEAN_FFT_ 前缀的环境变量覆盖：
- 默认工作线程数
- 暂停时的轮询间隔
- 日志级别
"""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置。"""

    model_config = SettingsConfigDict(env_prefix="OCEAN_FFT_")

    app_name: str = "Ocean FFT Backend"
    worker_count: int = Field(
        default=min(8, os.cpu_count() or 1), ge=1, description="默认工作线程数"
    )
    paused_poll_interval: float = Field(
        default=0.1, gt=0, description="暂停时检查控制状态的间隔（秒）"
    )
    log_level: str = Field(default="INFO", description="ocean_fft 日志级别")


settings = Settings()
