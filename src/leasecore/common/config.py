"""应用配置模块

提供统一的配置管理，支持环境变量和 .env 文件。
"""

import os
from functools import cached_property
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_root() -> Path:
    """查找项目根目录（包含 .env 文件的目录，或最顶层的 pyproject.toml）"""
    current = Path(__file__).resolve()

    # 首先尝试找包含 .env 的目录
    for parent in current.parents:
        if (parent / ".env").exists():
            return parent

    root = None
    for parent in current.parents:
        if (parent / "pyproject.toml").exists():
            root = parent

    if root:
        return root

    # 最后回退到当前工作目录
    return Path.cwd()


class Settings(BaseSettings):
    """应用配置类"""

    # === 日志配置 ===
    LOG_LEVEL: str = Field(default="INFO")
    LOG_TO_FILE: bool = Field(default=False)
    LOG_DIR: str = Field(default="")

    # === 租约配置 ===
    LEASE_BUCKET: str = Field(default="coordination-lease")
    LEASE_API_REQUEST_TIMEOUT: float = Field(default=2.0)
    LEASE_READ_OR_CREATE_MAX_TRIES: int = Field(default=5)

    # === S3 传输配置 ===
    S3_CONNECT_TIMEOUT: float = Field(default=5.0)
    S3_READ_TIMEOUT: float = Field(default=10.0)

    # === 路径配置 ===
    BASE_DIR: str = Field(default_factory=lambda: str(_find_project_root()))

    @cached_property
    def data_dir(self) -> str:
        """数据目录"""
        return os.path.join(self.BASE_DIR, "data")

    @cached_property
    def LOG_FILE_PATH(self) -> str:
        log_dir = self.LOG_DIR or os.path.join(self.data_dir, "logs")
        return os.path.join(log_dir, "lease.log")

    model_config = SettingsConfigDict(
        env_file=str(_find_project_root() / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_lease_config(self) -> "Settings":
        """验证租约配置：超时与重试次数必须为正数"""
        if self.LEASE_API_REQUEST_TIMEOUT <= 0:
            raise ValueError("LEASE_API_REQUEST_TIMEOUT 必须大于 0")
        if self.LEASE_READ_OR_CREATE_MAX_TRIES < 1:
            raise ValueError("LEASE_READ_OR_CREATE_MAX_TRIES 必须至少为 1")
        if not self.LEASE_BUCKET.strip():
            raise ValueError("LEASE_BUCKET 不能为空")
        return self


# 全局配置实例
settings = Settings()
