"""
Common 模块

通用功能：
- config: 配置管理
- logging: 日志配置
- exceptions: 异常定义
"""

from leasecore.common.config import settings
from leasecore.common.exceptions import (
    ConfigurationError,
    LeaseAuthorizationError,
    LeaseCoreException,
    LeaseCorruptedError,
    LeaseException,
    LeaseMissingAfterConflictError,
    LeaseRetriesExhaustedError,
    LeaseTimeoutError,
    LeaseUnexpectedStatusError,
)
from leasecore.common.logging import get_logger, setup_logging

__all__ = [
    # config
    "settings",
    # logging
    "setup_logging",
    "get_logger",
    # exceptions
    "ConfigurationError",
    "LeaseAuthorizationError",
    "LeaseCoreException",
    "LeaseCorruptedError",
    "LeaseException",
    "LeaseMissingAfterConflictError",
    "LeaseRetriesExhaustedError",
    "LeaseTimeoutError",
    "LeaseUnexpectedStatusError",
]
