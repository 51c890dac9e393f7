"""
Storage 模块

对象存储：
- s3_client: S3 客户端管理器（公共）
- lease_client: 基于条件写入的租约存储客户端
"""

from leasecore.infrastructure.storage.lease_client import LeaseStorageClient
from leasecore.infrastructure.storage.s3_client import (
    S3ClientManager,
    client_error_code,
    client_error_status,
    get_s3_client_manager,
    is_s3_configured,
)

__all__ = [
    # S3 客户端管理器
    "S3ClientManager",
    "get_s3_client_manager",
    "is_s3_configured",
    "client_error_code",
    "client_error_status",
    # 租约
    "LeaseStorageClient",
]
