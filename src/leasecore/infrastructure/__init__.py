"""
Infrastructure 模块

基础设施适配：
- storage: 对象存储（S3 客户端、租约存储客户端）
"""

from leasecore.infrastructure import storage

__all__ = [
    "storage",
]
