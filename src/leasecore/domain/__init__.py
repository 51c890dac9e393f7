"""
Domain 模块

领域层（无网络 I/O）：
- lease: 租约内容、租约快照与条件写入结果
"""

from leasecore.domain.lease import (
    LEASE_CONTENT_TYPE,
    LeaseBody,
    LeaseLost,
    LeaseResource,
    LeaseUpdateResult,
    LeaseWon,
)

__all__ = [
    "LEASE_CONTENT_TYPE",
    "LeaseBody",
    "LeaseLost",
    "LeaseResource",
    "LeaseUpdateResult",
    "LeaseWon",
]
