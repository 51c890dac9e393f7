"""
leasecore 异常模块

租约协议的致命错误分类。冲突（LeaseLost）与不存在（None）属于正常分支，
不在此处定义。
"""

from __future__ import annotations

# =============================================================================
# 基础异常类
# =============================================================================


class LeaseCoreException(Exception):
    """leasecore 异常基类"""

    def __init__(self, message: str, error_code: str | None = None):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ConfigurationError(LeaseCoreException):
    """配置错误异常"""

    def __init__(self, message: str):
        super().__init__(message, error_code="CONFIGURATION_ERROR")


# =============================================================================
# 租约异常
# =============================================================================


class LeaseException(LeaseCoreException):
    """租约错误基类

    Attributes:
        lease_name: 租约名称
        operation: 出错的操作（exists/get/create/update/remove）
    """

    def __init__(
        self,
        message: str,
        lease_name: str,
        operation: str,
        error_code: str | None = "LEASE_ERROR",
    ):
        self.lease_name = lease_name
        self.operation = operation
        super().__init__(message, error_code=error_code)


class LeaseAuthorizationError(LeaseException):
    """无权访问对象存储（401/403）"""

    def __init__(
        self,
        lease_name: str,
        operation: str,
        status: int,
        backend_code: str | None = None,
    ):
        self.status = status
        self.backend_code = backend_code
        reason = "Forbidden" if status == 403 else "Unauthorized"
        super().__init__(
            f"{reason}: 无权访问对象存储，操作 {operation} 租约 {lease_name} 失败。"
            f"原因: [{backend_code}]",
            lease_name=lease_name,
            operation=operation,
            error_code="LEASE_UNAUTHORIZED",
        )


class LeaseUnexpectedStatusError(LeaseException):
    """对象存储返回了非预期的状态码"""

    def __init__(
        self,
        lease_name: str,
        operation: str,
        status: int | None,
        backend_code: str | None = None,
    ):
        self.status = status
        self.backend_code = backend_code
        super().__init__(
            f"操作 {operation} 租约 {lease_name} 时对象存储返回非预期状态。"
            f"状态码: [{status}: {backend_code}]",
            lease_name=lease_name,
            operation=operation,
            error_code="LEASE_UNEXPECTED_STATUS",
        )


class LeaseTimeoutError(LeaseException):
    """租约操作超时

    outcome_unknown 为 True 时，写操作可能已在服务端生效，
    调用方不能假定写入没有发生。
    """

    def __init__(self, lease_name: str, operation: str, outcome_unknown: bool):
        self.outcome_unknown = outcome_unknown
        message = f"操作 {operation} 租约 {lease_name} 超时"
        if outcome_unknown:
            message += "，无法确定该操作是否已生效"
        super().__init__(
            message,
            lease_name=lease_name,
            operation=operation,
            error_code="LEASE_TIMEOUT",
        )


class LeaseRetriesExhaustedError(LeaseException):
    """读取或创建租约的尝试次数耗尽"""

    def __init__(self, lease_name: str, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"尝试 {attempts} 次后仍无法读取或创建租约 {lease_name}",
            lease_name=lease_name,
            operation="read_or_create",
            error_code="LEASE_RETRIES_EXHAUSTED",
        )


class LeaseCorruptedError(LeaseException):
    """存储的租约内容无法解析"""

    def __init__(self, lease_name: str, payload: bytes):
        self.payload = payload
        preview = payload[:200].decode("utf-8", errors="replace")
        super().__init__(
            f"无法解析租约 {lease_name} 的内容: [{preview}]",
            lease_name=lease_name,
            operation="get",
            error_code="LEASE_CORRUPTED",
        )


class LeaseMissingAfterConflictError(LeaseException):
    """写入冲突后重新读取却没有找到租约"""

    def __init__(self, lease_name: str, owner: str):
        self.owner = owner
        super().__init__(
            f"写入冲突后读取租约未返回结果。Lease[{lease_name}-{owner}]",
            lease_name=lease_name,
            operation="update",
            error_code="LEASE_MISSING_AFTER_CONFLICT",
        )
