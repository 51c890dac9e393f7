"""S3 租约存储客户端

把一个命名租约保存为对象存储中的一个对象，依靠后端的条件写入
（If-None-Match / If-Match）保证同一版本只有一个写入者成功：

- read_or_create_lease: 读取租约，不存在时创建无人持有的租约
- update_lease: 以版本号为前提条件覆盖租约，返回 LeaseWon 或 LeaseLost
- get_lease / lease_exists: 读取与存在性检查
- remove_lease: 幂等删除

每次调用都是一次到后端的往返，进程内只缓存"桶已就绪"标记。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import NoReturn

from botocore.exceptions import ClientError, ConnectTimeoutError, ReadTimeoutError
from loguru import logger
from pydantic import ValidationError

from leasecore.common.config import settings
from leasecore.common.exceptions import (
    ConfigurationError,
    LeaseAuthorizationError,
    LeaseCorruptedError,
    LeaseMissingAfterConflictError,
    LeaseRetriesExhaustedError,
    LeaseTimeoutError,
    LeaseUnexpectedStatusError,
)
from leasecore.domain.lease import (
    LEASE_CONTENT_TYPE,
    LeaseBody,
    LeaseLost,
    LeaseResource,
    LeaseUpdateResult,
    LeaseWon,
)
from leasecore.infrastructure.storage.s3_client import (
    S3ClientManager,
    client_error_code,
    client_error_status,
    get_s3_client_manager,
)

# 条件写入失败：412 版本不匹配，409 并发条件写入冲突
CONFLICT_STATUSES = frozenset({409, 412})
UNAUTHORIZED_STATUSES = frozenset({401, 403})
NOT_FOUND_STATUS = 404

_TIMEOUT_ERRORS = (TimeoutError, ConnectTimeoutError, ReadTimeoutError)


class LeaseStorageClient:
    """基于 S3 条件写入的租约存储客户端

    同一实例可被多个协程并发使用，跨进程的互斥完全由后端的条件写入保证。
    """

    def __init__(
        self,
        bucket: str | None = None,
        request_timeout: float | None = None,
        max_create_tries: int | None = None,
        client_manager: S3ClientManager | None = None,
    ):
        """初始化租约客户端

        Args:
            bucket: 存放租约对象的桶，默认 settings.LEASE_BUCKET
            request_timeout: 单次操作的截止时间（秒），默认 settings.LEASE_API_REQUEST_TIMEOUT
            max_create_tries: read_or_create_lease 的最大尝试次数，
                默认 settings.LEASE_READ_OR_CREATE_MAX_TRIES
            client_manager: S3 客户端管理器，默认使用全局单例
        """
        self.bucket = bucket if bucket is not None else settings.LEASE_BUCKET
        self.request_timeout = (
            request_timeout if request_timeout is not None else settings.LEASE_API_REQUEST_TIMEOUT
        )
        self.max_create_tries = (
            max_create_tries
            if max_create_tries is not None
            else settings.LEASE_READ_OR_CREATE_MAX_TRIES
        )

        if not self.bucket or not self.bucket.strip():
            raise ConfigurationError("租约桶名不能为空")
        if self.request_timeout <= 0:
            raise ConfigurationError(f"请求超时必须大于 0: {self.request_timeout}")
        if self.max_create_tries < 1:
            raise ConfigurationError(f"最大尝试次数必须至少为 1: {self.max_create_tries}")

        self._owns_manager = client_manager is not None
        self._client_manager = client_manager or get_s3_client_manager()
        self._bucket_ready = False
        self._bucket_lock = asyncio.Lock()

    async def __aenter__(self) -> "LeaseStorageClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """关闭底层 S3 客户端

        全局单例管理器由所有租约客户端共享，只有显式传入的管理器才在这里关闭；
        单例由应用在退出时通过 get_s3_client_manager().close() 关闭。
        """
        if not self._owns_manager:
            logger.debug("租约客户端使用共享的 S3 客户端管理器，跳过关闭")
            return
        await self._client_manager.close()

    async def _get_client(self, name: str, operation: str):
        """获取 S3 客户端，首次使用时确保桶存在

        桶初始化失败一律按致命错误处理，不会被当作租约冲突或不存在。
        """
        try:
            client = await self._client_manager.get_client()
            if not self._bucket_ready:
                async with self._bucket_lock:
                    if not self._bucket_ready:
                        await self._client_manager.ensure_bucket(self.bucket)
                        self._bucket_ready = True
                        logger.debug(f"租约桶已就绪: {self.bucket}")
        except ClientError as e:
            logger.error(f"租约桶初始化失败: bucket={self.bucket}, code={client_error_code(e)}")
            self._raise_for_error(e, name, operation)
        return client

    @asynccontextmanager
    async def _deadline(self, name: str, operation: str, outcome_unknown: bool) -> AsyncIterator[None]:
        """为一次后端往返施加截止时间，超时转换为 LeaseTimeoutError"""
        try:
            async with asyncio.timeout(self.request_timeout):
                yield
        except _TIMEOUT_ERRORS as e:
            logger.warning(
                f"租约操作超时: lease={name}, operation={operation}, "
                f"timeout={self.request_timeout}s, outcome_unknown={outcome_unknown}"
            )
            raise LeaseTimeoutError(name, operation, outcome_unknown=outcome_unknown) from e

    @staticmethod
    def _raise_for_error(error: ClientError, name: str, operation: str) -> NoReturn:
        """把非预期的后端错误转换为致命异常"""
        status = client_error_status(error)
        code = client_error_code(error)
        if status in UNAUTHORIZED_STATUSES:
            raise LeaseAuthorizationError(name, operation, status, code) from error
        raise LeaseUnexpectedStatusError(name, operation, status, code) from error

    async def read_or_create_lease(self, name: str) -> LeaseResource:
        """读取租约，不存在时创建一个无人持有的租约

        存在性检查与创建之间与其他节点存在竞争，创建失败（别人先创建）时
        重新读取，最多尝试 max_create_tries 次。

        Raises:
            LeaseRetriesExhaustedError: 尝试次数耗尽
        """
        for attempt in range(1, self.max_create_tries + 1):
            if await self.lease_exists(name):
                resource = await self.get_lease(name)
                if resource is not None:
                    logger.debug(f"租约 {name} 已存在: {resource}")
                    return resource
                logger.debug(f"租约 {name} 在读取前被删除，尝试创建")
            else:
                logger.info(f"租约 {name} 不存在，开始创建")

            resource = await self._create_lease(name)
            if resource is not None:
                return resource

            logger.debug(f"第 {attempt}/{self.max_create_tries} 次尝试未能读取或创建租约 {name}")

        logger.warning(f"读取或创建租约 {name} 失败，已尝试 {self.max_create_tries} 次")
        raise LeaseRetriesExhaustedError(name, self.max_create_tries)

    async def update_lease(
        self,
        name: str,
        owner: str,
        version: str,
        time: datetime | None = None,
    ) -> LeaseUpdateResult:
        """以版本号为前提条件更新租约

        Args:
            name: 租约名称
            owner: 新的持有者，空字符串表示释放
            version: 调用方读到的版本号（ETag）
            time: 写入时间，仅供调用方判断租约是否过期

        Returns:
            LeaseWon: 写入成功，携带新版本的租约
            LeaseLost: 版本已变化，携带后端当前的租约

        Raises:
            LeaseMissingAfterConflictError: 冲突后重新读取不到租约
            LeaseTimeoutError: 超时，outcome_unknown=True
        """
        body = LeaseBody(owner=owner, time=time)
        logger.debug(f"更新租约 {name}: {body}")

        resource = await self._put_lease(name, body, "update", IfMatch=version)
        if resource is not None:
            logger.debug(f"租约更新成功: {resource}")
            return LeaseWon(resource)

        current = await self.get_lease(name)
        if current is None:
            raise LeaseMissingAfterConflictError(name, owner)

        logger.debug(f"租约更新冲突，当前租约: {current}")
        return LeaseLost(current)

    async def _create_lease(self, name: str) -> LeaseResource | None:
        """创建无人持有的租约，已存在时返回 None"""
        resource = await self._put_lease(name, LeaseBody(), "create", IfNoneMatch="*")
        if resource is None:
            logger.debug(f"租约 {name} 已被其他节点创建，将重新读取")
            return None

        logger.debug(f"租约已创建: {resource}")
        return resource

    async def _put_lease(
        self,
        name: str,
        body: LeaseBody,
        operation: str,
        **conditions: str,
    ) -> LeaseResource | None:
        """条件写入租约对象，前提条件不满足时返回 None"""
        async with self._deadline(name, operation, outcome_unknown=True):
            client = await self._get_client(name, operation)
            try:
                response = await client.put_object(
                    Bucket=self.bucket,
                    Key=name,
                    Body=body.to_bytes(),
                    ContentType=LEASE_CONTENT_TYPE,
                    **conditions,
                )
            except ClientError as e:
                if client_error_status(e) in CONFLICT_STATUSES:
                    logger.debug(
                        f"租约条件写入未满足: lease={name}, operation={operation}, "
                        f"code={client_error_code(e)}"
                    )
                    return None
                self._raise_for_error(e, name, operation)

        return LeaseResource(body=body, version=response["ETag"])

    async def get_lease(self, name: str) -> LeaseResource | None:
        """读取租约，不存在时返回 None

        Raises:
            LeaseCorruptedError: 租约内容无法解析
        """
        async with self._deadline(name, "get", outcome_unknown=False):
            client = await self._get_client(name, "get")
            try:
                response = await client.get_object(Bucket=self.bucket, Key=name)
                async with response["Body"] as stream:
                    payload = await stream.read()
            except ClientError as e:
                if client_error_status(e) == NOT_FOUND_STATUS:
                    logger.debug(f"租约不存在: {name}")
                    return None
                self._raise_for_error(e, name, "get")

        try:
            body = LeaseBody.from_bytes(payload)
        except ValidationError as e:
            raise LeaseCorruptedError(name, payload) from e

        resource = LeaseResource(body=body, version=response["ETag"])
        logger.debug(f"读取租约 {name}: {resource}")
        return resource

    async def lease_exists(self, name: str) -> bool:
        """检查租约对象是否存在"""
        async with self._deadline(name, "exists", outcome_unknown=False):
            client = await self._get_client(name, "exists")
            try:
                await client.head_object(Bucket=self.bucket, Key=name)
                return True
            except ClientError as e:
                if client_error_status(e) == NOT_FOUND_STATUS:
                    return False
                self._raise_for_error(e, name, "exists")

    async def remove_lease(self, name: str) -> None:
        """删除租约，不存在视为成功

        Raises:
            LeaseTimeoutError: 超时，outcome_unknown=True，删除可能已生效
        """
        async with self._deadline(name, "remove", outcome_unknown=True):
            client = await self._get_client(name, "remove")
            try:
                await client.delete_object(Bucket=self.bucket, Key=name)
            except ClientError as e:
                if client_error_status(e) == NOT_FOUND_STATUS:
                    logger.debug(f"租约不存在，无需删除: {name}")
                    return
                self._raise_for_error(e, name, "remove")

        logger.debug(f"租约已删除: {name}")
