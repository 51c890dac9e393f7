"""S3/MinIO 客户端管理器

提供统一的 S3 客户端实例管理，避免重复创建连接。
租约客户端通过它获取长期复用的 aioboto3 客户端。
"""

from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING

import aioboto3
from botocore.config import Config
from botocore.exceptions import ClientError
from loguru import logger

from leasecore.common.config import settings
from leasecore.common.exceptions import ConfigurationError

if TYPE_CHECKING:
    from types_aiobotocore_s3 import S3Client


def client_error_status(error: ClientError) -> int | None:
    """从 ClientError 中取出 HTTP 状态码"""
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if status is not None:
        return int(status)
    # head_* 请求没有响应体，错误码即状态码
    code = client_error_code(error)
    if code and code.isdigit():
        return int(code)
    return None


def client_error_code(error: ClientError) -> str | None:
    """从 ClientError 中取出后端错误码"""
    return error.response.get("Error", {}).get("Code")


class S3ClientManager:
    """S3 客户端管理器（单例）

    统一管理 S3 客户端连接，支持：
    - 连接复用
    - 优雅关闭

    配置优先级：
    1. 构造函数参数
    2. S3_* 环境变量
    3. MINIO_* 环境变量
    """

    _instance: S3ClientManager | None = None
    _initialized: bool = False

    def __new__(cls, *args, **kwargs) -> S3ClientManager:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(
        self,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str | None = None,
    ):
        # 避免重复初始化
        if S3ClientManager._initialized:
            return

        self.endpoint_url = endpoint_url or self._get_endpoint_url()
        self.access_key = access_key or os.getenv("S3_ACCESS_KEY") or os.getenv("MINIO_ACCESS_KEY")
        self.secret_key = secret_key or os.getenv("S3_SECRET_KEY") or os.getenv("MINIO_SECRET_KEY")
        self.region = region or os.getenv("S3_REGION", "us-east-1")

        self._session = None
        self._client_cm = None
        self._client: S3Client | None = None
        self._client_lock = asyncio.Lock()

        S3ClientManager._initialized = True

    def _get_endpoint_url(self) -> str | None:
        """获取 S3 端点 URL"""
        url = os.getenv("S3_ENDPOINT_URL")
        if url:
            return url

        # 从 MINIO_ENDPOINT 构建
        endpoint = os.getenv("MINIO_ENDPOINT")
        if endpoint:
            if not endpoint.startswith(("http://", "https://")):
                return f"http://{endpoint}"
            return endpoint

        return None

    @property
    def is_configured(self) -> bool:
        """检查是否已配置 S3"""
        return bool(self.access_key and self.secret_key)

    def _client_config(self) -> Config:
        # 单次请求不在 SDK 内部重试，超时由调用方的截止时间控制
        return Config(
            connect_timeout=settings.S3_CONNECT_TIMEOUT,
            read_timeout=settings.S3_READ_TIMEOUT,
            retries={"max_attempts": 1},
        )

    async def get_client(self) -> S3Client:
        """获取 S3 客户端（长期复用）

        Returns:
            S3 客户端实例

        Raises:
            ConfigurationError: S3 未配置
        """
        if self._client is not None:
            return self._client

        if not self.is_configured:
            raise ConfigurationError("S3 未配置，请设置 S3_ACCESS_KEY 和 S3_SECRET_KEY 环境变量")

        async with self._client_lock:
            if self._client is None:
                session = aioboto3.Session()
                client_cm = session.client(
                    "s3",
                    endpoint_url=self.endpoint_url,
                    aws_access_key_id=self.access_key,
                    aws_secret_access_key=self.secret_key,
                    region_name=self.region,
                    config=self._client_config(),
                )
                self._client = await client_cm.__aenter__()
                self._session = session
                self._client_cm = client_cm
                logger.debug(f"S3 客户端已创建: endpoint={self.endpoint_url}")
        return self._client

    async def close(self) -> None:
        """关闭 S3 客户端连接"""
        if self._client_cm is not None:
            try:
                await self._client_cm.__aexit__(None, None, None)
                logger.debug("S3 客户端已关闭")
            except Exception as e:
                logger.warning(f"关闭 S3 客户端失败: {e}")
            finally:
                self._client = None
                self._client_cm = None
                self._session = None

    async def ensure_bucket(self, bucket: str) -> None:
        """确保 bucket 存在，不存在时创建

        Args:
            bucket: 桶名

        Raises:
            ClientError: 检查或创建失败（桶已存在除外）
        """
        client = await self.get_client()
        try:
            await client.head_bucket(Bucket=bucket)
            return
        except ClientError as e:
            if client_error_status(e) != 404:
                raise

        create_kwargs: dict = {"Bucket": bucket}
        if self.region and self.region != "us-east-1":
            create_kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}

        try:
            await client.create_bucket(**create_kwargs)
            logger.info(f"创建 S3 桶: {bucket}")
        except ClientError as e:
            if client_error_code(e) in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
                logger.debug(f"S3 桶已存在: {bucket}")
                return
            raise

    async def health_check(self) -> bool:
        """健康检查"""
        try:
            client = await self.get_client()
            await client.list_buckets()
            return True
        except Exception as e:
            logger.error(f"S3 健康检查失败: {e}")
            return False

    @classmethod
    def reset(cls) -> None:
        """重置单例实例（用于测试）"""
        if cls._instance is not None:
            cls._instance._client = None
            cls._instance._client_cm = None
            cls._instance._session = None
        cls._instance = None
        cls._initialized = False


# 便捷函数
def get_s3_client_manager() -> S3ClientManager:
    """获取 S3 客户端管理器单例"""
    return S3ClientManager()


def is_s3_configured() -> bool:
    """检查 S3 是否已配置"""
    return get_s3_client_manager().is_configured
