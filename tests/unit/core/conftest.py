"""
租约单元测试公共夹具

FakeS3Client 在内存中模拟 S3 的条件写入语义，错误以真实的
botocore ClientError 抛出。
"""

import asyncio
import uuid

import pytest
from botocore.exceptions import ClientError

from leasecore.infrastructure.storage.lease_client import LeaseStorageClient
from leasecore.infrastructure.storage.s3_client import S3ClientManager


def make_client_error(status: int, code: str, operation: str = "PutObject") -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class FakeBody:
    """模拟 get_object 返回的 StreamingBody"""

    def __init__(self, data: bytes):
        self._data = data

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def read(self) -> bytes:
        return self._data


class FakeS3Client:
    """内存版 S3 客户端

    - failures: 操作名 -> 要抛出的异常
    - delays: 操作名 -> 响应前等待的秒数
    - calls: 按顺序记录的操作名
    """

    def __init__(self):
        self.buckets: set[str] = set()
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[str] = []

    def fail(self, operation: str, status: int, code: str) -> None:
        self.failures[operation] = make_client_error(status, code, operation)

    def put_raw(self, bucket: str, key: str, data: bytes) -> str:
        etag = f'"{uuid.uuid4().hex}"'
        self.objects[(bucket, key)] = (data, etag)
        return etag

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        # 让出事件循环，使并发请求交错执行
        await asyncio.sleep(self.delays.get(operation, 0))
        error = self.failures.get(operation)
        if error is not None:
            raise error

    async def head_bucket(self, Bucket: str):
        await self._enter("head_bucket")
        if Bucket not in self.buckets:
            raise make_client_error(404, "404", "HeadBucket")
        return {}

    async def create_bucket(self, Bucket: str, **kwargs):
        await self._enter("create_bucket")
        if Bucket in self.buckets:
            raise make_client_error(409, "BucketAlreadyOwnedByYou", "CreateBucket")
        self.buckets.add(Bucket)
        return {}

    async def list_buckets(self):
        await self._enter("list_buckets")
        return {"Buckets": [{"Name": name} for name in sorted(self.buckets)]}

    async def head_object(self, Bucket: str, Key: str):
        await self._enter("head_object")
        current = self.objects.get((Bucket, Key))
        if current is None:
            raise make_client_error(404, "404", "HeadObject")
        return {"ETag": current[1], "ContentLength": len(current[0])}

    async def get_object(self, Bucket: str, Key: str):
        await self._enter("get_object")
        current = self.objects.get((Bucket, Key))
        if current is None:
            raise make_client_error(404, "NoSuchKey", "GetObject")
        return {"Body": FakeBody(current[0]), "ETag": current[1]}

    async def put_object(
        self,
        Bucket: str,
        Key: str,
        Body: bytes,
        ContentType: str | None = None,
        IfMatch: str | None = None,
        IfNoneMatch: str | None = None,
    ):
        await self._enter("put_object")
        current = self.objects.get((Bucket, Key))
        if IfNoneMatch == "*" and current is not None:
            raise make_client_error(412, "PreconditionFailed", "PutObject")
        if IfMatch is not None:
            if current is None:
                raise make_client_error(404, "NoSuchKey", "PutObject")
            if current[1] != IfMatch:
                raise make_client_error(412, "PreconditionFailed", "PutObject")
        return {"ETag": self.put_raw(Bucket, Key, bytes(Body))}

    async def delete_object(self, Bucket: str, Key: str):
        await self._enter("delete_object")
        self.objects.pop((Bucket, Key), None)
        return {}


@pytest.fixture
def fake_s3():
    return FakeS3Client()


@pytest.fixture
def s3_manager(fake_s3):
    """使用内存客户端的 S3ClientManager"""
    S3ClientManager.reset()
    manager = S3ClientManager(
        endpoint_url="http://fake-s3:9000",
        access_key="test-access",
        secret_key="test-secret",
        region="us-east-1",
    )
    manager._client = fake_s3
    yield manager
    S3ClientManager.reset()


@pytest.fixture
def lease_client(s3_manager):
    return LeaseStorageClient(
        bucket="leases",
        request_timeout=0.5,
        max_create_tries=5,
        client_manager=s3_manager,
    )
