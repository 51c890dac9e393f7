import pytest_asyncio

from leasecore.infrastructure.storage.s3_client import S3ClientManager, get_s3_client_manager


@pytest_asyncio.fixture(autouse=True)
async def close_s3_client_manager():
    yield
    await get_s3_client_manager().close()
    S3ClientManager.reset()
