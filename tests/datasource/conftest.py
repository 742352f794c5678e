import httpx
import pytest
import pytest_asyncio

from tests.helpers import Router


@pytest.fixture
def router():
    return Router()


@pytest_asyncio.fixture
async def http_client(router):
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        yield client
