import pytest
from loguru import logger

from tests.helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def log_messages():
    """Capture loguru output for assertions."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(str(message)))
    yield messages
    logger.remove(handler_id)
