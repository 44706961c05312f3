"""Shared test fixtures for the shellgate test suite."""
import pytest

from shellgate.commands.gate import PolicyConfiguration
from shellgate.core.session import create_session
from shellgate.utils.logging import logger


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def quiet_debug_logging():
    logger.set_debug(False)
    yield
    logger.set_debug(False)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(tmp_path):
    """Permissive session rooted in a temporary project directory."""
    (tmp_path / "src").mkdir()
    return create_session(policy=PolicyConfiguration(), target_dir=tmp_path)


class ScriptedHandler:
    """Confirmation handler that resolves requests with answers in order."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.seen = []

    async def __call__(self, details):
        self.seen.append(details)
        details.confirm(self.answers.pop(0))


@pytest.fixture
def scripted_handler():
    return ScriptedHandler
