import asyncio
import sys
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Add the project root to the Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment from .env for all tests (does not override existing env)
load_dotenv(project_root / ".env")


@pytest.fixture(scope="session")
def test_project_root():
    """Provide a test project root path."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def mock_environment(monkeypatch, request):
    """Pin NameMC settings for unit tests.

    Skips tests marked with `integration` so a real .env is honoured there.
    """
    if request.node.get_closest_marker("integration") is not None:
        return

    monkeypatch.setenv("NAMEMC_API_BASE_URL", "https://api.namemc.test")
    for name in ("NAMEMC_PROFILE_TTL", "NAMEMC_SERVER_TTL", "NAMEMC_MAX_CONCURRENCY", "NAMEMC_MAX_ENTRIES", "NAMEMC_COALESCE"):
        monkeypatch.delenv(name, raising=False)


class FakeClock:
    """Manually advanced clock for TTL tests (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualExecutor:
    """Holds submitted fetch tasks until the test runs them, in any order."""

    def __init__(self) -> None:
        self.queued = []

    def submit(self, factory):
        handle = asyncio.get_running_loop().create_future()
        self.queued.append((factory, handle))
        return handle

    @property
    def pending(self) -> int:
        return len(self.queued)

    async def run(self, index: int = 0) -> None:
        factory, handle = self.queued.pop(index)
        await factory()
        handle.set_result(None)
        # let done-callbacks (deliveries) run
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    async def run_all(self) -> None:
        while self.queued:
            await self.run(0)

    async def cancel(self, index: int = 0) -> None:
        _factory, handle = self.queued.pop(index)
        handle.cancel()
        await asyncio.sleep(0)
        await asyncio.sleep(0)


class FakeFetcher:
    """Async fetcher returning queued payloads or raising queued errors."""

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls = []

    async def __call__(self, key):
        self.calls.append(key)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BaseException):
            raise result
        return result


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def executor():
    return ManualExecutor()


@pytest.fixture
def make_fetcher():
    return FakeFetcher
