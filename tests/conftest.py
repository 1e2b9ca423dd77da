"""
Pytest configuration and shared fixtures.
"""

import random
from collections.abc import AsyncGenerator

import pytest

from raft_resilience.client.session import ClusterSession
from raft_resilience.config import Settings, get_settings
from tests.fixtures.cluster_fixtures import RecordingSleep


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure local run settings don't leak into tests."""
    for var in (
        "DEBUG_LOG_SERVER_NAME",
        "DEBUG_LOG_SERVER_PORT",
        "DEBUG_LOG_BUFFER",
        "RESILIENCE_DURATION_MS",
        "RESILIENCE_KEYS",
        "RESILIENCE_HOST_OVERRIDE",
        "RESILIENCE_PORT_OFFSET",
    ):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings for a short run over three keys."""
    return Settings(keys=["a", "b", "c"], duration_ms=0)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
async def session() -> AsyncGenerator[ClusterSession, None]:
    async with ClusterSession(timeout=1.0) as s:
        yield s
