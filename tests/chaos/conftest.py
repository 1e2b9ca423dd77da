"""
Chaos testing configuration and shared fixtures.

Provides common fixtures and configuration for chaos/failure injection tests.
"""

import random

import pytest

from tests.chaos.fixtures.fake_cluster import FakeCluster
from tests.fixtures.cluster_fixtures import ADDRESSES


@pytest.fixture(autouse=True)
def seed_random():
    """Seed random for reproducible chaos scenarios."""
    random.seed(42)
    yield
    random.seed()  # Reset after test


@pytest.fixture
def chaos_rng() -> random.Random:
    """Random source shared by client under test and fault injection."""
    return random.Random(42)


@pytest.fixture
def cluster() -> FakeCluster:
    """Three node cluster led by its first node."""
    return FakeCluster(list(ADDRESSES))
