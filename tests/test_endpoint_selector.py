"""
Tests for random endpoint selection.
"""

import random

import pytest

from raft_resilience.client.errors import SelectionExhausted
from raft_resilience.client.selector import EndpointSelector
from raft_resilience.cluster.addresses import address_to_endpoint
from tests.fixtures.cluster_fixtures import ADDRESSES


def make_selector(is_live=lambda address: True, rng: random.Random | None = None) -> EndpointSelector:
    endpoints = [address_to_endpoint(a) for a in ADDRESSES]
    return EndpointSelector(ADDRESSES, endpoints, is_live=is_live, rng=rng or random.Random(7))


class TestEndpointSelector:
    """Tests for EndpointSelector.pick()."""

    def test_picks_known_endpoint(self) -> None:
        selector = make_selector()

        for _ in range(20):
            assert selector.pick() in selector.endpoints

    def test_covers_all_endpoints(self) -> None:
        selector = make_selector()

        picked = {selector.pick().port for _ in range(200)}

        assert picked == {9192, 9194, 9196}

    def test_oracle_receives_cluster_addresses(self) -> None:
        seen: list[str] = []

        def is_live(address: str) -> bool:
            seen.append(address)
            return True

        make_selector(is_live).pick()

        assert seen and all(address in ADDRESSES for address in seen)

    def test_skips_dead_nodes(self) -> None:
        selector = make_selector(lambda address: address == ADDRESSES[2])

        for _ in range(20):
            assert selector.pick().port == 9196

    def test_exhausted_after_exactly_100_draws(self) -> None:
        calls = 0

        def never_live(address: str) -> bool:
            nonlocal calls
            calls += 1
            return False

        selector = make_selector(never_live)

        with pytest.raises(SelectionExhausted) as exc_info:
            selector.pick()

        assert calls == 100
        assert len(exc_info.value.indexes) == 100
        assert all(0 <= i < len(ADDRESSES) for i in exc_info.value.indexes)

    def test_deterministic_with_seeded_rng(self) -> None:
        a = make_selector(rng=random.Random(99))
        b = make_selector(rng=random.Random(99))

        assert [a.pick() for _ in range(10)] == [b.pick() for _ in range(10)]

    def test_rejects_misaligned_lists(self) -> None:
        with pytest.raises(ValueError):
            EndpointSelector(ADDRESSES, [address_to_endpoint(ADDRESSES[0])])

    def test_rejects_empty_cluster(self) -> None:
        with pytest.raises(ValueError):
            EndpointSelector([], [])
