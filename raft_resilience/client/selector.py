"""
Random endpoint selection honoring a liveness oracle.
"""

import random
from collections.abc import Callable, Sequence
from typing import Any

from raft_resilience.client.errors import SelectionExhausted
from raft_resilience.cluster.addresses import Endpoint

DEFAULT_SELECTION_ATTEMPTS = 100

LivenessOracle = Callable[[Any], bool]


def always_live(address: Any) -> bool:
    """Default liveness oracle considering every node reachable."""
    return True


class EndpointSelector:
    """
    Picks a random endpoint whose cluster address is considered live.

    Selection is a bounded number of independent random draws rather than an
    exhaustive search. Nothing is remembered between calls.
    """

    def __init__(
        self,
        addresses: Sequence[Any],
        endpoints: Sequence[Endpoint],
        is_live: LivenessOracle = always_live,
        rng: random.Random | None = None,
        attempts: int = DEFAULT_SELECTION_ATTEMPTS,
    ) -> None:
        """
        Initialize selector.

        Args:
            addresses: Cluster addresses of all nodes
            endpoints: Endpoints derived from addresses, index-aligned
            is_live: Predicate called with a cluster address
            rng: Random source (injectable for deterministic tests)
            attempts: Number of draws before giving up
        """
        if len(addresses) != len(endpoints):
            raise ValueError("addresses and endpoints must be index-aligned")
        if not endpoints:
            raise ValueError("at least one endpoint is required")

        self._addresses = tuple(addresses)
        self._endpoints = tuple(endpoints)
        self._is_live = is_live
        self._rng = rng or random.Random()
        self._attempts = attempts

    @property
    def endpoints(self) -> tuple[Endpoint, ...]:
        return self._endpoints

    def pick(self) -> Endpoint:
        """
        Pick an endpoint of a live node.

        Raises:
            SelectionExhausted: If every draw hit a node reported as not live
        """
        indexes: list[int] = []
        for _ in range(self._attempts):
            index = self._rng.randrange(len(self._endpoints))
            indexes.append(index)

            if self._is_live(self._addresses[index]):
                return self._endpoints[index]

        raise SelectionExhausted(indexes)
