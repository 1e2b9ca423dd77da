"""
Expected value per key.
"""

from collections.abc import Iterable

NEVER_WRITTEN = -1


class ConsistencyTracker:
    """
    Tracks the value each key is expected to hold in the cluster.

    Values start at -1 and are bumped by one before every write, so the
    values written to a key are 0, 1, 2, ... without gaps.
    """

    def __init__(self, keys: Iterable[str]):
        self._values: dict[str, int] = {key: NEVER_WRITTEN for key in keys}
        if not self._values:
            raise ValueError("at least one key is required")

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._values)

    def bump(self, key: str) -> int:
        """Increment the expected value of a key and return the new value."""
        self._values[key] += 1
        return self._values[key]

    def expected_of(self, key: str) -> int:
        return self._values[key]

    def snapshot(self) -> dict[str, int]:
        return dict(self._values)
