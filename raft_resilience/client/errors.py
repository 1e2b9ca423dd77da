"""
Errors raised while driving operations against the cluster.
"""

from enum import Enum

from raft_resilience.cluster.addresses import Endpoint


class ResilienceError(Exception):
    """Base class of all errors raised by the resilience client."""

    pass


class SelectionExhausted(ResilienceError):
    """Raised when no live endpoint was found after the bounded random search."""

    def __init__(self, indexes: list[int]):
        super().__init__(f"RNG issue? failed picking endpoint: {indexes}")
        self.indexes = indexes


class ProtocolError(ResilienceError):
    """Recognized cluster-level signal requiring a redirect or retry."""

    def __init__(
        self,
        message: str,
        status_code: int,
        code: str | None = None,
        payload: str = "",
        leader: Endpoint | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.payload = payload
        self.leader = leader


class TransportCode(str, Enum):
    """Connection-level failure kinds."""

    CONNECTION_REFUSED = "ECONNREFUSED"
    CONNECTION_RESET = "ECONNRESET"
    TIMED_OUT = "ETIMEDOUT"
    OTHER = "EOTHER"


class TransportError(ResilienceError):
    """Request never completed due to a connection-level failure."""

    def __init__(self, message: str, code: TransportCode, endpoint: Endpoint | None = None):
        super().__init__(message)
        self.code = code
        self.endpoint = endpoint


class ConsistencyViolation(ResilienceError):
    """Read did not match the expected value, even after a second chance."""

    def __init__(self, endpoint: Endpoint, key: str, expected: int, actual: int | float):
        super().__init__(
            f"GETting from {endpoint} for key {key}: expected {expected}, got {actual}"
        )
        self.endpoint = endpoint
        self.key = key
        self.expected = expected
        self.actual = actual


class UnclassifiedFailure(ResilienceError):
    """Response or condition not matching any known failure pattern."""

    def __init__(self, status_code: int, payload: str, endpoint: Endpoint | None = None):
        super().__init__(f"response status code was {status_code}, response: {payload}")
        self.status_code = status_code
        self.payload = payload
        self.endpoint = endpoint
