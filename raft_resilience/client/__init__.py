"""
Resilience test client.

Provides:
- EndpointSelector: random choice of a live cluster node
- ErrorClassifier: retry decisions for failed requests
- RequestExecutor: put/get operations retried until success or fatal failure
- ConsistencyTracker: expected value per key
"""

from raft_resilience.client.classifier import (
    ErrorClassifier,
    Fatal,
    RedirectAndRetry,
    RetryAfter,
    RetryNow,
)
from raft_resilience.client.errors import (
    ConsistencyViolation,
    ProtocolError,
    ResilienceError,
    SelectionExhausted,
    TransportCode,
    TransportError,
    UnclassifiedFailure,
)
from raft_resilience.client.executor import RequestExecutor
from raft_resilience.client.selector import EndpointSelector
from raft_resilience.client.session import ClusterSession
from raft_resilience.client.tracker import ConsistencyTracker

__all__ = [
    "ClusterSession",
    "ConsistencyTracker",
    "ConsistencyViolation",
    "EndpointSelector",
    "ErrorClassifier",
    "Fatal",
    "ProtocolError",
    "RedirectAndRetry",
    "RequestExecutor",
    "ResilienceError",
    "RetryAfter",
    "RetryNow",
    "SelectionExhausted",
    "TransportCode",
    "TransportError",
    "UnclassifiedFailure",
]
