"""
Cluster contract shared by client components.

Provides:
- Endpoint: client-facing address of a cluster node
- Translation of multiaddr cluster addresses into endpoints
- Models of the error bodies returned by cluster nodes
"""

from raft_resilience.cluster.addresses import (
    AddressError,
    Endpoint,
    address_to_endpoint,
    parse_address,
)
from raft_resilience.cluster.types import (
    ClusterError,
    ClusterErrorCode,
    ClusterErrorResponse,
)

__all__ = [
    "AddressError",
    "ClusterError",
    "ClusterErrorCode",
    "ClusterErrorResponse",
    "Endpoint",
    "address_to_endpoint",
    "parse_address",
]
