"""
Resilience test client for replicated key-value clusters.

Continuously reads and writes values on random cluster nodes while nodes
fail and leaders change, and verifies reads observe the values written.
"""

__version__ = "0.4.0"

from raft_resilience.config import Settings, get_settings
from raft_resilience.runtime.orchestrator import ResilienceOrchestrator

__all__ = ["__version__", "ResilienceOrchestrator", "Settings", "get_settings"]
