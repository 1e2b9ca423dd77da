"""
Runtime infrastructure for resilience runs.
"""

from raft_resilience.runtime.orchestrator import ResilienceOrchestrator
from raft_resilience.runtime.run_context import RunReport, RunState, RunStats, generate_run_id

__all__ = [
    "ResilienceOrchestrator",
    "RunReport",
    "RunState",
    "RunStats",
    "generate_run_id",
]
