"""
Chaos/failure injection testing suite.

Tests client behavior under adverse cluster conditions:
- Tier 1: Network failures (refused/reset connections, timeouts, DNS)
- Tier 2: Topology changes (leader churn, node crashes, stale replicas)
"""
