"""
Run bookkeeping: identifiers, states, statistics and reports.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4


def generate_run_id(prefix: str = "resilience") -> str:
    """
    Generate a unique run ID.

    Format: {prefix}_{timestamp}_{uuid8}
    Example: resilience_20240115_143022_a1b2c3d4
    """
    timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    short_uuid = uuid4().hex[:8]
    return f"{prefix}_{timestamp}_{short_uuid}"


class RunState(str, Enum):
    """Lifecycle of a resilience run."""

    PENDING = "pending"
    WARMING_UP = "warming_up"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunStats:
    """Operation counters; observability only."""

    operations_started: int = 0
    operations_completed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "operations_started": self.operations_started,
            "operations_completed": self.operations_completed,
        }


@dataclass
class RunReport:
    """Outcome of a resilience run."""

    run_id: str
    state: RunState
    stats: RunStats
    elapsed_ms: int
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    expected_values: dict[str, int] = field(default_factory=dict)
    retry_stats: dict[str, int] = field(default_factory=dict)
    request_stats: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.state == RunState.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "passed": self.passed,
            "created_at": self.created_at.isoformat(),
            "elapsed_ms": self.elapsed_ms,
            "stats": self.stats.to_dict(),
            "retry_stats": self.retry_stats,
            "requests": self.request_stats,
            "expected_values": self.expected_values,
            "error": self.error,
        }
