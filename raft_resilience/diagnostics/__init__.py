"""
Diagnostic log capture for test runs.
"""

from raft_resilience.diagnostics.log_collector import (
    CollectorHandler,
    LogCollector,
    LogRecord,
    LogTransmitter,
    TransmitterHandler,
)

__all__ = [
    "CollectorHandler",
    "LogCollector",
    "LogRecord",
    "LogTransmitter",
    "TransmitterHandler",
]
