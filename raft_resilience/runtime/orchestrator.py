"""
Resilience run orchestration.

A run has three phases:
- Warm-up: write an initial value for every key, one after another
- Steady state: random puts and gets on random keys, one at a time
- Wind-down: after each operation, stop once the configured duration elapsed

Any fatal error ends the run immediately.
"""

import asyncio
import random
import time
from collections.abc import Callable, Sequence
from typing import Any

from raft_resilience.client.classifier import ErrorClassifier
from raft_resilience.client.executor import RequestExecutor, Sleep
from raft_resilience.client.selector import EndpointSelector, LivenessOracle, always_live
from raft_resilience.client.session import ClusterSession
from raft_resilience.client.tracker import ConsistencyTracker
from raft_resilience.cluster.addresses import address_to_endpoint
from raft_resilience.config import Settings, get_settings
from raft_resilience.logging import clear_run_id, get_logger, set_run_id
from raft_resilience.runtime.run_context import (
    RunReport,
    RunState,
    RunStats,
    generate_run_id,
)

logger = get_logger(__name__)

OperationCallback = Callable[["ResilienceOrchestrator"], None]


class ResilienceOrchestrator:
    """
    Runs one bounded-duration resilience test against a cluster.

    Operations are strictly serialized; run several orchestrators side by side
    to simulate concurrent clients.
    """

    def __init__(
        self,
        addresses: Sequence[Any],
        settings: Settings | None = None,
        *,
        is_live: LivenessOracle = always_live,
        rng: random.Random | None = None,
        session: ClusterSession | None = None,
        on_operation: OperationCallback | None = None,
        on_operation_started: OperationCallback | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        run_id: str | None = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            addresses: Cluster addresses of all nodes
            settings: Run settings (defaults to environment settings)
            is_live: Predicate telling whether a cluster address is reachable
            rng: Random source for keys, operations and endpoints
            session: HTTP session; created and closed by the run if omitted
            on_operation: Called after every completed steady-state operation
            on_operation_started: Called before every steady-state operation
            sleep: Coroutine used for every delay
            clock: Monotonic clock in seconds
            run_id: Identifier used in logs and reports
        """
        self._settings = settings or get_settings()
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock
        self._on_operation = on_operation
        self._on_operation_started = on_operation_started

        self._owns_session = session is None
        self._session = session or ClusterSession(timeout=self._settings.request_timeout_s)

        self.run_id = run_id or generate_run_id()
        self.created = clock()
        self.state = RunState.PENDING
        self.error: BaseException | None = None
        self.stats = RunStats()

        self.addresses = tuple(addresses)
        self.endpoints = tuple(
            address_to_endpoint(
                address,
                host_override=self._settings.host_override,
                port_offset=self._settings.port_offset,
            )
            for address in self.addresses
        )
        self.keys = tuple(self._settings.keys)

        self.tracker = ConsistencyTracker(self.keys)
        self.selector = EndpointSelector(
            self.addresses,
            self.endpoints,
            is_live=is_live,
            rng=self._rng,
            attempts=self._settings.selection_attempts,
        )
        self.classifier = ErrorClassifier(
            is_live=is_live,
            host_override=self._settings.host_override,
            port_offset=self._settings.port_offset,
            transport_retry_delay_ms=self._settings.transport_retry_delay_ms,
            refused_retry_delay_ms=self._settings.refused_retry_delay_ms,
        )
        self.executor = RequestExecutor(
            self._session,
            self.selector,
            self.classifier,
            self.tracker,
            logger,
            second_chance_delay_ms=self._settings.second_chance_delay_ms,
            sleep=sleep,
        )

    @property
    def elapsed_ms(self) -> int:
        return int((self._clock() - self.created) * 1000)

    @property
    def duration_elapsed(self) -> bool:
        return self.elapsed_ms >= self._settings.duration_ms

    async def run(self) -> RunReport:
        """
        Run warm-up and steady state until the duration has elapsed.

        Returns:
            Report of the completed run

        Raises:
            ResilienceError: First fatal error of any operation
        """
        set_run_id(self.run_id)
        logger.info(
            "Starting resilience run against %d endpoints: %s",
            len(self.endpoints),
            self._settings.get_redacted_config(),
        )

        try:
            self.state = RunState.WARMING_UP
            await self._warm_up()

            self.state = RunState.RUNNING
            while True:
                await self._work_once()
                if self.duration_elapsed:
                    break

            self.state = RunState.COMPLETED
            logger.info(
                "Resilience run completed: %d operations in %dms",
                self.stats.operations_completed,
                self.elapsed_ms,
            )
            return self.report()

        except Exception as e:
            self.state = RunState.FAILED
            self.error = e
            logger.error(
                "Resilience run failed after %d operations: %s",
                self.stats.operations_completed,
                e,
            )
            raise

        finally:
            if self._owns_session:
                await self._session.close()
            clear_run_id()

    def report(self) -> RunReport:
        """Build a report of the current run state."""
        return RunReport(
            run_id=self.run_id,
            state=self.state,
            stats=self.stats,
            elapsed_ms=self.elapsed_ms,
            expected_values=self.tracker.snapshot(),
            retry_stats=self.executor.stats,
            request_stats=self._session.metrics,
            error=str(self.error) if self.error is not None else None,
        )

    async def make_one_request(self) -> int:
        """Put or get (equally likely) a randomly chosen key."""
        key = self._rng.choice(self.keys)
        if self._rng.random() > 0.5:
            return await self.executor.put(key)
        return await self.executor.get(key)

    async def _warm_up(self) -> None:
        """Write initial values sequentially in fixed key order."""
        for key in self.keys:
            await self.executor.put(key)

        logger.debug("Warm-up wrote %d keys", len(self.keys))
        await self._sleep(self._settings.warmup_settle_ms / 1000)

    async def _work_once(self) -> None:
        self.stats.operations_started += 1
        if self._on_operation_started is not None:
            self._on_operation_started(self)

        await self.make_one_request()

        self.stats.operations_completed += 1
        if self._on_operation is not None:
            self._on_operation(self)
