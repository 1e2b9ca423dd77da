"""
Tier 2: Leader churn, node crashes and stale replicas.

Tests that a resilience run keeps verifying consistency while the cluster's
topology changes underneath it.
"""

import random

import httpx
import pytest
from respx import MockRouter

from raft_resilience.client.errors import ConsistencyViolation, SelectionExhausted
from raft_resilience.cluster.addresses import Endpoint
from raft_resilience.config import Settings
from raft_resilience.runtime.orchestrator import ResilienceOrchestrator
from raft_resilience.runtime.run_context import RunState
from tests.chaos.fixtures.fake_cluster import FakeCluster
from tests.chaos.fixtures.network_chaos import cluster_error
from tests.fixtures.cluster_fixtures import ADDRESSES, RecordingSleep, TickingClock


def orchestrate(
    cluster: FakeCluster,
    settings: Settings,
    sleep: RecordingSleep,
    duration_ms: int = 100,
    **kwargs,
) -> ResilienceOrchestrator:
    return ResilienceOrchestrator(
        ADDRESSES,
        settings.model_copy(update={"duration_ms": duration_ms}),
        is_live=cluster.is_live,
        rng=random.Random(7),
        sleep=sleep,
        clock=TickingClock(step=0.001),
        **kwargs,
    )


@pytest.mark.chaos
@pytest.mark.tier2
class TestLeaderChurn:
    """Runs survive leadership moving between nodes."""

    @pytest.mark.asyncio
    async def test_redirect_sets_leader_hint(
        self,
        respx_mock: MockRouter,
        settings: Settings,
        fake_sleep: RecordingSleep,
    ) -> None:
        """
        SCENARIO: Put answered 503 ENOTLEADER naming /ip4/127.0.0.1/tcp/9191
        EXPECTED: Leader hint becomes 127.0.0.1:9192, put retries at once and succeeds
        """
        responses = iter(
            [cluster_error(503, "ENOTLEADER", "/ip4/127.0.0.1/tcp/9191")]
        )
        respx_mock.route(method="PUT", host="127.0.0.1").mock(
            side_effect=lambda request: next(responses, httpx.Response(201))
        )
        orchestrator = orchestrate(FakeCluster(list(ADDRESSES)), settings, fake_sleep)

        assert await orchestrator.executor.put("a") == 0
        assert orchestrator.executor.leader == Endpoint(hostname="127.0.0.1", port=9192)
        assert fake_sleep.waits == []

    @pytest.mark.asyncio
    async def test_leader_hint_does_not_force_routing(
        self,
        respx_mock: MockRouter,
        cluster: FakeCluster,
        settings: Settings,
        fake_sleep: RecordingSleep,
    ) -> None:
        """
        SCENARIO: Leader is known after a redirect
        EXPECTED: Later requests still go to randomly chosen nodes
        """
        cluster.mount(respx_mock)
        orchestrator = orchestrate(cluster, settings, fake_sleep, duration_ms=200)

        await orchestrator.run()

        assert orchestrator.executor.leader == Endpoint("127.0.0.1", 9192)
        assert {r.node for r in cluster.requests} == {0, 1, 2}

    @pytest.mark.asyncio
    async def test_run_passes_under_frequent_elections(
        self,
        respx_mock: MockRouter,
        settings: Settings,
        fake_sleep: RecordingSleep,
    ) -> None:
        """
        SCENARIO: Leadership moves to the next node after every second write
        EXPECTED: Run completes; every key holds gap-free values 0..n
        """
        cluster = FakeCluster(list(ADDRESSES), churn_every=2)
        cluster.mount(respx_mock)
        orchestrator = orchestrate(cluster, settings, fake_sleep, duration_ms=300)

        report = await orchestrator.run()

        assert report.passed
        assert report.retry_stats["redirects"] > 0
        for key, expected in report.expected_values.items():
            assert cluster.writes_to(key) == list(range(expected + 1))

    @pytest.mark.asyncio
    async def test_leaderless_period(
        self,
        respx_mock: MockRouter,
        cluster: FakeCluster,
        settings: Settings,
        fake_sleep: RecordingSleep,
    ) -> None:
        """
        SCENARIO: Cluster loses its majority for a while (ENOMAJORITY, no leader field)
        EXPECTED: Writes keep retrying until a new leader is elected
        """
        cluster.elect(None)
        rejected = 0

        def elect_after_rejections(request: httpx.Request) -> httpx.Response:
            nonlocal rejected
            if cluster.leader is None and request.method == "PUT":
                rejected += 1
                if rejected == 5:
                    cluster.elect(2)
            return cluster.handle(request)

        respx_mock.route(host="127.0.0.1").mock(side_effect=elect_after_rejections)
        orchestrator = orchestrate(cluster, settings, fake_sleep)

        report = await orchestrator.run()

        assert report.passed
        assert rejected == 5
        assert orchestrator.executor.stats["redirects"] >= 4


@pytest.mark.chaos
@pytest.mark.tier2
class TestNodeOutages:
    """Runs survive nodes going down and coming back."""

    @pytest.mark.asyncio
    async def test_follower_crash_and_restart(
        self,
        respx_mock: MockRouter,
        cluster: FakeCluster,
        settings: Settings,
        fake_sleep: RecordingSleep,
    ) -> None:
        """
        SCENARIO: A follower crashes after 10 operations and restarts after 40
        EXPECTED: Run completes; crashed node is skipped while the oracle reports it down
        """
        cluster.mount(respx_mock)

        def fault_schedule(o: ResilienceOrchestrator) -> None:
            if o.stats.operations_completed == 10:
                cluster.crash(1)
            elif o.stats.operations_completed == 40:
                cluster.restart(1)

        orchestrator = orchestrate(
            cluster, settings, fake_sleep, duration_ms=100, on_operation=fault_schedule
        )

        report = await orchestrator.run()

        assert report.passed
        assert report.stats.operations_completed >= 40
        assert 1 not in cluster.down

    @pytest.mark.asyncio
    async def test_unannounced_crash_is_retried(
        self,
        respx_mock: MockRouter,
        settings: Settings,
        fake_sleep: RecordingSleep,
    ) -> None:
        """
        SCENARIO: A node refuses connections although the oracle reports it live
        EXPECTED: Requests to it are retried after 100ms on another random node
        """
        cluster = FakeCluster(list(ADDRESSES))
        cluster.mount(respx_mock)
        orchestrator = ResilienceOrchestrator(
            ADDRESSES,
            settings.model_copy(update={"duration_ms": 100}),
            rng=random.Random(7),
            sleep=fake_sleep,
            clock=TickingClock(step=0.001),
        )
        cluster.down.add(2)

        report = await orchestrator.run()

        assert report.passed
        assert 0.1 in fake_sleep.waits

    @pytest.mark.asyncio
    async def test_whole_cluster_down_fails_run(
        self,
        cluster: FakeCluster,
        settings: Settings,
        fake_sleep: RecordingSleep,
    ) -> None:
        """
        SCENARIO: Oracle reports every node down
        EXPECTED: Endpoint selection gives up; run fails without sending requests
        """
        for node in range(len(ADDRESSES)):
            cluster.crash(node)
        orchestrator = orchestrate(cluster, settings, fake_sleep)

        with pytest.raises(SelectionExhausted):
            await orchestrator.run()

        assert orchestrator.state is RunState.FAILED
        assert cluster.requests == []


@pytest.mark.chaos
@pytest.mark.tier2
class TestStaleReplicas:
    """Reads of lagging replicas get exactly one second chance."""

    @pytest.mark.asyncio
    async def test_single_stale_read_tolerated(
        self,
        respx_mock: MockRouter,
        cluster: FakeCluster,
        settings: Settings,
        fake_sleep: RecordingSleep,
    ) -> None:
        """
        SCENARIO: Get for key a expecting 0 first sees "-1", then "0"
        EXPECTED: Get succeeds with 0 after one 200ms second chance
        """
        cluster.mount(respx_mock)
        orchestrator = orchestrate(cluster, settings, fake_sleep)
        await orchestrator.executor.put("a")
        cluster.serve_stale("a", times=1)

        assert await orchestrator.executor.get("a") == 0
        assert fake_sleep.waits == [0.2]
        assert orchestrator.executor.stats["second_chances"] == 1

    @pytest.mark.asyncio
    async def test_persistent_stale_read_fails_run(
        self,
        respx_mock: MockRouter,
        cluster: FakeCluster,
        settings: Settings,
        fake_sleep: RecordingSleep,
    ) -> None:
        """
        SCENARIO: A replica keeps serving the previous value of key b
        EXPECTED: Second mismatch is a consistency violation ending the run
        """
        cluster.mount(respx_mock)
        orchestrator = orchestrate(cluster, settings, fake_sleep)
        await orchestrator.executor.put("b")
        await orchestrator.executor.put("b")
        cluster.serve_stale("b", times=2)

        with pytest.raises(ConsistencyViolation) as exc_info:
            await orchestrator.executor.get("b")

        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 0
