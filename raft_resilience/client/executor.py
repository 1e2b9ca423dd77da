"""
Drives single put/get operations against the cluster until they succeed or
fail permanently.
"""

import asyncio
import math
from collections.abc import Awaitable, Callable
from logging import Logger

import httpx

from raft_resilience.client.classifier import (
    Decision,
    ErrorClassifier,
    Fatal,
    RedirectAndRetry,
    RetryAfter,
    RetryNow,
)
from raft_resilience.client.errors import ConsistencyViolation
from raft_resilience.client.selector import EndpointSelector
from raft_resilience.client.session import ClusterSession
from raft_resilience.client.tracker import ConsistencyTracker
from raft_resilience.cluster.addresses import Endpoint

HTTP_OK = 200
HTTP_CREATED = 201

DEFAULT_SECOND_CHANCE_DELAY_MS = 200

Sleep = Callable[[float], Awaitable[None]]


def parse_value(payload: str) -> int | float:
    """
    Parse a value read from the cluster; anything non-numeric reads as 0.

    Fractional and exponent forms keep their numeric value, so a garbled
    read like "0.5" never matches an integer expectation by accident.
    Hexadecimal, octal and binary literals are accepted; digit separators
    are not.
    """
    text = payload.strip()
    if "_" in text:
        return 0
    try:
        if text[:2].lower() in ("0x", "0o", "0b"):
            value: int | float = int(text, 0)
        else:
            value = float(text) if text else 0
    except ValueError:
        return 0
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        if value.is_integer():
            return int(value)
    return value


class RequestExecutor:
    """
    Executes one logical operation through as many attempts as it takes.

    Every attempt picks an endpoint, sends one request and, on failure, asks
    the classifier whether and when to try again. Retries are unbounded in
    count; only selection exhaustion, fatal classifications and failed
    consistency checks end an operation.
    """

    def __init__(
        self,
        session: ClusterSession,
        selector: EndpointSelector,
        classifier: ErrorClassifier,
        tracker: ConsistencyTracker,
        logger: Logger,
        second_chance_delay_ms: int = DEFAULT_SECOND_CHANCE_DELAY_MS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._session = session
        self._selector = selector
        self._classifier = classifier
        self._tracker = tracker
        self._logger = logger
        self._second_chance_delay_ms = second_chance_delay_ms
        self._sleep = sleep

        # Informational only: endpoint selection doesn't prefer the leader.
        self.leader: Endpoint | None = None

        self._retries = 0
        self._redirects = 0
        self._second_chances = 0

    @property
    def stats(self) -> dict[str, int]:
        """Get retry statistics."""
        return {
            "retries": self._retries,
            "redirects": self._redirects,
            "second_chances": self._second_chances,
        }

    async def put(self, key: str) -> int:
        """
        Write the next value of a key.

        The expected value is bumped before the first attempt and kept across
        retries.

        Returns:
            Value written
        """
        value = self._tracker.bump(key)
        self._logger.debug("PUT %s = %d ???", key, value)

        while True:
            endpoint = self._selector.pick()
            self._logger.debug("... %s", endpoint)

            try:
                response = await self._session.request(
                    "PUT", endpoint, f"/{key}", content=str(value)
                )
            except httpx.RequestError as e:
                await self._apply(self._classifier.classify_transport(e, endpoint))
                continue

            if response.status_code == HTTP_CREATED:
                self._logger.debug("PUT %s = %d OK!", key, value)
                return value

            await self._apply(
                self._classifier.classify_response(response.status_code, response.text, endpoint)
            )

    async def get(self, key: str) -> int:
        """
        Read a key and check it holds the expected value.

        A stale read gets one second chance after a short delay.

        Returns:
            Value read

        Raises:
            ConsistencyViolation: If the value still mismatches on second chance
        """
        expected = self._tracker.expected_of(key)
        second_chance = False
        self._logger.debug("GET %s ???", key)

        while True:
            endpoint = self._selector.pick()
            self._logger.debug("... %s%s", endpoint, " (2nd chance)" if second_chance else "")

            try:
                response = await self._session.request("GET", endpoint, f"/{key}")
            except httpx.RequestError as e:
                await self._apply(self._classifier.classify_transport(e, endpoint))
                continue

            if response.status_code != HTTP_OK:
                await self._apply(
                    self._classifier.classify_response(
                        response.status_code, response.text, endpoint
                    )
                )
                continue

            value = parse_value(response.text)
            if value == expected:
                self._logger.debug("GET %s = %s", key, value)
                return value

            if second_chance:
                raise ConsistencyViolation(endpoint, key, expected, value)

            self._logger.info(
                "GET %s from %s: expected %d, got %s, retrying once",
                key,
                endpoint,
                expected,
                value,
            )
            second_chance = True
            self._second_chances += 1
            await self._sleep(self._second_chance_delay_ms / 1000)

    async def _apply(self, decision: Decision) -> None:
        """
        Act on a classifier decision: wait for the retry or raise.
        """
        if isinstance(decision, Fatal):
            self._logger.error("Giving up: %s", decision.error)
            raise decision.error

        self._retries += 1

        if isinstance(decision, RedirectAndRetry):
            self._redirects += 1
            self.leader = decision.leader
            self._logger.debug("%s", decision.error)
            await self._sleep(0)
        elif isinstance(decision, RetryAfter):
            if decision.clear_leader:
                self.leader = None
            self._logger.warning("%s, retrying in %dms", decision.error, decision.delay_ms)
            await self._sleep(decision.delay_ms / 1000)
        elif isinstance(decision, RetryNow):
            self._logger.debug("%s, retrying", decision.error)
            await self._sleep(0)
