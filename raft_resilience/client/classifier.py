"""
Classification of failed cluster requests into retry decisions.

Protocol-level failures (a response with an unexpected status) are decided
from the structured error body. Transport-level failures (the request never
completed) are decided from the connection error.
"""

import errno
import socket
from dataclasses import dataclass
from typing import Any

import httpx

from raft_resilience.client.errors import (
    ProtocolError,
    ResilienceError,
    TransportCode,
    TransportError,
    UnclassifiedFailure,
)
from raft_resilience.client.selector import LivenessOracle, always_live
from raft_resilience.cluster.addresses import (
    DEFAULT_HOST_OVERRIDE,
    DEFAULT_PORT_OFFSET,
    AddressError,
    Endpoint,
    address_to_endpoint,
)
from raft_resilience.cluster.types import (
    REDIRECT_CODES,
    ClusterErrorCode,
    ClusterErrorResponse,
)

DEFAULT_TRANSPORT_RETRY_DELAY_MS = 100
DEFAULT_REFUSED_RETRY_DELAY_MS = 1000

RETRYABLE_TRANSPORT_CODES = frozenset(
    {
        TransportCode.CONNECTION_REFUSED,
        TransportCode.CONNECTION_RESET,
        TransportCode.TIMED_OUT,
    }
)

_ERRNO_CODES = {
    errno.ECONNREFUSED: TransportCode.CONNECTION_REFUSED,
    errno.ECONNRESET: TransportCode.CONNECTION_RESET,
    errno.ETIMEDOUT: TransportCode.TIMED_OUT,
}


# =============================================================================
# Decisions
# =============================================================================


@dataclass(frozen=True)
class RetryNow:
    """Retry on the next scheduling tick."""

    error: ResilienceError


@dataclass(frozen=True)
class RetryAfter:
    """Retry after a delay, optionally forgetting the leader hint."""

    delay_ms: int
    error: ResilienceError
    clear_leader: bool = False


@dataclass(frozen=True)
class RedirectAndRetry:
    """Replace the leader hint (None clears it) and retry immediately."""

    leader: Endpoint | None
    error: ResilienceError


@dataclass(frozen=True)
class Fatal:
    """Give up; the error ends the run."""

    error: ResilienceError


Decision = RetryNow | RetryAfter | RedirectAndRetry | Fatal


# =============================================================================
# Transport error codes
# =============================================================================


def _iter_causes(error: BaseException) -> list[BaseException]:
    # anyio reports failed connection attempts as an exception group cause
    chain: list[BaseException] = []
    pending: list[BaseException] = [error]
    while pending:
        current = pending.pop(0)
        if any(current is seen for seen in chain):
            continue
        chain.append(current)
        if isinstance(current, BaseExceptionGroup):
            pending.extend(current.exceptions)
        cause = current.__cause__ or current.__context__
        if cause is not None:
            pending.append(cause)
    return chain


def transport_code(error: BaseException) -> TransportCode:
    """
    Determine the connection-level failure kind of an exception.

    The OS error number found in the exception chain wins over the httpx
    exception type; numbers other than refused, reset and timed out mark
    failures that waiting won't fix.
    """
    causes = _iter_causes(error)
    for cause in causes:
        if isinstance(cause, OSError) and cause.errno in _ERRNO_CODES:
            return _ERRNO_CODES[cause.errno]
    if any(isinstance(cause, OSError) and cause.errno is not None for cause in causes):
        return TransportCode.OTHER

    if isinstance(error, httpx.TimeoutException | TimeoutError):
        return TransportCode.TIMED_OUT
    if isinstance(error, ConnectionRefusedError):
        return TransportCode.CONNECTION_REFUSED
    if isinstance(error, ConnectionResetError):
        return TransportCode.CONNECTION_RESET

    if isinstance(error, httpx.ConnectError):
        # Name resolution failures are configuration errors, not node outages.
        if any(_is_resolution_error(cause) for cause in causes):
            return TransportCode.OTHER
        return TransportCode.CONNECTION_REFUSED
    if isinstance(error, httpx.ReadError | httpx.WriteError | httpx.RemoteProtocolError):
        return TransportCode.CONNECTION_RESET

    return TransportCode.OTHER


def _is_resolution_error(error: BaseException) -> bool:
    if isinstance(error, socket.gaierror):
        return True
    message = str(error).lower()
    return "name or service not known" in message or "nodename nor servname" in message


# =============================================================================
# Classifier
# =============================================================================


class ErrorClassifier:
    """
    Maps failed requests onto retry decisions.

    Stateless; the caller owns the leader hint and applies decisions.
    """

    def __init__(
        self,
        is_live: LivenessOracle = always_live,
        host_override: str | None = DEFAULT_HOST_OVERRIDE,
        port_offset: int = DEFAULT_PORT_OFFSET,
        transport_retry_delay_ms: int = DEFAULT_TRANSPORT_RETRY_DELAY_MS,
        refused_retry_delay_ms: int = DEFAULT_REFUSED_RETRY_DELAY_MS,
    ) -> None:
        self._is_live = is_live
        self._host_override = host_override
        self._port_offset = port_offset
        self._transport_retry_delay_ms = transport_retry_delay_ms
        self._refused_retry_delay_ms = refused_retry_delay_ms

    def translate_leader(self, leader: Any) -> Endpoint:
        """Translate a leader's cluster address into its client endpoint."""
        return address_to_endpoint(
            leader, host_override=self._host_override, port_offset=self._port_offset
        )

    def classify_response(self, status_code: int, payload: str, endpoint: Endpoint) -> Decision:
        """
        Decide how to proceed after a response with an unexpected status.

        Args:
            status_code: HTTP status of the response
            payload: Raw response body
            endpoint: Endpoint the request was sent to

        Returns:
            Retry decision
        """
        cluster_error = ClusterErrorResponse.parse_payload(payload)
        code = cluster_error.known_code

        if code in REDIRECT_CODES:
            leader: Endpoint | None = None
            if cluster_error.leader:
                try:
                    leader = self.translate_leader(cluster_error.leader)
                except AddressError as e:
                    failure = UnclassifiedFailure(status_code, payload, endpoint=endpoint)
                    failure.__cause__ = e
                    return Fatal(failure)
            return RedirectAndRetry(
                leader=leader,
                error=ProtocolError(
                    f"{endpoint} answered {code.value}, leader hint: {leader}",
                    status_code=status_code,
                    code=code.value,
                    payload=payload,
                    leader=leader,
                ),
            )

        if code is ClusterErrorCode.TIMED_OUT:
            return RetryNow(
                ProtocolError(
                    f"{endpoint} timed out serving request",
                    status_code=status_code,
                    code=code.value,
                    payload=payload,
                )
            )

        if code is ClusterErrorCode.CONNECTION_REFUSED and not self._endpoint_is_live(endpoint):
            return RetryAfter(
                delay_ms=self._refused_retry_delay_ms,
                error=ProtocolError(
                    f"{endpoint} is down and refused connections",
                    status_code=status_code,
                    code=code.value,
                    payload=payload,
                ),
            )

        # ECONNREFUSED from a node still considered live falls through as well.
        return Fatal(UnclassifiedFailure(status_code, payload, endpoint=endpoint))

    def classify_transport(self, error: BaseException, endpoint: Endpoint) -> Decision:
        """
        Decide how to proceed after a request failed to complete.

        Args:
            error: Exception raised by the HTTP client
            endpoint: Endpoint the request was sent to

        Returns:
            Retry decision
        """
        code = transport_code(error)
        failure = TransportError(
            f"request to {endpoint} failed ({code.value}): {error!r}",
            code=code,
            endpoint=endpoint,
        )
        failure.__cause__ = error

        if code in RETRYABLE_TRANSPORT_CODES:
            return RetryAfter(
                delay_ms=self._transport_retry_delay_ms,
                error=failure,
                clear_leader=True,
            )
        return Fatal(failure)

    def _endpoint_is_live(self, endpoint: Endpoint) -> bool:
        return bool(self._is_live(endpoint.address if endpoint.address is not None else endpoint))
