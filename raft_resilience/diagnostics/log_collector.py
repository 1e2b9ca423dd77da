"""
UDP log collector for capturing diagnostics of cluster nodes and clients.

Nodes and clients running in separate processes send their log lines as UDP
datagrams to a collector started by the test framework. The collector keeps
the most recent records in a ring buffer and dumps them once logging has
quieted down, e.g. after a failed run.
"""

import asyncio
import logging
import socket
import sys
from collections import deque
from dataclasses import dataclass
from typing import TextIO

from raft_resilience.config import MIN_LOG_BUFFER_SIZE, Settings

POLL_INTERVAL_S = 0.1
SETTLED_AFTER_TICKS = 10
DEFAULT_SETTLE_TICKS = 50

LOCAL_PEER = "127.0.0.1:server"


@dataclass(frozen=True)
class LogRecord:
    """One captured log message."""

    peer: str
    message: str


class _CollectorProtocol(asyncio.DatagramProtocol):
    def __init__(self, collector: "LogCollector") -> None:
        self._collector = collector

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self._collector.record(data.decode("utf-8", errors="replace"), f"{addr[0]}:{addr[1]}")


class LogCollector:
    """
    Ring buffer of log records, optionally fed over UDP.

    The buffer never holds fewer than 1000 records; when full, the oldest
    record is dropped.
    """

    def __init__(self, capacity: int | None = None) -> None:
        self.capacity = max(capacity or MIN_LOG_BUFFER_SIZE, MIN_LOG_BUFFER_SIZE)
        self.logs: deque[LogRecord] = deque(maxlen=self.capacity)
        self.captured = 0

        self._transport: asyncio.DatagramTransport | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "LogCollector":
        return cls(capacity=settings.log_buffer_size)

    def record(self, message: str, peer: str = LOCAL_PEER) -> None:
        """Capture a log message on behalf of a peer."""
        self.captured += 1
        self.logs.append(LogRecord(peer=peer, message=message))

    async def start(self, host: str = "0.0.0.0", port: int = 0) -> tuple[str, int]:
        """
        Start receiving log records over UDP.

        Returns:
            (host, port) to send records to
        """
        if self._transport is None:
            loop = asyncio.get_running_loop()
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _CollectorProtocol(self),
                local_addr=(host, port),
                family=socket.AF_INET,
            )
            self._transport = transport
        return self.address

    @property
    def address(self) -> tuple[str, int]:
        """Address of the UDP listener."""
        if self._transport is None:
            raise RuntimeError("log collector is not listening")
        host, port = self._transport.get_extra_info("sockname")[:2]
        return ("127.0.0.1" if host == "0.0.0.0" else host, port)

    @property
    def is_listening(self) -> bool:
        return self._transport is not None

    async def settled(self, timeout_ticks: int = DEFAULT_SETTLE_TICKS) -> None:
        """
        Wait for logging to quiet down.

        Polls every 100ms and returns after 10 consecutive polls without new
        records, or after ``timeout_ticks`` polls in total.
        """
        if timeout_ticks <= 0:
            return

        latest = self.captured
        quiet = 0
        ticks = 0
        while True:
            await asyncio.sleep(POLL_INTERVAL_S)
            ticks += 1
            if ticks >= timeout_ticks:
                return
            if self.captured > latest:
                latest = self.captured
                quiet = 0
            else:
                quiet += 1
                if quiet >= SETTLED_AFTER_TICKS:
                    return

    async def dump(self, settle_ticks: int = DEFAULT_SETTLE_TICKS, stream: TextIO | None = None) -> None:
        """Wait for logging to settle, then write the backlog."""
        out = stream or sys.stderr
        await self.settled(settle_ticks)

        out.write("\nbacklog:\n")
        if not self.logs:
            out.write("... empty ...\n")
        for entry in list(self.logs):
            out.write(f"{entry.peer}: {entry.message}\n")
        out.flush()

    async def close(self) -> None:
        """Stop listening."""
        if self._transport is not None:
            self._transport.close()
            self._transport = None
            # let the loop process the close callback
            await asyncio.sleep(0)


class LogTransmitter:
    """
    Sends log messages to a remote collector over UDP.

    Does nothing unless a collector address is configured.
    """

    def __init__(self, host: str | None = None, port: int | None = None) -> None:
        self.host = host
        self.port = port
        self._socket: socket.socket | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "LogTransmitter":
        return cls(settings.log_server_name, settings.log_server_port)

    @property
    def enabled(self) -> bool:
        return bool(self.host) and self.port is not None

    def transmit(self, message: str) -> None:
        if not self.enabled:
            return
        if self._socket is None:
            self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._socket.sendto(message.encode("utf-8"), (self.host, self.port))

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None


class CollectorHandler(logging.Handler):
    """Logging handler recording into a collector of the same process."""

    def __init__(self, collector: LogCollector, peer: str = LOCAL_PEER) -> None:
        super().__init__()
        self._collector = collector
        self._peer = peer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._collector.record(self.format(record), self._peer)
        except Exception:
            self.handleError(record)


class TransmitterHandler(logging.Handler):
    """Logging handler forwarding records to a remote collector."""

    def __init__(self, transmitter: LogTransmitter) -> None:
        super().__init__()
        self._transmitter = transmitter

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._transmitter.transmit(self.format(record))
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self._transmitter.close()
        super().close()
