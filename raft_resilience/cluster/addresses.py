"""
Cluster address handling.

Cluster nodes advertise multiaddr-style addresses such as
``/ip4/127.0.0.1/tcp/9191``. Clients talk to a node's HTTP endpoint, which
listens on the advertised port plus a fixed offset.
"""

from dataclasses import dataclass, field
from typing import Any

DEFAULT_HOST_OVERRIDE = "127.0.0.1"
DEFAULT_PORT_OFFSET = 1

HOST_PROTOCOLS = {"ip4", "ip6", "dns", "dns4", "dns6"}
PORT_PROTOCOLS = {"tcp", "udp"}


class AddressError(ValueError):
    """Raised when a cluster address can't be parsed."""


@dataclass(frozen=True)
class Endpoint:
    """
    Client-facing address of a cluster node.

    ``address`` names the cluster address this endpoint was derived from; it
    does not take part in equality.
    """

    hostname: str
    port: int
    address: str | None = field(default=None, compare=False)

    @property
    def base_url(self) -> str:
        host = f"[{self.hostname}]" if ":" in self.hostname else self.hostname
        return f"http://{host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.hostname}:{self.port}"


def parse_address(address: Any) -> tuple[str, int]:
    """
    Split a cluster address into host and port.

    Args:
        address: multiaddr string, or any object rendering as one

    Returns:
        (host, port) as advertised by the node

    Raises:
        AddressError: If no host or port segment is found
    """
    text = str(address).strip()
    parts = [p for p in text.split("/") if p]
    if not text.startswith("/") or len(parts) % 2:
        raise AddressError(f"Malformed cluster address: {text!r}")

    host: str | None = None
    port: int | None = None
    for protocol, value in zip(parts[::2], parts[1::2], strict=True):
        if protocol in HOST_PROTOCOLS and host is None:
            host = value
        elif protocol in PORT_PROTOCOLS and port is None:
            try:
                port = int(value)
            except ValueError as e:
                raise AddressError(f"Invalid port in cluster address: {text!r}") from e

    if host is None or port is None:
        raise AddressError(f"Cluster address lacks host or port: {text!r}")
    return host, port


def address_to_endpoint(
    address: Any,
    host_override: str | None = DEFAULT_HOST_OVERRIDE,
    port_offset: int = DEFAULT_PORT_OFFSET,
) -> Endpoint:
    """
    Map a cluster address onto the node's client endpoint.

    Args:
        address: Cluster-internal address of a node
        host_override: Hostname to use instead of the advertised one
        port_offset: Client port = cluster port + offset

    Returns:
        Endpoint for sending HTTP requests to
    """
    host, port = parse_address(address)
    return Endpoint(
        hostname=host_override or host,
        port=port + port_offset,
        address=str(address),
    )
