"""Per-protocol routing tables for the proxy engine.

Tables map the public identity of an inbound request to its local upstream:
HTTP by host to an upstream URL, TCP by remote address and SNI by host to a
dial address. Keys colliding within a table are last-write-wins, with
tunnels visited in name order.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from urllib.parse import SplitResult, urlsplit

from pydantic import BaseModel, ConfigDict, Field

from .common.exceptions import AddressError
from .common.logging import get_logger
from .models import TunnelDefinition, TunnelProtocol

logger = get_logger(__name__)


def _empty() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True)
class RoutingTable:
    """Read-only dispatch tables, one per protocol family."""

    http_routes: Mapping[str, SplitResult] = field(default_factory=_empty)
    tcp_routes: Mapping[str, str] = field(default_factory=_empty)
    sni_routes: Mapping[str, str] = field(default_factory=_empty)

    def __len__(self) -> int:
        return len(self.http_routes) + len(self.tcp_routes) + len(self.sni_routes)


class TunnelRegistration(BaseModel):
    """Tunnel as announced to the tunnel server."""

    model_config = ConfigDict(frozen=True)

    protocol: TunnelProtocol
    host: str = ""
    auth: str | None = None
    addr: str = Field(default="", description="Public address for TCP tunnels")


def parse_upstream_url(rawurl: str) -> SplitResult:
    """Parse an HTTP upstream URL.

    Args:
        rawurl: Upstream such as "http://localhost:8080"

    Returns:
        Parsed URL

    Raises:
        AddressError: If the URL does not parse or lacks a scheme or host
    """
    try:
        url = urlsplit(rawurl)
        url.port  # noqa: B018  ValueError on a bad port
    except ValueError as e:
        raise AddressError(f"invalid tunnel address: {e}") from e

    if not url.scheme or not url.hostname:
        raise AddressError(f'invalid tunnel address: "{rawurl}" has no scheme or host')

    return url


def build_routing_table(tunnels: Mapping[str, TunnelDefinition]) -> RoutingTable:
    """Compile tunnel definitions into routing tables.

    Args:
        tunnels: Tunnel definitions by name

    Returns:
        Routing table with disjoint HTTP, TCP and SNI sub-tables

    Raises:
        AddressError: If any HTTP tunnel has a malformed upstream URL
    """
    http_routes: dict[str, SplitResult] = {}
    tcp_routes: dict[str, str] = {}
    sni_routes: dict[str, str] = {}

    for name in sorted(tunnels):
        tunnel = tunnels[name]
        if tunnel.protocol == TunnelProtocol.HTTP:
            http_routes[tunnel.host] = parse_upstream_url(tunnel.local_addr)
        elif tunnel.protocol.is_tcp:
            tcp_routes[tunnel.remote_addr] = tunnel.local_addr
        elif tunnel.protocol == TunnelProtocol.SNI:
            sni_routes[tunnel.host] = tunnel.local_addr

    table = RoutingTable(
        http_routes=MappingProxyType(http_routes),
        tcp_routes=MappingProxyType(tcp_routes),
        sni_routes=MappingProxyType(sni_routes),
    )

    logger.debug(
        "Routing table built",
        http=len(http_routes),
        tcp=len(tcp_routes),
        sni=len(sni_routes),
    )

    return table


def build_registrations(
    tunnels: Mapping[str, TunnelDefinition],
) -> dict[str, TunnelRegistration]:
    """Describe each tunnel the way the tunnel server registers it."""
    return {
        name: TunnelRegistration(
            protocol=tunnel.protocol,
            host=tunnel.host,
            auth=tunnel.auth,
            addr=tunnel.remote_addr,
        )
        for name, tunnel in tunnels.items()
    }
