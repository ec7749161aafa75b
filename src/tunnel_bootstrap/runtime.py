"""Hand-off point to the tunnel runtime."""

from dataclasses import dataclass, field
from importlib.metadata import entry_points
from typing import Any, Protocol

from .backoff import BackoffPolicy
from .common.exceptions import RuntimeStartError
from .common.logging import get_logger
from .routing import RoutingTable, TunnelRegistration
from .tls import TLSClientConfig

logger = get_logger(__name__)

RUNTIME_ENTRY_POINT_GROUP = "tunnel_bootstrap.runtimes"


@dataclass(frozen=True)
class ClientConfig:
    """Everything the runtime needs to connect and serve the tunnels."""

    server_addr: str
    tls: TLSClientConfig
    backoff: BackoffPolicy
    routes: RoutingTable
    tunnels: dict[str, TunnelRegistration] = field(default_factory=dict)


class TunnelRuntime(Protocol):
    """Connects to the tunnel server and proxies traffic to the routing table."""

    def start(self, config: ClientConfig, logger: Any) -> None:
        """Run the tunnels, blocking until they stop.

        Raises:
            Exception: If the connection cannot be established
        """
        ...


def load_runtime(group: str = RUNTIME_ENTRY_POINT_GROUP) -> TunnelRuntime:
    """Instantiate the installed tunnel runtime.

    The first entry point of the group, by name, is used. It must point to
    a callable returning a TunnelRuntime.

    Args:
        group: Entry point group to search

    Returns:
        Runtime instance

    Raises:
        RuntimeStartError: If no runtime is installed or it fails to load
    """
    candidates = sorted(entry_points(group=group), key=lambda ep: ep.name)
    if not candidates:
        raise RuntimeStartError("no tunnel runtime installed")

    ep = candidates[0]
    try:
        factory = ep.load()
        runtime = factory()
    except Exception as e:
        raise RuntimeStartError(f"failed to load tunnel runtime {ep.name!r}: {e}") from e

    logger.debug("Tunnel runtime loaded", name=ep.name, value=ep.value)
    return runtime  # type: ignore[no-any-return]
