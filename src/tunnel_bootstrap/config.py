"""Tunnel manifest loading and quick start synthesis."""

import os
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml
from pydantic import ValidationError as PydanticValidationError

from .common.exceptions import ConfigError
from .common.logging import get_logger
from .common.utils import normalize_address
from .models import (
    DEFAULT_TLS_CRT,
    DEFAULT_TLS_KEY,
    Manifest,
    TunnelDefinition,
    TunnelProtocol,
)

logger = get_logger(__name__)

# Relay used by qstart, no config file involved
RELAY_SERVER_ADDR = "tunnel.arumiot.com:5223"
QUICK_START_TUNNEL = "webui"

HTTP_SCHEMES = ("http", "https")


def normalize_url(rawurl: str) -> str:
    """Normalize an HTTP upstream URL.

    Args:
        rawurl: URL with an http/https scheme, or a bare "host:port"

    Returns:
        URL with an explicit scheme

    Raises:
        ValueError: If the scheme is unsupported or the path lacks a trailing slash
    """
    scheme, sep, _ = rawurl.partition("://")
    if sep:
        if scheme not in HTTP_SCHEMES:
            raise ValueError("unsupported url schema, choose 'http' or 'https'")
    else:
        rawurl = f"http://{rawurl}"

    parts = urlsplit(rawurl)
    if parts.path and not parts.path.endswith("/"):
        raise ValueError("url must end with '/'")

    return rawurl


def _validate_http(tunnel: TunnelDefinition) -> TunnelDefinition:
    if not tunnel.host:
        raise ValueError("host: missing")
    if not tunnel.local_addr:
        raise ValueError("addr: missing")
    try:
        addr = normalize_url(tunnel.local_addr)
    except ValueError as e:
        raise ValueError(f"addr: {e}") from e
    if tunnel.remote_addr:
        raise ValueError("remote_addr: unexpected")

    return tunnel.model_copy(update={"local_addr": addr})


def _validate_tcp(tunnel: TunnelDefinition) -> TunnelDefinition:
    try:
        remote_addr = normalize_address(tunnel.remote_addr)
    except ValueError as e:
        raise ValueError(f"remote_addr: {e}") from e
    if not tunnel.local_addr:
        raise ValueError("addr: missing")
    try:
        addr = normalize_address(tunnel.local_addr)
    except ValueError as e:
        raise ValueError(f"addr: {e}") from e
    if tunnel.host:
        raise ValueError("host: unexpected")
    if tunnel.auth:
        raise ValueError("auth: unexpected")

    return tunnel.model_copy(update={"local_addr": addr, "remote_addr": remote_addr})


def _validate_sni(tunnel: TunnelDefinition) -> TunnelDefinition:
    if not tunnel.host:
        raise ValueError("host: missing")
    if not tunnel.local_addr:
        raise ValueError("addr: missing")
    try:
        addr = normalize_address(tunnel.local_addr)
    except ValueError as e:
        raise ValueError(f"addr: {e}") from e
    if tunnel.remote_addr:
        raise ValueError("remote_addr: unexpected")
    if tunnel.auth:
        raise ValueError("auth: unexpected")

    return tunnel.model_copy(update={"local_addr": addr})


def validate_tunnel(tunnel: TunnelDefinition) -> TunnelDefinition:
    """Check a tunnel's fields against its protocol and normalize its addresses.

    Args:
        tunnel: Tunnel definition as written in the manifest

    Returns:
        New tunnel definition with normalized addresses

    Raises:
        ValueError: If a required field is missing, unexpected or malformed
    """
    if tunnel.protocol == TunnelProtocol.HTTP:
        return _validate_http(tunnel)
    if tunnel.protocol.is_tcp:
        return _validate_tcp(tunnel)
    return _validate_sni(tunnel)


def _check_protocols(tunnels: Any) -> None:
    if not isinstance(tunnels, dict):
        return

    known = {p.value for p in TunnelProtocol}
    for name, tunnel in tunnels.items():
        proto = tunnel.get("proto") if isinstance(tunnel, dict) else None
        if not isinstance(proto, str) or proto not in known:
            raise ConfigError(f'{name} invalid protocol "{"" if proto is None else proto}"')


def load_manifest(path: str | os.PathLike[str]) -> Manifest:
    """Load and validate a tunnel manifest file.

    Certificate paths default to client.crt and client.key in the
    manifest's directory.

    Args:
        path: Path to the YAML manifest

    Returns:
        Validated manifest with normalized addresses

    Raises:
        ConfigError: If the file is unreadable, malformed or fails validation
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f'failed to read file "{path}": {e.strerror or e}') from e
    except UnicodeDecodeError as e:
        raise ConfigError(f'failed to read file "{path}": {e}') from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f'failed to parse file "{path}": {e}') from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f'failed to parse file "{path}": expected a mapping')

    base_dir = os.path.dirname(os.fspath(path))
    data.setdefault("tls_crt", os.path.join(base_dir, DEFAULT_TLS_CRT))
    data.setdefault("tls_key", os.path.join(base_dir, DEFAULT_TLS_KEY))

    if not data.get("server_addr"):
        raise ConfigError("server_addr: missing")

    _check_protocols(data.get("tunnels"))

    try:
        manifest = Manifest.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(f'failed to parse file "{path}": {e}') from e

    try:
        server_addr = normalize_address(manifest.server_addr)
    except ValueError as e:
        raise ConfigError(f"server_addr: {e}") from e

    tunnels = {}
    for name in manifest.tunnel_names:
        try:
            tunnels[name] = validate_tunnel(manifest.tunnels[name])
        except ValueError as e:
            raise ConfigError(f"{name} {e}") from e

    logger.debug("Manifest loaded", path=str(path), tunnels=len(tunnels))

    return manifest.model_copy(update={"server_addr": server_addr, "tunnels": tunnels})


def quick_start_manifest(protocol: str, host: str, port: int) -> Manifest:
    """Synthesize a single-tunnel manifest from command line flags.

    The local address scheme is "tcp" only when protocol is exactly "tcp".

    Args:
        protocol: Tunnel protocol flag
        host: Public host flag
        port: Local port to expose

    Returns:
        Manifest pointing at the built-in relay with one tunnel
    """
    scheme = "tcp" if protocol == "tcp" else "http"
    tunnel = TunnelDefinition(
        name=QUICK_START_TUNNEL,
        protocol=TunnelProtocol(protocol),
        host=host,
        local_addr=f"{scheme}://localhost:{port}",
    )

    logger.debug("Quick start manifest", protocol=protocol, host=host, port=port)

    return Manifest(
        server_addr=RELAY_SERVER_ADDR,
        tunnels={QUICK_START_TUNNEL: tunnel},
    )
