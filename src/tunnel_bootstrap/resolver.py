"""Active tunnel set resolution."""

from collections.abc import Iterable

from .common.exceptions import ValidationError
from .common.logging import get_logger
from .models import Manifest

logger = get_logger(__name__)


def select_tunnels(manifest: Manifest, names: Iterable[str]) -> Manifest:
    """Build a manifest holding only the named tunnels.

    Args:
        manifest: Loaded manifest
        names: Requested tunnel names

    Returns:
        New manifest restricted to the requested tunnels

    Raises:
        ValidationError: On the first name missing from the manifest
    """
    selected = {}
    for name in names:
        tunnel = manifest.tunnels.get(name)
        if tunnel is None:
            raise ValidationError(f'no such tunnel "{name}"')
        selected[name] = tunnel

    return manifest.with_tunnels(selected)


def ensure_tunnels(manifest: Manifest) -> Manifest:
    """Reject a manifest with an empty tunnel set.

    Raises:
        ValidationError: If the manifest has no tunnels
    """
    if not manifest.tunnels:
        raise ValidationError("no tunnels")
    return manifest


def resolve_tunnels(manifest: Manifest, names: Iterable[str] | None = None) -> Manifest:
    """Resolve the active tunnel subset.

    Args:
        manifest: Loaded or synthesized manifest
        names: Tunnel names to start, or None for every tunnel

    Returns:
        Non-empty manifest of the active tunnels

    Raises:
        ValidationError: If a name is unknown or the result is empty
    """
    if names is not None:
        manifest = select_tunnels(manifest, names)

    ensure_tunnels(manifest)

    logger.debug("Tunnels resolved", tunnels=manifest.tunnel_names)
    return manifest


def list_tunnels(manifest: Manifest) -> list[str]:
    """Tunnel names of a manifest sorted ascending.

    Raises:
        ValidationError: If the manifest has no tunnels
    """
    return resolve_tunnels(manifest).tunnel_names
