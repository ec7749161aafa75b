"""Tunnel Bootstrap - configuration compilation for a tunnel client."""

__version__ = "0.1.0"

from .backoff import BackoffPolicy, to_policy  # noqa: E402
from .bootstrap import Bootstrap, BootstrapState, main  # noqa: E402
from .cli import parse_args  # noqa: E402

# Common utilities
from .common.exceptions import (  # noqa: E402
    AddressError,
    BootstrapError,
    ConfigError,
    RuntimeStartError,
    TLSError,
    UsageError,
    ValidationError,
)
from .common.logging import get_logger, setup_logging  # noqa: E402
from .config import load_manifest, quick_start_manifest  # noqa: E402
from .identity import fingerprint  # noqa: E402

# Manifest models
from .models import (  # noqa: E402
    BackoffSettings,
    Command,
    Invocation,
    Manifest,
    TunnelDefinition,
    TunnelProtocol,
)
from .resolver import list_tunnels, resolve_tunnels  # noqa: E402
from .routing import (  # noqa: E402
    RoutingTable,
    TunnelRegistration,
    build_registrations,
    build_routing_table,
)
from .runtime import ClientConfig, TunnelRuntime, load_runtime  # noqa: E402
from .tls import (  # noqa: E402
    CertificateSource,
    FileCertificateSource,
    StaticCertificateSource,
    TLSClientConfig,
    build_tls_config,
)

__all__ = [
    # Entry points
    "main",
    "parse_args",
    "Bootstrap",
    "BootstrapState",
    # Models
    "Command",
    "Invocation",
    "Manifest",
    "TunnelDefinition",
    "TunnelProtocol",
    "BackoffSettings",
    # Pipeline
    "load_manifest",
    "quick_start_manifest",
    "resolve_tunnels",
    "list_tunnels",
    "BackoffPolicy",
    "to_policy",
    "CertificateSource",
    "FileCertificateSource",
    "StaticCertificateSource",
    "TLSClientConfig",
    "build_tls_config",
    "RoutingTable",
    "TunnelRegistration",
    "build_routing_table",
    "build_registrations",
    "fingerprint",
    # Runtime
    "ClientConfig",
    "TunnelRuntime",
    "load_runtime",
    # Exceptions
    "BootstrapError",
    "UsageError",
    "ConfigError",
    "ValidationError",
    "AddressError",
    "TLSError",
    "RuntimeStartError",
    # Logging
    "get_logger",
    "setup_logging",
]
