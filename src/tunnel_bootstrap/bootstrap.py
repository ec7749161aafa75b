"""Bootstrap orchestration for the tunnel client.

This module sequences the bootstrap pipeline:
- Command line parsing
- Manifest loading, or synthesis for quick start
- Active tunnel set resolution
- TLS, backoff and routing artifact construction
- Hand-off to the tunnel runtime

Every failure is terminal, a tunnel set never partially starts.
"""

import sys
from collections.abc import Sequence
from enum import Enum
from typing import Any, TextIO

import yaml

from .backoff import to_policy
from .cli import build_parser, parse_args
from .common.exceptions import BootstrapError, RuntimeStartError, UsageError
from .common.logging import get_logger, level_for_verbosity, setup_logging
from .common.utils import mask_sensitive_data
from .config import load_manifest, quick_start_manifest
from .identity import fingerprint
from .models import DEFAULT_LOG_LEVEL, Command, Invocation, Manifest
from .resolver import list_tunnels, resolve_tunnels
from .routing import build_registrations, build_routing_table
from .runtime import ClientConfig, TunnelRuntime, load_runtime
from .tls import (
    CertificateSource,
    FileCertificateSource,
    build_tls_config,
    load_key_pair,
)

logger = get_logger(__name__)


class BootstrapState(str, Enum):
    """Bootstrap progress, each state entered at most once."""

    START = "start"
    PARSING_ARGS = "parsing_args"
    VERSIONING = "versioning"
    ERRORING = "erroring"
    RESOLVING_MANIFEST = "resolving_manifest"
    RESOLVING_SUBSET = "resolving_subset"
    BUILDING_ARTIFACTS = "building_artifacts"
    DONE = "done"
    HANDOFF = "handoff"
    FATAL = "fatal"


TERMINAL_STATES = frozenset(
    {
        BootstrapState.VERSIONING,
        BootstrapState.ERRORING,
        BootstrapState.DONE,
        BootstrapState.HANDOFF,
        BootstrapState.FATAL,
    }
)


class Bootstrap:
    """Runs the bootstrap pipeline once for a command line."""

    def __init__(
        self,
        argv: Sequence[str] | None = None,
        runtime: TunnelRuntime | None = None,
        certificate_source: CertificateSource | None = None,
        stdout: TextIO | None = None,
        configure_logging: bool = True,
    ) -> None:
        """Initialize bootstrap.

        Args:
            argv: Command line without the program name, defaults to sys.argv[1:]
            runtime: Tunnel runtime, the installed one is used if None
            certificate_source: Client credential, the manifest's tls_crt and
                tls_key files are used if None
            stdout: Stream for command output, defaults to sys.stdout
            configure_logging: Apply --log-level to the process logging
        """
        self.argv = argv
        self.runtime = runtime
        self.certificate_source = certificate_source
        self.stdout = stdout if stdout is not None else sys.stdout
        self.configure_logging = configure_logging

        self.state = BootstrapState.START
        self.invocation: Invocation | None = None
        self.manifest: Manifest | None = None
        self.client_config: ClientConfig | None = None

    @property
    def finished(self) -> bool:
        """True once a terminal state is reached."""
        return self.state in TERMINAL_STATES

    def _enter(self, state: BootstrapState) -> None:
        logger.debug("Bootstrap state", previous=self.state.value, state=state.value)
        self.state = state

    def _print(self, line: str) -> None:
        print(line, file=self.stdout)

    def run(self) -> None:
        """Run the pipeline to a terminal state.

        Raises:
            UsageError: If the command line is invalid
            BootstrapError: On any other bootstrap failure, or when called twice
        """
        if self.state is not BootstrapState.START:
            raise BootstrapError(f"bootstrap already ran (state {self.state.value})")

        try:
            self._run()
        except UsageError:
            self._enter(BootstrapState.ERRORING)
            raise
        except BootstrapError:
            self._enter(BootstrapState.FATAL)
            raise

    def _run(self) -> None:
        # stdout carries command output only, logs must be on stderr first
        if self.configure_logging:
            setup_logging(level=level_for_verbosity(DEFAULT_LOG_LEVEL))

        self._enter(BootstrapState.PARSING_ARGS)
        invocation = self.invocation = parse_args(self.argv)

        if self.configure_logging:
            setup_logging(level=level_for_verbosity(invocation.log_level))

        if invocation.show_version:
            self._enter(BootstrapState.VERSIONING)
            self._print_version()
            return

        self._enter(BootstrapState.RESOLVING_MANIFEST)
        manifest = self.resolve_manifest(invocation)

        if invocation.command == Command.ID:
            self._print(self.client_id(manifest))
            self._enter(BootstrapState.DONE)
            return

        self._enter(BootstrapState.RESOLVING_SUBSET)
        if invocation.command == Command.LIST:
            for name in list_tunnels(manifest):
                self._print(name)
            self._enter(BootstrapState.DONE)
            return

        names = invocation.args if invocation.command == Command.START else None
        manifest = self.manifest = resolve_tunnels(manifest, names)
        logger.debug("Resolved config", config=dump_manifest(manifest))

        self._enter(BootstrapState.BUILDING_ARTIFACTS)
        config = self.client_config = self.build_client_config(manifest)
        runtime = self.runtime if self.runtime is not None else load_runtime()

        self._enter(BootstrapState.HANDOFF)
        logger.info(
            "Starting tunnels",
            server_addr=config.server_addr,
            tunnels=sorted(config.tunnels),
        )
        try:
            runtime.start(config, logger)
        except BootstrapError:
            raise
        except Exception as e:
            raise RuntimeStartError(f"failed to start tunnels: {e}") from e

    def _print_version(self) -> None:
        from . import __version__  # noqa: PLC0415

        self._print(__version__)

    def resolve_manifest(self, invocation: Invocation) -> Manifest:
        """Load the manifest, or synthesize it for quick start."""
        if invocation.command == Command.QSTART:
            return quick_start_manifest(
                invocation.protocol.value, invocation.host, invocation.port
            )
        return load_manifest(invocation.config_path)

    def credential(self, manifest: Manifest) -> CertificateSource:
        if self.certificate_source is not None:
            return self.certificate_source
        return FileCertificateSource(manifest.tls_crt, manifest.tls_key)

    def client_id(self, manifest: Manifest) -> str:
        """Fingerprint of the client certificate."""
        key_pair = load_key_pair(self.credential(manifest))
        return fingerprint(key_pair.certificate_der)

    def build_client_config(self, manifest: Manifest) -> ClientConfig:
        """Build the runtime artifacts for a resolved manifest.

        Raises:
            TLSError: If the TLS configuration cannot be built
            AddressError: If an HTTP upstream URL is malformed
        """
        tls = build_tls_config(manifest, self.credential(manifest))
        routes = build_routing_table(manifest.tunnels)

        return ClientConfig(
            server_addr=manifest.server_addr,
            tls=tls,
            backoff=to_policy(manifest.backoff),
            routes=routes,
            tunnels=build_registrations(manifest.tunnels),
        )


def dump_manifest(manifest: Manifest) -> str:
    """Render a manifest as YAML for logging, tunnel auth masked."""
    data: dict[str, Any] = manifest.model_dump(mode="json", by_alias=True)
    for tunnel in data["tunnels"].values():
        if tunnel.get("auth"):
            tunnel["auth"] = mask_sensitive_data(tunnel["auth"])
    return yaml.safe_dump(data, sort_keys=True)


def main(argv: Sequence[str] | None = None, runtime: TunnelRuntime | None = None) -> int:
    """Run the tunnel command line.

    Args:
        argv: Command line without the program name
        runtime: Tunnel runtime override

    Returns:
        Exit status: 0 on success, 1 on bootstrap failure, 2 on usage errors
    """
    try:
        Bootstrap(argv, runtime=runtime).run()
    except UsageError as e:
        print(f"tunnel: {e}", file=sys.stderr)
        build_parser().print_usage(sys.stderr)
        return 2
    except BootstrapError as e:
        print(e, file=sys.stderr)
        return 1

    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
