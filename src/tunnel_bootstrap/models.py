"""Manifest models for the tunnel client.

This module defines the tunnel definitions and server-level settings that the
bootstrap pipeline compiles into runtime artifacts.
"""

from datetime import timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .common.utils import parse_duration

DEFAULT_CONFIG_PATH = "tunnel.yml"
DEFAULT_QUICK_START_HOST = "hookurl.arumiot.com"
DEFAULT_QUICK_START_PORT = 8000
DEFAULT_LOG_LEVEL = 1

DEFAULT_TLS_CRT = "client.crt"
DEFAULT_TLS_KEY = "client.key"

DEFAULT_BACKOFF_INTERVAL = timedelta(milliseconds=500)
DEFAULT_BACKOFF_MULTIPLIER = 1.5
DEFAULT_BACKOFF_MAX_INTERVAL = timedelta(seconds=60)
DEFAULT_BACKOFF_MAX_TIME = timedelta(minutes=15)


class TunnelProtocol(str, Enum):
    """Wire protocol of a tunnel."""

    HTTP = "http"
    TCP = "tcp"
    TCP4 = "tcp4"
    TCP6 = "tcp6"
    SNI = "sni"

    @property
    def is_tcp(self) -> bool:
        """True for the raw TCP variants."""
        return self in (TunnelProtocol.TCP, TunnelProtocol.TCP4, TunnelProtocol.TCP6)


class TunnelDefinition(BaseModel):
    """A named mapping from a public identity to a local service endpoint."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
        extra="forbid",
    )

    name: str = Field(min_length=1, description="Tunnel name, unique in a manifest")
    protocol: TunnelProtocol = Field(alias="proto", description="Wire protocol")
    host: str = Field(default="", description="Public host for HTTP and SNI tunnels")
    local_addr: str = Field(
        default="", alias="addr", description="Local dial target or upstream URL"
    )
    remote_addr: str = Field(
        default="", description="Public address for TCP tunnels"
    )
    auth: str | None = Field(default=None, description="Basic auth credentials")


class BackoffSettings(BaseModel):
    """Reconnection backoff settings as written in the manifest."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    interval: timedelta = Field(default=DEFAULT_BACKOFF_INTERVAL)
    multiplier: float = Field(default=DEFAULT_BACKOFF_MULTIPLIER)
    max_interval: timedelta = Field(default=DEFAULT_BACKOFF_MAX_INTERVAL)
    max_time: timedelta = Field(default=DEFAULT_BACKOFF_MAX_TIME)

    @field_validator("interval", "max_interval", "max_time", mode="before")
    @classmethod
    def parse_durations(cls, v: Any) -> Any:
        """Accept "500ms" style strings and plain seconds."""
        if isinstance(v, str):
            return parse_duration(v)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return timedelta(seconds=v)
        return v


class Manifest(BaseModel):
    """Named tunnel definitions plus server settings for one client run."""

    model_config = ConfigDict(
        frozen=True, str_strip_whitespace=True, coerce_numbers_to_str=True, extra="forbid"
    )

    server_addr: str = Field(default="", description="Tunnel server address")
    root_ca: str | None = Field(default=None, description="Root CA PEM file path")
    tls_crt: str = Field(default=DEFAULT_TLS_CRT, description="Client certificate")
    tls_key: str = Field(default=DEFAULT_TLS_KEY, description="Client private key")
    backoff: BackoffSettings = Field(default_factory=BackoffSettings)
    tunnels: dict[str, TunnelDefinition] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def name_tunnels(cls, data: Any) -> Any:
        """Fill each tunnel's name from its mapping key."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        tunnels = data.get("tunnels")
        if tunnels is None:
            data["tunnels"] = {}
        elif isinstance(tunnels, dict):
            named = {}
            for name, tunnel in tunnels.items():
                if isinstance(tunnel, dict) and "name" not in tunnel:
                    tunnel = {**tunnel, "name": str(name)}
                named[str(name)] = tunnel
            data["tunnels"] = named

        if data.get("backoff") is None:
            data.pop("backoff", None)

        return data

    @property
    def tunnel_names(self) -> list[str]:
        """Tunnel names in ascending order."""
        return sorted(self.tunnels)

    def with_tunnels(self, tunnels: dict[str, TunnelDefinition]) -> "Manifest":
        """Create new manifest holding only the given tunnels (immutable pattern).

        Args:
            tunnels: Replacement tunnel mapping

        Returns:
            New manifest with every other field unchanged
        """
        return self.model_copy(update={"tunnels": dict(tunnels)})


class Command(str, Enum):
    """Command line commands."""

    ID = "id"
    LIST = "list"
    START = "start"
    START_ALL = "start-all"
    QSTART = "qstart"


class Invocation(BaseModel):
    """Parsed command line."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    command: Command | None = Field(
        default=None, description="None only when --version short-circuits parsing"
    )
    args: tuple[str, ...] = Field(default=(), description="Command arguments")
    host: str = Field(default=DEFAULT_QUICK_START_HOST)
    port: int = Field(default=DEFAULT_QUICK_START_PORT, ge=1, le=65535)
    protocol: TunnelProtocol = Field(default=TunnelProtocol.HTTP)
    config_path: str = Field(default=DEFAULT_CONFIG_PATH)
    log_level: int = Field(default=DEFAULT_LOG_LEVEL, ge=0, le=3)
    show_version: bool = Field(default=False)
