"""Common utilities and shared functionality."""

from .exceptions import (
    AddressError,
    BootstrapError,
    ConfigError,
    RuntimeStartError,
    TLSError,
    UsageError,
    ValidationError,
)
from .logging import get_logger, level_for_verbosity, setup_logging
from .utils import (
    MAX_PORT,
    MIN_PORT,
    join_host_port,
    mask_sensitive_data,
    normalize_address,
    parse_duration,
    split_host_port,
    validate_port,
)

__all__ = [
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
    "level_for_verbosity",
    "setup_logging",
    # Utils
    "validate_port",
    "split_host_port",
    "join_host_port",
    "mask_sensitive_data",
    "normalize_address",
    "parse_duration",
    "MIN_PORT",
    "MAX_PORT",
]
