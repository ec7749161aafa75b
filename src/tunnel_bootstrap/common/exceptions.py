"""Custom exceptions for tunnel bootstrap."""


class BootstrapError(Exception):
    """Base exception for all tunnel bootstrap errors."""

    pass


class UsageError(BootstrapError):
    """Raised when the command line names an unknown command or wrong arguments."""

    pass


class ConfigError(BootstrapError):
    """Raised when the tunnel manifest cannot be read or parsed."""

    pass


class ValidationError(BootstrapError):
    """Raised when the requested tunnel set cannot be resolved."""

    pass


class AddressError(BootstrapError):
    """Raised when a tunnel upstream address is malformed."""

    pass


class TLSError(BootstrapError):
    """Raised when the TLS client configuration cannot be built."""

    pass


class RuntimeStartError(BootstrapError):
    """Raised when the tunnel runtime is missing or fails to start."""

    pass
