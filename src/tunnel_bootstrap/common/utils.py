"""Address and duration helpers shared by the manifest loader and TLS builder."""

import re
from datetime import timedelta

# Port range constants
MIN_PORT = 1
MAX_PORT = 65535

DEFAULT_HOST = "127.0.0.1"

# Unit lengths in nanoseconds
_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def validate_port(port: int, port_name: str = "Port") -> None:
    """Validate port number range.

    Args:
        port: Port number to validate
        port_name: Name of the port for error messages

    Raises:
        ValueError: If port is not in valid range (1-65535)
    """
    if not isinstance(port, int) or not (MIN_PORT <= port <= MAX_PORT):
        raise ValueError(f"{port_name} must be between {MIN_PORT} and {MAX_PORT}")


def split_host_port(addr: str) -> tuple[str, str]:
    """Split "host:port", "[ipv6]:port" or ":port" into host and port.

    Args:
        addr: Network address

    Returns:
        Tuple of (host, port), IPv6 brackets removed

    Raises:
        ValueError: If the address has no separable port
    """
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0:
            raise ValueError(f"address {addr}: missing ']' in address")
        if addr[end + 1 : end + 2] != ":":
            raise ValueError(f"address {addr}: missing port in address")
        host, port = addr[1:end], addr[end + 2 :]
        if ":" in port:
            raise ValueError(f"address {addr}: too many colons in address")
        return host, port

    if ":" not in addr:
        raise ValueError(f"address {addr}: missing port in address")

    host, _, port = addr.rpartition(":")
    if ":" in host:
        raise ValueError(f"address {addr}: too many colons in address")
    return host, port


def join_host_port(host: str, port: str) -> str:
    """Inverse of split_host_port, bracketing IPv6 hosts."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def normalize_address(addr: str) -> str:
    """Normalize a dial address.

    A bare port number becomes ":port" and an empty host becomes 127.0.0.1.

    Args:
        addr: Address such as "8080", ":8080" or "example.com:8080"

    Returns:
        Address in "host:port" form

    Raises:
        ValueError: If the address has no separable port
    """
    if addr.isdigit():
        addr = f":{addr}"

    host, port = split_host_port(addr)
    if not host:
        host = DEFAULT_HOST

    return join_host_port(host, port)


def parse_duration(value: str) -> timedelta:
    """Parse a duration string such as "500ms", "1m30s" or "1.5h".

    Args:
        value: Sequence of decimal numbers with unit suffixes, optionally signed

    Returns:
        Parsed duration

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = value.strip()
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)

    if not text:
        raise ValueError(f"invalid duration {value!r}")

    nanoseconds = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        nanoseconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos != len(text):
        raise ValueError(f"invalid duration {value!r}")

    return timedelta(microseconds=sign * nanoseconds / 1000)


def mask_sensitive_data(
    value: str | None, mask_char: str = "*", show_chars: int = 4
) -> str:
    """Mask sensitive data for logging while preserving some characters for debugging.

    Args:
        value: Sensitive string to mask (e.g., tunnel auth credentials)
        mask_char: Character to use for masking
        show_chars: Number of characters to show at the end

    Returns:
        Masked string safe for logging
    """
    if not value:
        return "<None>"

    if len(value) <= show_chars:
        return mask_char * len(value)

    masked_length = len(value) - show_chars
    return mask_char * masked_length + value[-show_chars:]
