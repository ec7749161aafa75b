"""Client identity derived from the client certificate."""

import base64
import hashlib

BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

GROUP_SIZE = 13
CHUNK_SIZE = 7


def luhn_base32(s: str) -> str:
    """Luhn mod 32 check character of a base32 string.

    Raises:
        ValueError: If s holds a character outside the base32 alphabet
    """
    factor = 1
    total = 0
    n = len(BASE32_ALPHABET)
    for char in s:
        codepoint = BASE32_ALPHABET.find(char)
        if codepoint < 0:
            raise ValueError(f"digit {char!r} not valid in alphabet {BASE32_ALPHABET!r}")
        addend = factor * codepoint
        factor = 1 if factor == 2 else 2
        total += addend // n + addend % n
    return BASE32_ALPHABET[(n - total % n) % n]


def fingerprint(der: bytes) -> str:
    """Fingerprint of a DER certificate.

    SHA-256 digest in unpadded base32, one Luhn check character after every
    13 characters, split into dash separated groups of 7.

    Args:
        der: Raw certificate bytes

    Returns:
        Fingerprint such as "AAAAAAA-BBBBBBB-..." (8 groups)
    """
    return format_digest(hashlib.sha256(der).digest())


def format_digest(digest: bytes) -> str:
    """Render a SHA-256 digest as a checked, dash grouped base32 string."""
    encoded = base64.b32encode(digest).decode("ascii").rstrip("=")

    groups = [encoded[i : i + GROUP_SIZE] for i in range(0, len(encoded), GROUP_SIZE)]
    checked = "".join(group + luhn_base32(group) for group in groups)

    return "-".join(checked[i : i + CHUNK_SIZE] for i in range(0, len(checked), CHUNK_SIZE))
