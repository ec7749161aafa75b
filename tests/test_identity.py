"""Tests for client identity fingerprints."""

import base64
import hashlib
import re

import pytest

from tunnel_bootstrap.identity import fingerprint, format_digest, luhn_base32
from tunnel_bootstrap.tls import load_key_pair

FINGERPRINT_FORMAT = re.compile(r"^([A-Z2-7]{7}-){7}[A-Z2-7]{7}$")

# Digest and its formatted id, as published for syncthing device ids
KNOWN_DIGEST = base64.b32decode("P56IOI7MZJNU2IQGDREYDM2MGTMGL3BXNPQ6W5BTBBZ4TJXZWICQ====")
KNOWN_ID = "P56IOI7-MZJNU2Y-IQGDREY-DM2MGTI-MGL3BXN-PQ6W5BM-TBBZ4TJ-XZWICQ2"


class TestLuhnBase32:
    @pytest.mark.parametrize(
        ("value", "check"),
        [("A", "A"), ("B", "7"), ("BB", "5"), ("AAAA", "A")],
    )
    def test_check_character(self, value, check):
        assert luhn_base32(value) == check

    def test_invalid_character(self):
        """Characters outside the base32 alphabet are rejected"""
        with pytest.raises(ValueError, match="not valid in alphabet"):
            luhn_base32("AB1")


class TestFingerprint:
    def test_format(self):
        """Eight dash separated groups of seven base32 characters"""
        assert FINGERPRINT_FORMAT.match(fingerprint(b"certificate"))

    def test_deterministic(self):
        assert fingerprint(b"certificate") == fingerprint(b"certificate")
        assert fingerprint(b"certificate") != fingerprint(b"other certificate")

    def test_check_characters(self):
        """Every fourteenth character checks the thirteen before it"""
        compact = fingerprint(b"certificate").replace("-", "")

        for start in range(0, len(compact), 14):
            group = compact[start : start + 13]
            assert compact[start + 13] == luhn_base32(group)

    def test_certificate_fingerprint(self, certificate_source):
        der = load_key_pair(certificate_source).certificate_der

        assert FINGERPRINT_FORMAT.match(fingerprint(der))

    def test_known_digest(self):
        """A known digest formats to its published id"""
        assert format_digest(KNOWN_DIGEST) == KNOWN_ID

    def test_fingerprint_hashes_der(self):
        """fingerprint formats the SHA-256 of the certificate bytes"""
        der = b"\x30\x03\x02\x01\x01"

        assert fingerprint(der) == format_digest(hashlib.sha256(der).digest())
