"""Shared pytest fixtures for tunnel bootstrap tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from tunnel_bootstrap.tls import StaticCertificateSource

MANIFEST_YAML = """\
server_addr: tunnel.example.com:5223
backoff:
  interval: 1s
  multiplier: 2
  max_interval: 30s
  max_time: 10m
tunnels:
  webui:
    proto: http
    addr: localhost:8080
    host: webui.example.com
  ssh:
    proto: tcp
    addr: 192.168.0.5:22
    remote_addr: 0.0.0.0:22
  www:
    proto: sni
    addr: localhost:443
    host: www.example.com
"""


def _generate(common_name: str) -> tuple[bytes, bytes]:
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return cert_pem, key_pem


@pytest.fixture
def make_key_pair():
    """Factory creating self-signed (certificate_pem, key_pem) pairs.

    Returns:
        Callable: make_key_pair(common_name="tunnel-client")
    """
    return lambda common_name="tunnel-client": _generate(common_name)


@pytest.fixture
def key_pair(make_key_pair):
    """A self-signed client certificate and its key as PEM bytes."""
    return make_key_pair()


@pytest.fixture
def certificate_source(key_pair):
    """In-memory credential source for the client key pair."""
    cert_pem, key_pem = key_pair
    return StaticCertificateSource(cert_pem, key_pem)


@pytest.fixture
def config_dir(tmp_path, key_pair):
    """Directory holding tunnel.yml plus client.crt and client.key.

    Returns:
        Path: Directory containing the manifest and credential files
    """
    cert_pem, key_pem = key_pair
    (tmp_path / "client.crt").write_bytes(cert_pem)
    (tmp_path / "client.key").write_bytes(key_pem)
    (tmp_path / "tunnel.yml").write_text(MANIFEST_YAML)
    return tmp_path


@pytest.fixture
def manifest_path(config_dir):
    """Path to a valid manifest with one tunnel per protocol family."""
    return config_dir / "tunnel.yml"


@pytest.fixture
def write_manifest(tmp_path):
    """Factory writing YAML text to a manifest file.

    Returns:
        Callable: write_manifest(text, name="tunnel.yml") -> Path
    """

    def _write(text: str, name: str = "tunnel.yml"):
        path = tmp_path / name
        path.write_text(text)
        return path

    return _write


@pytest.fixture
def mock_runtime():
    """Tunnel runtime whose start() returns immediately."""
    runtime = Mock()
    runtime.start.return_value = None
    return runtime


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset structlog after each test.

    Bootstrap runs reconfigure logging, this keeps tests independent.
    """
    yield
    structlog.reset_defaults()
