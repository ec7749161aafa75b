"""TLS client configuration for the tunnel connection.

This module builds the trust configuration used to reach the tunnel server:
- Client certificate and key loading from a pluggable credential source
- Root CA trust pool construction from a PEM bundle
- Conversion into a stdlib ssl.SSLContext
"""

import os
import re
import ssl
import tempfile
from pathlib import Path
from typing import Protocol

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from pydantic import BaseModel, ConfigDict, Field

from .common.exceptions import TLSError
from .common.logging import get_logger
from .common.utils import split_host_port
from .models import Manifest

logger = get_logger(__name__)

_PEM_CERTIFICATE = re.compile(
    rb"-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----", re.DOTALL
)


class CertificateSource(Protocol):
    """Supplies the client certificate and private key as PEM bytes."""

    def load(self) -> tuple[bytes, bytes]:
        """Return (certificate_pem, private_key_pem)."""
        ...


class StaticCertificateSource:
    """Credential held in memory."""

    def __init__(self, certificate_pem: bytes, private_key_pem: bytes):
        self.certificate_pem = certificate_pem
        self.private_key_pem = private_key_pem

    def load(self) -> tuple[bytes, bytes]:
        return self.certificate_pem, self.private_key_pem


class FileCertificateSource:
    """Credential read from a certificate file and a key file."""

    def __init__(self, cert_file: str | os.PathLike[str], key_file: str | os.PathLike[str]):
        self.cert_file = Path(cert_file)
        self.key_file = Path(key_file)

    def load(self) -> tuple[bytes, bytes]:
        return self.cert_file.read_bytes(), self.key_file.read_bytes()


class KeyPair(BaseModel):
    """A client certificate with its matching private key."""

    model_config = ConfigDict(frozen=True)

    certificate_pem: bytes
    private_key_pem: bytes = Field(repr=False)
    certificate_der: bytes = Field(repr=False)


class TLSClientConfig(BaseModel):
    """TLS settings for dialing the tunnel server."""

    model_config = ConfigDict(frozen=True)

    server_name: str = Field(description="Name checked against the server certificate")
    certificate_pem: bytes = Field(description="Client certificate chain")
    private_key_pem: bytes = Field(repr=False, description="Client private key")
    root_ca_pem: bytes | None = Field(default=None, description="Trusted root CAs")
    insecure_skip_verify: bool = Field(description="Skip server certificate checks")

    def to_ssl_context(self) -> ssl.SSLContext:
        """Create an ssl.SSLContext for this configuration.

        Returns:
            Client context presenting the client certificate
        """
        ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        ctx.minimum_version = ssl.TLSVersion.TLSv1_2

        if self.insecure_skip_verify:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        elif self.root_ca_pem:
            ctx.load_verify_locations(cadata=self.root_ca_pem.decode("ascii"))
        else:
            ctx.load_default_certs()

        # load_cert_chain only reads from files
        with tempfile.TemporaryDirectory(prefix="tunnel_tls_") as tmp:
            cert_path = os.path.join(tmp, "client.crt")
            key_path = os.path.join(tmp, "client.key")
            with open(cert_path, "wb") as f:
                f.write(self.certificate_pem)
            fd = os.open(key_path, os.O_WRONLY | os.O_CREAT, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(self.private_key_pem)
            ctx.load_cert_chain(cert_path, key_path)

        return ctx


def load_key_pair(source: CertificateSource) -> KeyPair:
    """Load and cross-check the client certificate and key.

    Args:
        source: Credential source

    Returns:
        Parsed key pair

    Raises:
        TLSError: If the material is unreadable, unparsable or mismatched
    """
    try:
        cert_pem, key_pem = source.load()
        cert = x509.load_pem_x509_certificate(cert_pem)
        key = serialization.load_pem_private_key(key_pem, password=None)
    except (OSError, ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise TLSError(f"failed to load key pair: {e}") from e

    spki = serialization.PublicFormat.SubjectPublicKeyInfo
    der = serialization.Encoding.DER
    if cert.public_key().public_bytes(der, spki) != key.public_key().public_bytes(der, spki):
        raise TLSError("failed to load key pair: private key does not match public key")

    return KeyPair(
        certificate_pem=cert_pem,
        private_key_pem=key_pem,
        certificate_der=cert.public_bytes(serialization.Encoding.DER),
    )


def load_root_cas(path: str | os.PathLike[str]) -> bytes:
    """Read a PEM bundle and keep the certificates that parse.

    Args:
        path: Root CA file

    Returns:
        Concatenated PEM of the valid certificates

    Raises:
        TLSError: If the file is unreadable or holds no valid certificate
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise TLSError(f'failed to read root CA "{path}": {e.strerror or e}') from e

    pool = []
    for block in _PEM_CERTIFICATE.findall(data):
        try:
            cert = x509.load_pem_x509_certificate(block)
        except ValueError:
            logger.debug("Skipping invalid root CA block", path=str(path))
            continue
        pool.append(cert.public_bytes(serialization.Encoding.PEM))

    if not pool:
        raise TLSError(f'no valid certificates in root CA "{path}"')

    return b"".join(pool)


def build_tls_config(manifest: Manifest, source: CertificateSource) -> TLSClientConfig:
    """Build the TLS client configuration for a manifest.

    Without a root CA the server certificate is not verified, which is how
    self-signed relays are reached.

    Args:
        manifest: Resolved manifest
        source: Client credential source

    Returns:
        TLS client configuration

    Raises:
        TLSError: On bad credentials, a bad root CA or a server address without port
    """
    key_pair = load_key_pair(source)

    root_ca_pem = None
    if manifest.root_ca:
        root_ca_pem = load_root_cas(manifest.root_ca)

    try:
        host, _ = split_host_port(manifest.server_addr)
    except ValueError as e:
        raise TLSError(f"server_addr: {e}") from e

    config = TLSClientConfig(
        server_name=host,
        certificate_pem=key_pair.certificate_pem,
        private_key_pem=key_pair.private_key_pem,
        root_ca_pem=root_ca_pem,
        insecure_skip_verify=root_ca_pem is None,
    )

    if config.insecure_skip_verify:
        logger.warning("No root CA configured, server certificate is not verified")
    logger.debug("TLS configured", server_name=host, root_ca=manifest.root_ca)

    return config
