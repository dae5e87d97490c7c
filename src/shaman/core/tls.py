"""TLS certificates for the HTTPS listener: load configured, or generate."""

import atexit
import logging
import os
import shutil
import ssl
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from shaman.core.config import Settings
from shaman.utils.exceptions import CertificateError, ConfigurationError

logger = logging.getLogger(__name__)

CERT_LIFETIME = timedelta(days=365)
KEY_SIZE = 2048


def generate_certificate(domain: str, directory: Optional[str] = None) -> dict:
    """
    Create a self-signed certificate for domain and write it as PEM files.

    Args:
        domain: Name placed in the subject CN and SubjectAlternativeName
        directory: Where to write the files; a private temporary directory,
            removed at exit, when omitted

    Returns:
        Keyword arguments for uvicorn's TLS options
    """
    now = datetime.now(timezone.utc)

    try:
        key = rsa.generate_private_key(public_exponent=65537, key_size=KEY_SIZE)
        name = x509.Name(
            [
                x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Shaman"),
                x509.NameAttribute(NameOID.COMMON_NAME, domain),
            ]
        )
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(minutes=5))
            .not_valid_after(now + CERT_LIFETIME)
            .add_extension(
                x509.SubjectAlternativeName([x509.DNSName(domain)]), critical=False
            )
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None), critical=True
            )
            .sign(key, hashes.SHA256())
        )
    except ValueError as e:
        raise CertificateError(f"Failed to generate cert - {e}") from e

    if directory is None:
        directory = tempfile.mkdtemp(prefix="shaman-tls-")
        atexit.register(shutil.rmtree, directory, True)

    certfile = os.path.join(directory, "api.crt")
    keyfile = os.path.join(directory, "api.key")

    try:
        with open(certfile, "wb") as f:
            f.write(cert.public_bytes(serialization.Encoding.PEM))

        fd = os.open(keyfile, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(
                key.private_bytes(
                    serialization.Encoding.PEM,
                    serialization.PrivateFormat.TraditionalOpenSSL,
                    serialization.NoEncryption(),
                )
            )
    except OSError as e:
        raise CertificateError(f"Failed to generate cert - {e}") from e

    logger.info(f"Generated self-signed certificate for {domain}")

    return {
        "ssl_certfile": certfile,
        "ssl_keyfile": keyfile,
        "ssl_keyfile_password": None,
    }


def load_certificate(settings: Settings) -> dict:
    """
    Load and verify the configured certificate, or generate one.

    Without ``api_crt`` a self-signed certificate for ``api_domain`` is
    generated. A configured chain is loaded into an SSLContext so a bad
    file, key mismatch or wrong passphrase fails at startup rather than on
    the first handshake.

    Returns:
        Keyword arguments for uvicorn's TLS options
    """
    if not settings.api_crt:
        return generate_certificate(settings.api_domain)

    if not settings.api_key:
        raise ConfigurationError("api_key is required when api_crt is set")

    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)

    try:
        context.load_cert_chain(
            settings.api_crt,
            settings.api_key,
            password=settings.api_key_password,
        )
    except (OSError, ssl.SSLError) as e:
        raise CertificateError(f"Failed to load cert - {e}") from e

    logger.info(f"Loaded certificate {settings.api_crt}")

    return {
        "ssl_certfile": settings.api_crt,
        "ssl_keyfile": settings.api_key,
        "ssl_keyfile_password": settings.api_key_password,
    }
