"""SSL inspector - validates TLS certificates and classifies SSL errors."""
import asyncio
import logging
import socket
import ssl
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlsplit

from cryptography import x509
from cryptography.x509.oid import NameOID

logger = logging.getLogger(__name__)

SSL_CHECK_TIMEOUT_SECONDS = 10

# Substrings (matched case-insensitively) that mark a certificate problem.
# Both Node-style codes and the OpenSSL wording Python surfaces are listed.
SSL_ERROR_PATTERNS = [
    "self-signed certificate",
    "self signed certificate",
    "DEPTH_ZERO_SELF_SIGNED_CERT",
    "SELF_SIGNED_CERT_IN_CHAIN",
    "UNABLE_TO_VERIFY_LEAF_SIGNATURE",
    "unable to verify the first certificate",
    "certificate has expired",
    "CERT_HAS_EXPIRED",
    "unable to get local issuer certificate",
    "UNABLE_TO_GET_ISSUER_CERT_LOCALLY",
    "ERR_TLS_CERT_ALTNAME_INVALID",
    "hostname/IP does not match",
    "hostname mismatch",
    "certificate is not valid for",
    "CERTIFICATE_VERIFY_FAILED",
]


@dataclass
class SslInfo:
    """Result of a certificate inspection."""
    valid: bool
    error: Optional[str] = None
    expires_at: Optional[str] = None
    days_until_expiry: Optional[int] = None
    issuer: Optional[str] = None
    subject: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def is_ssl_error(error_message: Optional[str]) -> bool:
    """Check if an error message indicates an SSL certificate issue."""
    if not error_message:
        return False
    lower_message = error_message.lower()
    return any(pattern.lower() in lower_message for pattern in SSL_ERROR_PATTERNS)


def get_ssl_expiry_warning(days_until_expiry: int) -> Optional[str]:
    """Human-readable expiry warning, or None when the certificate is not close to expiry."""
    if days_until_expiry < 0:
        return "SSL certificate has expired"
    if days_until_expiry <= 7:
        plural = "" if days_until_expiry == 1 else "s"
        return f"SSL certificate expires in {days_until_expiry} day{plural}"
    if days_until_expiry <= 30:
        return f"SSL certificate expires in {days_until_expiry} days"
    return None


def _fetch_certificate(host: str, port: int, timeout: float) -> bytes:
    """Perform a verified TLS handshake and return the peer certificate (blocking)."""
    context = ssl.create_default_context()
    with socket.create_connection((host, port), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=host) as ssock:
            return ssock.getpeercert(binary_form=True)


def _name_attribute(name: x509.Name, oid) -> Optional[str]:
    attributes = name.get_attributes_for_oid(oid)
    if attributes:
        return str(attributes[0].value)
    return None


def parse_certificate(cert_der: bytes, hostname: str, now: Optional[datetime] = None) -> SslInfo:
    """Build SslInfo from a DER certificate."""
    cert = x509.load_der_x509_certificate(cert_der)
    expiry = cert.not_valid_after_utc
    now = now or datetime.now(timezone.utc)

    issuer = (
        _name_attribute(cert.issuer, NameOID.ORGANIZATION_NAME)
        or _name_attribute(cert.issuer, NameOID.COMMON_NAME)
        or "Unknown"
    )
    subject = _name_attribute(cert.subject, NameOID.COMMON_NAME) or hostname

    return SslInfo(
        valid=True,
        expires_at=expiry.isoformat(),
        # timedelta.days floors, so expired certificates go negative
        days_until_expiry=(expiry - now).days,
        issuer=issuer,
        subject=subject,
    )


async def check_certificate(url: str, timeout: float = SSL_CHECK_TIMEOUT_SECONDS) -> SslInfo:
    """Check the SSL certificate served for an HTTPS URL.

    Never raises: every failure is reported as SslInfo(valid=False, error=...).
    """
    try:
        parsed = urlsplit(url)
        if parsed.scheme != "https":
            return SslInfo(valid=True, error="Not an HTTPS URL - no SSL certificate to check")

        host = parsed.hostname
        if not host:
            return SslInfo(valid=False, error="URL has no hostname")
        port = parsed.port or 443
    except ValueError as e:
        return SslInfo(valid=False, error=str(e))

    try:
        # Socket operations are blocking, run the handshake in the thread pool
        loop = asyncio.get_running_loop()
        cert_der = await asyncio.wait_for(
            loop.run_in_executor(None, _fetch_certificate, host, port, timeout),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        return SslInfo(valid=False, error=f"SSL check timeout after {int(timeout * 1000)}ms")
    except ssl.SSLCertVerificationError as e:
        return SslInfo(valid=False, error=getattr(e, "verify_message", None) or str(e))
    except (ssl.SSLError, OSError) as e:
        return SslInfo(valid=False, error=str(e) or type(e).__name__)
    except UnicodeError as e:
        # Hostname rejected by the IDNA codec
        return SslInfo(valid=False, error=f"Invalid hostname: {e}")

    if not cert_der:
        return SslInfo(valid=False, error="No certificate provided")

    try:
        return parse_certificate(cert_der, host)
    except ValueError as e:
        logger.warning(f"Could not parse certificate for {host}: {e}")
        return SslInfo(valid=False, error=f"Could not parse certificate: {e}")
