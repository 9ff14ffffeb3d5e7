"""Certificate inspection for TLS secrets."""

import hashlib
from dataclasses import dataclass

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding

from kubegate.core.exceptions import CertificateError
from kubegate.interfaces.resource_provider import ResourceProvider, SecretInfo
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)

MISSING_CERT = "missing cert field"
MISSING_KEY = "missing key field"
UNKNOWN_FORMAT = "unknown secret format"
INVALID_PEM = "certificate is not valid PEM data"

# (certificate key, private key) pairs, in lookup order.
KEY_PAIR_FORMATS = (
    ("cert", "key"),
    ("tls.crt", "tls.key"),
)
CA_CERT_KEY = "ca.crt"


def extract_key_pair(
    secret: SecretInfo | None, include_private_key: bool
) -> tuple[bytes, bytes | None]:
    """Extract the certificate and, optionally, the private key from a secret.

    Supported layouts, in order: `cert`/`key`, `tls.crt`/`tls.key`, and a
    bare `ca.crt` when no private key is wanted.

    Args:
        secret: Secret to read
        include_private_key: Whether the private key is required

    Returns:
        Tuple of (certificate PEM, private key PEM or None)

    Raises:
        CertificateError: If the secret lacks the required fields
    """
    if secret is None:
        raise CertificateError(MISSING_CERT)

    for cert_key, private_key in KEY_PAIR_FORMATS:
        if cert_key in secret.data:
            if not include_private_key:
                return secret.data[cert_key], None
            if private_key not in secret.data:
                raise CertificateError(MISSING_KEY)
            return secret.data[cert_key], secret.data[private_key]

    if CA_CERT_KEY in secret.data and not include_private_key:
        return secret.data[CA_CERT_KEY], None

    raise CertificateError(UNKNOWN_FORMAT)


def parse_certificate(cert_pem: bytes) -> x509.Certificate:
    """Parse the leaf (first) certificate of a PEM bundle.

    Raises:
        CertificateError: If the data is not a PEM encoded certificate
    """
    try:
        return x509.load_pem_x509_certificate(cert_pem)
    except ValueError as e:
        raise CertificateError(INVALID_PEM) from e


def certificate_hash(cert: x509.Certificate) -> str:
    """SHA-256 hex digest of the certificate's DER encoding.

    Hashing DER rather than PEM makes the result independent of line
    endings, whitespace and the rest of the chain.
    """
    return hashlib.sha256(cert.public_bytes(Encoding.DER)).hexdigest()


def extract_hosts(cert: x509.Certificate) -> list[str]:
    """Return the DNS subject alternative names, skipping a bare "*"."""
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    return [name for name in san.value.get_values_for_type(x509.DNSName) if name != "*"]


def normalize_host(host: str) -> str:
    return host.strip().lower().rstrip(".")


def normalize_hosts(hosts: list[str] | None) -> list[str]:
    """Lowercase, trim and deduplicate hostnames, keeping first-seen order.

    Empty entries are dropped.
    """
    normalized: list[str] = []
    seen: set[str] = set()
    for host in hosts or []:
        candidate = normalize_host(host)
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        normalized.append(candidate)
    return normalized


@dataclass(frozen=True)
class CertificateInfo:
    """What conflict detection needs to know about a TLS secret."""

    hash: str
    hosts: list[str]


class SecretCertificateCache:
    """Per-call cache of parsed TLS secrets.

    Create one per detection call; it must not outlive the call, or updated
    secrets would be missed.
    """

    def __init__(self, provider: ResourceProvider):
        self.provider = provider
        self._entries: dict[tuple[str, str], CertificateInfo] = {}

    def get(self, namespace: str, name: str) -> CertificateInfo:
        """Load, parse and hash the certificate stored in a secret.

        Args:
            namespace: Secret namespace
            name: Secret name

        Returns:
            Certificate hash and normalized SAN hosts

        Raises:
            CertificateError: If the reference is incomplete or the secret
                holds no usable certificate
            ResourceNotFoundError: If the secret does not exist
        """
        if not namespace or not name:
            raise CertificateError("secret reference requires both namespace and name")

        key = (namespace, name)
        cached = self._entries.get(key)
        if cached is not None:
            return cached

        secret = self.provider.get_secret(namespace, name)
        cert_pem, _ = extract_key_pair(secret, include_private_key=False)
        cert = parse_certificate(cert_pem)

        info = CertificateInfo(
            hash=certificate_hash(cert), hosts=normalize_hosts(extract_hosts(cert))
        )
        self._entries[key] = info
        logger.debug("certificate_loaded", namespace=namespace, name=name, hosts=info.hosts)
        return info

    def __len__(self) -> int:
        return len(self._entries)
