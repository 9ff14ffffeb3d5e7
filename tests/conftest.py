"""Pytest configuration and shared fixtures."""

import datetime
from collections.abc import Callable

import pytest
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
)
from cryptography.x509.oid import NameOID

from kubegate.core.config import TranslatorConfig
from kubegate.core.exceptions import ResourceNotFoundError
from kubegate.interfaces.resource_provider import (
    EndpointAddress,
    EndpointPort,
    EndpointsInfo,
    EndpointSubset,
    GatewayClassInfo,
    IngressClassInfo,
    ResourceProvider,
    SecretInfo,
    ServiceInfo,
    ServicePort,
)
from kubegate.resources.gateway import GatewayResource
from kubegate.resources.ingress import IngressResource
from kubegate.resources.tls import ApisixTlsResource
from kubegate.resources.upstream import UpstreamResource


class FakeResourceProvider(ResourceProvider):
    """In-memory ResourceProvider for unit tests.

    Objects are stored in plain dicts and lists. Entries in `errors` make a
    lookup of (kind, namespace, name) raise the given exception instead.
    """

    def __init__(self) -> None:
        self.services: dict[tuple[str, str], ServiceInfo] = {}
        self.endpoints: dict[tuple[str, str], EndpointsInfo] = {}
        self.secrets: dict[tuple[str, str], SecretInfo] = {}
        self.upstreams: dict[tuple[str, str], UpstreamResource] = {}
        self.gateway_classes: dict[str, GatewayClassInfo] = {}
        self.ingress_classes: dict[str, IngressClassInfo] = {}
        self.gateways: list[GatewayResource] = []
        self.ingresses: list[IngressResource] = []
        self.apisix_tls: list[ApisixTlsResource] = []
        self.errors: dict[tuple[str, str, str], Exception] = {}
        self.secret_reads = 0

    def _get(self, store: dict, kind: str, namespace: str, name: str):
        error = self.errors.get((kind, namespace, name))
        if error is not None:
            raise error
        key = (namespace, name) if namespace else name
        if key not in store:
            raise ResourceNotFoundError(kind, namespace, name)
        return store[key]

    def add_service(
        self,
        namespace: str,
        name: str,
        ports: list[ServicePort] | None = None,
        cluster_ip: str = "10.96.0.10",
        type: str = "ClusterIP",
        external_name: str = "",
    ) -> ServiceInfo:
        service = ServiceInfo(
            name=name,
            namespace=namespace,
            type=type,
            cluster_ip=cluster_ip,
            external_name=external_name,
            ports=ports if ports is not None else [ServicePort(name="http", port=80)],
        )
        self.services[(namespace, name)] = service
        return service

    def add_endpoints(
        self,
        namespace: str,
        name: str,
        addresses: list[tuple[str, dict[str, str]]],
        port_name: str = "http",
        port: int = 8080,
    ) -> EndpointsInfo:
        endpoints = EndpointsInfo(
            name=name,
            namespace=namespace,
            subsets=[
                EndpointSubset(
                    addresses=[EndpointAddress(ip=ip, labels=labels) for ip, labels in addresses],
                    ports=[EndpointPort(name=port_name, port=port)],
                )
            ],
        )
        self.endpoints[(namespace, name)] = endpoints
        return endpoints

    def add_secret(self, namespace: str, name: str, data: dict[str, bytes]) -> SecretInfo:
        secret = SecretInfo(name=name, namespace=namespace, data=data)
        self.secrets[(namespace, name)] = secret
        return secret

    def get_service(self, namespace: str, name: str) -> ServiceInfo:
        return self._get(self.services, "Service", namespace, name)

    def get_endpoints(self, namespace: str, name: str) -> EndpointsInfo:
        return self._get(self.endpoints, "Endpoints", namespace, name)

    def get_secret(self, namespace: str, name: str) -> SecretInfo:
        self.secret_reads += 1
        return self._get(self.secrets, "Secret", namespace, name)

    def get_upstream(self, namespace: str, name: str) -> UpstreamResource:
        return self._get(self.upstreams, "ApisixUpstream", namespace, name)

    def get_gateway_class(self, name: str) -> GatewayClassInfo:
        return self._get(self.gateway_classes, "GatewayClass", "", name)

    def get_ingress_class(self, name: str) -> IngressClassInfo:
        return self._get(self.ingress_classes, "IngressClass", "", name)

    def list_ingress_classes(self) -> list[IngressClassInfo]:
        return list(self.ingress_classes.values())

    def list_gateways(self) -> list[GatewayResource]:
        return list(self.gateways)

    def list_ingresses(self) -> list[IngressResource]:
        return list(self.ingresses)

    def list_apisix_tls(self) -> list[ApisixTlsResource]:
        return list(self.apisix_tls)


def generate_certificate(*hosts: str) -> tuple[bytes, bytes]:
    """Create a self-signed certificate with the given DNS SANs.

    Returns:
        Tuple of (certificate PEM, private key PEM)
    """
    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name(
        [x509.NameAttribute(NameOID.COMMON_NAME, hosts[0] if hosts else "kubegate-test")]
    )
    now = datetime.datetime.now(datetime.timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
    )
    if hosts:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(host) for host in hosts]), critical=False
        )
    cert = builder.sign(key, hashes.SHA256())
    key_pem = key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())
    return cert.public_bytes(Encoding.PEM), key_pem


@pytest.fixture(autouse=True)
def clear_log_context():
    """Drop structlog context and configuration left by a previous test."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def translator_config() -> TranslatorConfig:
    """Provide the default translator configuration."""
    return TranslatorConfig()


@pytest.fixture
def provider() -> FakeResourceProvider:
    """Provide an empty in-memory resource provider."""
    return FakeResourceProvider()


@pytest.fixture
def make_certificate() -> Callable[..., tuple[bytes, bytes]]:
    """Factory for self-signed certificates: make_certificate("a.com", ...)."""
    return generate_certificate


@pytest.fixture
def make_tls_secret(provider: FakeResourceProvider) -> Callable[..., SecretInfo]:
    """Factory storing a kubernetes.io/tls secret for the given hosts in `provider`."""

    def factory(namespace: str, name: str, *hosts: str) -> SecretInfo:
        cert, key = generate_certificate(*hosts)
        return provider.add_secret(namespace, name, {"tls.crt": cert, "tls.key": key})

    return factory
