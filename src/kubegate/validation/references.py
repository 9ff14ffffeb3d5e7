"""Best-effort existence checks for Services and Secrets a resource references.

Missing references produce warnings, never errors: a route pointing at a
Service that does not exist yet is valid, it just will not serve traffic.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from kubegate.core.exceptions import KubegateError, ResourceNotFoundError
from kubegate.interfaces.exceptions import InterfaceError
from kubegate.interfaces.resource_provider import ResourceProvider
from kubegate.resources.consumer import ApisixConsumerResource, ConsumerResource
from kubegate.resources.gateway import GatewayResource
from kubegate.resources.gateway_route import GatewayRouteResource
from kubegate.resources.ingress import IngressResource
from kubegate.resources.route import Plugin, RouteResource
from kubegate.resources.tls import ApisixTlsResource
from kubegate.resources.upstream import UpstreamResource
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ServiceRef:
    """A Service a resource depends on."""

    namespace: str
    name: str


@dataclass(frozen=True)
class SecretRef:
    """A Secret a resource depends on, optionally requiring one data key."""

    namespace: str
    name: str
    key: str = ""


Reference = ServiceRef | SecretRef


class ReferenceValidator:
    """Check that referenced Services and Secrets exist.

    Each call to `validate` deduplicates on its own; nothing is remembered
    between calls.
    """

    def __init__(self, provider: ResourceProvider):
        self.provider = provider

    def validate(self, refs: Iterable[Reference]) -> list[str]:
        """Check references and describe the missing ones.

        Args:
            refs: References in the order they should be reported

        Returns:
            One warning per missing reference. Lookup failures other than
            not-found are logged and produce no warning.
        """
        warnings: list[str] = []
        seen: set[tuple[str, str, str, str]] = set()
        for ref in refs:
            if not ref.namespace or not ref.name:
                continue
            kind = "Service" if isinstance(ref, ServiceRef) else "Secret"
            key = (kind, ref.namespace, ref.name, getattr(ref, "key", ""))
            if key in seen:
                continue
            seen.add(key)

            warning = self._check(ref)
            if warning:
                warnings.append(warning)
        return warnings

    def _check(self, ref: Reference) -> str | None:
        try:
            if isinstance(ref, ServiceRef):
                self.provider.get_service(ref.namespace, ref.name)
                return None
            secret = self.provider.get_secret(ref.namespace, ref.name)
        except ResourceNotFoundError:
            kind = "Service" if isinstance(ref, ServiceRef) else "Secret"
            return f"Referenced {kind} '{ref.namespace}/{ref.name}' not found"
        except (KubegateError, InterfaceError) as e:
            logger.error(
                "reference_lookup_failed",
                namespace=ref.namespace,
                name=ref.name,
                error=str(e),
            )
            return None

        if ref.key and ref.key not in secret.data:
            return f"Referenced Secret '{ref.namespace}/{ref.name}' is missing key '{ref.key}'"
        return None


def _plugin_secrets(namespace: str, plugins: list[Plugin]) -> list[SecretRef]:
    return [
        SecretRef(namespace, plugin.secret_ref)
        for plugin in plugins
        if plugin.enable and plugin.secret_ref
    ]


def route_references(route: RouteResource) -> list[Reference]:
    """Backends and plugin secrets of every HTTP and stream rule."""
    namespace = route.namespace
    refs: list[Reference] = []
    for rule in route.spec.http:
        refs.extend(ServiceRef(namespace, backend.service_name) for backend in rule.backends)
        refs.extend(_plugin_secrets(namespace, rule.plugins))
    for rule in route.spec.stream:
        refs.append(ServiceRef(namespace, rule.backend.service_name))
        refs.extend(_plugin_secrets(namespace, rule.plugins))
    return refs


def tls_references(tls: ApisixTlsResource) -> list[Reference]:
    refs: list[Reference] = [SecretRef(tls.spec.secret.namespace, tls.spec.secret.name)]
    if tls.spec.client is not None:
        ca = tls.spec.client.ca_secret
        refs.append(SecretRef(ca.namespace, ca.name))
    return refs


def upstream_references(upstream: UpstreamResource) -> list[Reference]:
    """Client certificate secrets of an ApisixUpstream and its port overrides."""
    refs: list[Reference] = []
    for config in [upstream.spec, *upstream.spec.port_level_settings]:
        if config.tls_secret is not None:
            refs.append(SecretRef(config.tls_secret.namespace, config.tls_secret.name))
    return refs


def ingress_references(ingress: IngressResource) -> list[Reference]:
    namespace = ingress.namespace
    refs: list[Reference] = [
        ServiceRef(namespace, backend.service.name)
        for backend in ingress.spec.backends()
        if backend.service is not None
    ]
    refs.extend(SecretRef(namespace, tls.secret_name) for tls in ingress.spec.tls)
    return refs


def gateway_references(gateway: GatewayResource) -> list[Reference]:
    """Secrets referenced by listener certificateRefs."""
    refs: list[Reference] = []
    for listener in gateway.spec.listeners:
        if listener.tls is None:
            continue
        for cert_ref in listener.tls.certificate_refs:
            if cert_ref.kind != "Secret" or cert_ref.group != "":
                continue
            refs.append(SecretRef(cert_ref.namespace or gateway.namespace, cert_ref.name))
    return refs


def gateway_route_references(route: GatewayRouteResource) -> list[Reference]:
    """Service backends and request-mirror targets of a Gateway API route.

    Backends of other groups or kinds are not checked.
    """
    return [
        ServiceRef(backend.namespace or route.namespace, backend.name)
        for backend in route.backend_objects()
        if backend.name and backend.is_service()
    ]


def apisix_consumer_references(consumer: ApisixConsumerResource) -> list[Reference]:
    """Secrets behind each configured authentication method, in the consumer's namespace."""
    return [
        SecretRef(consumer.namespace, auth.secret_ref.name)
        for auth in consumer.spec.auth_parameter.methods()
        if auth.secret_ref is not None and auth.secret_ref.name
    ]


def consumer_references(consumer: ConsumerResource) -> list[Reference]:
    refs: list[Reference] = []
    for credential in consumer.spec.credentials:
        secret = credential.secret_ref
        if secret is None or not secret.name:
            continue
        refs.append(SecretRef(secret.namespace or consumer.namespace, secret.name))
    return refs
