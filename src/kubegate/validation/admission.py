"""Admission checks for resources entering the cluster.

Each `validate_*` method returns a list of warnings for the API server to
relay to the user. Only SSL conflicts reject a resource outright.
"""

from kubegate.core.config import TranslatorConfig
from kubegate.core.exceptions import (
    KubegateError,
    ResourceNotFoundError,
    SSLConflictError,
    UnsupportedResourceError,
)
from kubegate.interfaces.exceptions import InterfaceError
from kubegate.interfaces.resource_provider import ResourceProvider
from kubegate.resources.common import KubernetesResource
from kubegate.resources.consumer import ApisixConsumerResource, ConsumerResource
from kubegate.resources.gateway import GatewayResource
from kubegate.resources.gateway_route import GatewayRouteResource
from kubegate.resources.ingress import IngressResource
from kubegate.resources.route import RouteResource
from kubegate.resources.tls import ApisixTlsResource
from kubegate.resources.upstream import UpstreamResource
from kubegate.ssl.conflict_detector import ConflictDetector, format_conflicts
from kubegate.ssl.groups import GatewayGroupResolver
from kubegate.utils.logging import bind_resource, clear_resource, get_logger, log_operation
from kubegate.validation.references import (
    ReferenceValidator,
    apisix_consumer_references,
    consumer_references,
    gateway_references,
    gateway_route_references,
    ingress_references,
    route_references,
    tls_references,
    upstream_references,
)

logger = get_logger(__name__)

# Ingress annotations of the 1.x controller that have no 2.0.0 equivalent.
UNSUPPORTED_INGRESS_ANNOTATIONS = frozenset(
    f"k8s.apisix.apache.org/{name}"
    for name in (
        "use-regex",
        "enable-websocket",
        "plugin-config-name",
        "upstream-scheme",
        "upstream-retries",
        "upstream-connect-timeout",
        "upstream-read-timeout",
        "upstream-send-timeout",
        "enable-cors",
        "cors-allow-origin",
        "cors-allow-headers",
        "cors-allow-methods",
        "enable-csrf",
        "csrf-key",
        "http-to-https",
        "http-redirect",
        "http-redirect-code",
        "rewrite-target",
        "rewrite-target-regex",
        "rewrite-target-regex-template",
        "enable-response-rewrite",
        "response-rewrite-status-code",
        "response-rewrite-body",
        "response-rewrite-body-base64",
        "response-rewrite-add-header",
        "response-rewrite-set-header",
        "response-rewrite-remove-header",
        "auth-uri",
        "auth-ssl-verify",
        "auth-request-headers",
        "auth-upstream-headers",
        "auth-client-headers",
        "allowlist-source-range",
        "blocklist-source-range",
        "http-allow-methods",
        "http-block-methods",
        "auth-type",
        "svc-namespace",
    )
)


def unsupported_annotation_warnings(ingress: IngressResource) -> list[str]:
    """Warn about legacy annotations the controller ignores."""
    warnings = []
    for annotation in ingress.metadata.annotations:
        if annotation in UNSUPPORTED_INGRESS_ANNOTATIONS:
            warnings.append(
                f"Annotation '{annotation}' is not supported in APISIX Ingress Controller 2.0.0."
            )
            logger.info(
                "unsupported_annotation_detected",
                namespace=ingress.namespace,
                name=ingress.name,
                annotation=annotation,
            )
    return warnings


class AdmissionValidator:
    """Validate resources on create and update."""

    def __init__(
        self,
        provider: ResourceProvider,
        config: TranslatorConfig,
        detector: ConflictDetector | None = None,
        references: ReferenceValidator | None = None,
    ):
        self.provider = provider
        self.config = config
        self.groups = GatewayGroupResolver(provider, config)
        self.detector = detector or ConflictDetector(provider, config, self.groups)
        self.references = references or ReferenceValidator(provider)

    def validate(self, resource: KubernetesResource) -> list[str]:
        """Validate any supported resource.

        Args:
            resource: Canonical resource model

        Returns:
            Warnings to attach to the admission response

        Raises:
            SSLConflictError: If the resource binds a host to a certificate
                that differs from the one already serving it
            UnsupportedResourceError: For resource types without checks
        """
        bind_resource(resource.kind, resource.namespace, resource.name)
        log_operation(logger, "admission_review")
        try:
            if isinstance(resource, RouteResource):
                return self.validate_route(resource)
            if isinstance(resource, UpstreamResource):
                return self.validate_upstream(resource)
            if isinstance(resource, ApisixTlsResource):
                return self.validate_tls(resource)
            if isinstance(resource, IngressResource):
                return self.validate_ingress(resource)
            if isinstance(resource, GatewayResource):
                return self.validate_gateway(resource)
            if isinstance(resource, GatewayRouteResource):
                return self.validate_gateway_route(resource)
            if isinstance(resource, ApisixConsumerResource):
                return self.validate_apisix_consumer(resource)
            if isinstance(resource, ConsumerResource):
                return self.validate_consumer(resource)
            raise UnsupportedResourceError(f"no admission checks for kind {resource.kind!r}")
        finally:
            clear_resource()

    def validate_route(self, route: RouteResource) -> list[str]:
        if not self.manages_class(route.spec.ingress_class_name):
            logger.debug(
                "route_ignored_foreign_class", ingress_class=route.spec.ingress_class_name
            )
            return []
        return self.references.validate(route_references(route))

    def validate_upstream(self, upstream: UpstreamResource) -> list[str]:
        return self.references.validate(upstream_references(upstream))

    def validate_tls(self, tls: ApisixTlsResource) -> list[str]:
        if not self.manages_class(tls.spec.ingress_class_name):
            return []
        self.reject_conflicts(tls)
        return self.references.validate(tls_references(tls))

    def validate_ingress(self, ingress: IngressResource) -> list[str]:
        warnings = unsupported_annotation_warnings(ingress)
        self.reject_conflicts(ingress)
        warnings.extend(self.references.validate(ingress_references(ingress)))
        return warnings

    def validate_gateway(self, gateway: GatewayResource) -> list[str]:
        self.reject_conflicts(gateway)
        return self.references.validate(gateway_references(gateway))

    def validate_gateway_route(self, route: GatewayRouteResource) -> list[str]:
        if not self.manages_gateway_route(route):
            logger.debug("gateway_route_ignored_foreign_parents")
            return []
        return self.references.validate(gateway_route_references(route))

    def validate_apisix_consumer(self, consumer: ApisixConsumerResource) -> list[str]:
        if not self.manages_class(consumer.spec.ingress_class_name):
            return []
        return self.references.validate(apisix_consumer_references(consumer))

    def validate_consumer(self, consumer: ConsumerResource) -> list[str]:
        return self.references.validate(consumer_references(consumer))

    def reject_conflicts(self, resource: KubernetesResource) -> None:
        """Raise when the resource's TLS hosts conflict within its gateway group.

        Raises:
            SSLConflictError: With the formatted admission message
        """
        conflicts = self.detector.detect_conflicts(resource)
        if conflicts:
            logger.warning("admission_rejected_ssl_conflict", conflicts=len(conflicts))
            raise SSLConflictError(format_conflicts(conflicts), conflicts)

    def manages_class(self, class_name: str) -> bool:
        """Whether resources of an ingress class are handled by this controller.

        Resources without a class, or of the configured class, are always
        handled. Class lookup failures are logged and treated as handled.
        """
        if not class_name or class_name == self.config.ingress_class:
            return True
        try:
            return self.groups.find_ingress_class(class_name) is not None
        except (KubegateError, InterfaceError) as e:
            logger.warning("ingress_class_lookup_failed", ingress_class=class_name, error=str(e))
            return True

    def manages_gateway_route(self, route: GatewayRouteResource) -> bool:
        """Whether a route is attached to a Gateway whose class is ours.

        Routes without Gateway parents are not handled. Lookup failures are
        logged and treated as handled.
        """
        parents = [ref for ref in route.spec.parent_refs if ref.kind == "Gateway"]
        if not parents:
            return False
        try:
            gateways = {(g.namespace, g.name): g for g in self.provider.list_gateways()}
            for parent in parents:
                gateway = gateways.get((parent.namespace or route.namespace, parent.name))
                if gateway is None:
                    continue
                try:
                    gateway_class = self.provider.get_gateway_class(
                        gateway.spec.gateway_class_name
                    )
                except ResourceNotFoundError:
                    continue
                if gateway_class.controller_name == self.config.controller_name:
                    return True
        except (KubegateError, InterfaceError) as e:
            logger.warning("gateway_route_parent_lookup_failed", error=str(e))
            return True
        return False
