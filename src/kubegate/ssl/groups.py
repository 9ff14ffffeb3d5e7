"""Resolve which gateway group a TLS-bearing resource is served by."""

from dataclasses import dataclass

from kubegate.core.config import TranslatorConfig
from kubegate.core.exceptions import ResourceNotFoundError
from kubegate.interfaces.resource_provider import IngressClassInfo, ResourceProvider
from kubegate.resources.common import KubernetesResource
from kubegate.resources.gateway import GatewayResource, ParametersReference
from kubegate.resources.ingress import IngressResource
from kubegate.resources.tls import ApisixTlsResource
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)

GATEWAY_PROXY_KIND = "GatewayProxy"
INGRESS_CLASS_ANNOTATION = "kubernetes.io/ingress.class"
DEFAULT_PARAMETERS_NAMESPACE = "default"


@dataclass(frozen=True)
class GatewayGroup:
    """A set of resources served by the same data plane."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


def _is_gateway_proxy(ref: ParametersReference | None) -> bool:
    return ref is not None and ref.kind == GATEWAY_PROXY_KIND and bool(ref.name)


class GatewayGroupResolver:
    """Map Gateways, Ingresses and ApisixTls resources to gateway groups.

    Resources only share a group when the class they belong to is managed by
    the configured controller and points at the same GatewayProxy
    parameters object.
    """

    def __init__(self, provider: ResourceProvider, config: TranslatorConfig):
        self.provider = provider
        self.config = config

    def resolve(self, resource: KubernetesResource) -> GatewayGroup | None:
        """Resolve the gateway group of a resource.

        Args:
            resource: Gateway, Ingress or ApisixTls

        Returns:
            The group, or None when the resource is not served by this
            controller or has no GatewayProxy parameters

        Raises:
            ResourceProviderError: If a class lookup fails
        """
        if isinstance(resource, GatewayResource):
            return self.resolve_gateway(resource)
        if isinstance(resource, IngressResource):
            class_name = resource.spec.ingress_class_name or resource.metadata.annotations.get(
                INGRESS_CLASS_ANNOTATION, ""
            )
            return self._resolve_by_ingress_class(class_name)
        if isinstance(resource, ApisixTlsResource):
            return self._resolve_by_ingress_class(resource.spec.ingress_class_name)
        return None

    def resolve_gateway(self, gateway: GatewayResource) -> GatewayGroup | None:
        infrastructure = gateway.spec.infrastructure
        if infrastructure is not None and _is_gateway_proxy(infrastructure.parameters_ref):
            return GatewayGroup(gateway.namespace, infrastructure.parameters_ref.name)

        try:
            gateway_class = self.provider.get_gateway_class(gateway.spec.gateway_class_name)
        except ResourceNotFoundError:
            logger.debug(
                "gateway_class_not_found",
                gateway=f"{gateway.namespace}/{gateway.name}",
                gateway_class=gateway.spec.gateway_class_name,
            )
            return None

        if gateway_class.controller_name != self.config.controller_name:
            return None
        params = gateway_class.parameters
        if not _is_gateway_proxy(params):
            return None
        return GatewayGroup(params.namespace or gateway.namespace, params.name)

    def find_ingress_class(self, class_name: str) -> IngressClassInfo | None:
        """Find the IngressClass managed by this controller.

        With an empty name the first default class of this controller is
        returned.
        """
        if class_name:
            try:
                ingress_class = self.provider.get_ingress_class(class_name)
            except ResourceNotFoundError:
                return None
            if ingress_class.controller != self.config.controller_name:
                return None
            return ingress_class

        for ingress_class in self.provider.list_ingress_classes():
            if ingress_class.is_default and ingress_class.controller == self.config.controller_name:
                return ingress_class
        return None

    def _resolve_by_ingress_class(self, class_name: str) -> GatewayGroup | None:
        ingress_class = self.find_ingress_class(class_name)
        if ingress_class is None or not _is_gateway_proxy(ingress_class.parameters):
            return None
        params = ingress_class.parameters
        return GatewayGroup(params.namespace or DEFAULT_PARAMETERS_NAMESPACE, params.name)
