"""Resolve backend services into upstream nodes."""

from dataclasses import dataclass

from kubegate.core.config import TranslatorConfig
from kubegate.core.exceptions import (
    ResourceNotFoundError,
    ServicePortNotDefinedError,
    TranslateError,
)
from kubegate.core.models import Node
from kubegate.interfaces.resource_provider import (
    EndpointsInfo,
    ResourceProvider,
    ServiceInfo,
    ServicePort,
)
from kubegate.resources.upstream import UpstreamResource
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)

GRANULARITY_ENDPOINTS = "endpoints"
GRANULARITY_SERVICE = "service"


@dataclass
class ResolvedBackend:
    """A backend service port together with its nodes and override."""

    service: ServiceInfo
    port: ServicePort
    nodes: list[Node]
    override: UpstreamResource | None = None


def find_service_port(service: ServiceInfo, port: int | str) -> ServicePort:
    """Find a service port by number or by name.

    Raises:
        ServicePortNotDefinedError: If the service declares no such port
    """
    for candidate in service.ports:
        if isinstance(port, int) and candidate.port == port:
            return candidate
        if isinstance(port, str) and candidate.name == port:
            return candidate
    raise ServicePortNotDefinedError(
        f"service.spec.ports: port {port} not defined on service {service.namespace}/{service.name}"
    )


def labels_match(labels: dict[str, str], selector: dict[str, str] | None) -> bool:
    if not selector:
        return True
    return all(labels.get(key) == value for key, value in selector.items())


def endpoint_nodes(
    endpoints: EndpointsInfo,
    port: ServicePort,
    selector: dict[str, str] | None = None,
    weight: int = 100,
) -> list[Node]:
    """Build nodes from endpoint addresses serving a service port.

    Endpoint ports are matched to the service port by name; an unnamed
    service port matches an endpoint subset exposing a single port.
    """
    nodes = []
    for subset in endpoints.subsets:
        target = None
        for ep_port in subset.ports:
            if ep_port.name == port.name:
                target = ep_port
                break
        if target is None and not port.name and len(subset.ports) == 1:
            target = subset.ports[0]
        if target is None:
            continue

        for address in subset.addresses:
            if labels_match(address.labels, selector):
                nodes.append(Node(host=address.ip, port=target.port, weight=weight))
    return nodes


class NodeResolver:
    """Look up services, endpoints and overrides for a backend reference."""

    def __init__(self, provider: ResourceProvider, config: TranslatorConfig):
        self.provider = provider
        self.config = config

    def get_override(self, namespace: str, service_name: str) -> UpstreamResource | None:
        try:
            return self.provider.get_upstream(namespace, service_name)
        except ResourceNotFoundError:
            return None

    def resolve(
        self,
        namespace: str,
        service_name: str,
        service_port: int | str,
        subset: str = "",
        resolve_granularity: str = GRANULARITY_ENDPOINTS,
    ) -> ResolvedBackend:
        """Resolve a backend reference into nodes.

        Args:
            namespace: Namespace of the referencing resource
            service_name: Backend service name
            service_port: Service port number or name
            subset: Optional subset name defined by the service's ApisixUpstream
            resolve_granularity: "endpoints" for pod IPs, "service" for the cluster IP

        Returns:
            Resolved backend

        Raises:
            ResourceNotFoundError: If the service does not exist
            ServicePortNotDefinedError: If the port is not declared on the service
            TranslateError: If service granularity is asked of a headless service
        """
        service = self.provider.get_service(namespace, service_name)
        port = find_service_port(service, service_port)

        if resolve_granularity == GRANULARITY_SERVICE and service.headless:
            raise TranslateError("conflict headless service and backend resolve granularity")

        override = self.get_override(namespace, service_name)
        selector = None
        if subset:
            if override is None:
                logger.warning(
                    "subset_without_upstream",
                    namespace=namespace,
                    service=service_name,
                    subset=subset,
                )
                return ResolvedBackend(service=service, port=port, nodes=[], override=None)
            selector = override.spec.subset_labels(subset)
            if selector is None:
                logger.warning(
                    "subset_not_defined", namespace=namespace, service=service_name, subset=subset
                )
                return ResolvedBackend(service=service, port=port, nodes=[], override=override)

        weight = self.config.default_weight
        if resolve_granularity == GRANULARITY_SERVICE:
            nodes = [Node(host=service.cluster_ip, port=port.port, weight=weight)]
        else:
            nodes = self._endpoint_nodes(namespace, service_name, port, selector, weight)

        return ResolvedBackend(service=service, port=port, nodes=nodes, override=override)

    def _endpoint_nodes(
        self,
        namespace: str,
        service_name: str,
        port: ServicePort,
        selector: dict[str, str] | None,
        weight: int,
    ) -> list[Node]:
        try:
            endpoints = self.provider.get_endpoints(namespace, service_name)
        except ResourceNotFoundError:
            logger.debug("endpoints_not_found", namespace=namespace, service=service_name)
            return []
        return endpoint_nodes(endpoints, port, selector, weight)
