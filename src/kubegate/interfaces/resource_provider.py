"""Resource provider interface for read-only cluster lookups."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from kubegate.resources.gateway import GatewayResource, ParametersReference
from kubegate.resources.ingress import IngressResource
from kubegate.resources.tls import ApisixTlsResource
from kubegate.resources.upstream import UpstreamResource


@dataclass
class ServicePort:
    """Normalized service port."""

    name: str
    port: int
    target_port: int | str | None = None
    protocol: str = "TCP"


@dataclass
class ServiceInfo:
    """Normalized service information."""

    name: str
    namespace: str
    type: str = "ClusterIP"
    cluster_ip: str = ""
    external_name: str = ""
    ports: list[ServicePort] = field(default_factory=list)

    @property
    def headless(self) -> bool:
        return self.cluster_ip in ("", "None")


@dataclass
class EndpointAddress:
    """A ready endpoint address with the labels of the pod behind it."""

    ip: str
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class EndpointPort:
    name: str
    port: int
    protocol: str = "TCP"


@dataclass
class EndpointSubset:
    addresses: list[EndpointAddress] = field(default_factory=list)
    ports: list[EndpointPort] = field(default_factory=list)


@dataclass
class EndpointsInfo:
    """Normalized endpoints of a service."""

    name: str
    namespace: str
    subsets: list[EndpointSubset] = field(default_factory=list)


@dataclass
class SecretInfo:
    """Normalized secret with decoded data."""

    name: str
    namespace: str
    data: dict[str, bytes] = field(default_factory=dict)


@dataclass
class IngressClassInfo:
    """Normalized IngressClass."""

    name: str
    controller: str
    is_default: bool = False
    parameters: ParametersReference | None = None


@dataclass
class GatewayClassInfo:
    """Normalized GatewayClass."""

    name: str
    controller_name: str
    parameters: ParametersReference | None = None


class ResourceProvider(ABC):
    """Abstract interface for the cluster state kubegate reads.

    Implementations return normalized dataclasses or canonical resource
    models rather than native API objects. Lookups of a single object raise
    ResourceNotFoundError when it does not exist; list operations return
    objects in a stable order.
    """

    @abstractmethod
    def get_service(self, namespace: str, name: str) -> ServiceInfo:
        """Get a service.

        Raises:
            ResourceNotFoundError: If the service does not exist
            ResourceProviderError: If the lookup fails
        """

    @abstractmethod
    def get_endpoints(self, namespace: str, name: str) -> EndpointsInfo:
        """Get the endpoints of a service, with pod labels resolved.

        Raises:
            ResourceNotFoundError: If the endpoints object does not exist
            ResourceProviderError: If the lookup fails
        """

    @abstractmethod
    def get_secret(self, namespace: str, name: str) -> SecretInfo:
        """Get a secret.

        Raises:
            ResourceNotFoundError: If the secret does not exist
            ResourceProviderError: If the lookup fails
        """

    @abstractmethod
    def get_upstream(self, namespace: str, name: str) -> UpstreamResource:
        """Get the ApisixUpstream overriding a service (same name as the service).

        Raises:
            ResourceNotFoundError: If no override exists
            ResourceProviderError: If the lookup fails
        """

    @abstractmethod
    def get_gateway_class(self, name: str) -> GatewayClassInfo:
        """Get a GatewayClass.

        Raises:
            ResourceNotFoundError: If the class does not exist
            ResourceProviderError: If the lookup fails
        """

    @abstractmethod
    def get_ingress_class(self, name: str) -> IngressClassInfo:
        """Get an IngressClass.

        Raises:
            ResourceNotFoundError: If the class does not exist
            ResourceProviderError: If the lookup fails
        """

    @abstractmethod
    def list_ingress_classes(self) -> list[IngressClassInfo]:
        """List all IngressClasses."""

    @abstractmethod
    def list_gateways(self) -> list[GatewayResource]:
        """List Gateways in all namespaces."""

    @abstractmethod
    def list_ingresses(self) -> list[IngressResource]:
        """List Ingresses in all namespaces."""

    @abstractmethod
    def list_apisix_tls(self) -> list[ApisixTlsResource]:
        """List ApisixTls resources in all namespaces."""
