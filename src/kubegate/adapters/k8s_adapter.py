"""Kubernetes adapter implementing the ResourceProvider interface."""

import base64
from collections.abc import Callable
from typing import Any, TypeVar

from kubegate.clients.kubernetes_client import (
    APISIX_GROUP,
    APISIX_VERSION,
    GATEWAY_GROUP,
    GATEWAY_VERSION,
    KubernetesClient,
)
from kubegate.core.config import KubernetesConfig
from kubegate.core.exceptions import KubernetesError, ResourceNotFoundError
from kubegate.interfaces.exceptions import ResourceProviderError
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
from kubegate.resources.gateway import GatewayResource, ParametersReference
from kubegate.resources.ingress import IngressResource
from kubegate.resources.tls import ApisixTlsResource
from kubegate.resources.upstream import UpstreamResource
from kubegate.utils.logging import get_logger, log_error

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_CLASS_ANNOTATION = "ingressclass.kubernetes.io/is-default-class"


def _lookup_error(kind: str, namespace: str, name: str, e: Exception) -> Exception:
    if isinstance(e, KubernetesError) and e.status == 404:
        return ResourceNotFoundError(kind, namespace, name)
    return ResourceProviderError(f"Failed to get {kind.lower()} {namespace}/{name}: {e}")


class KubernetesAdapter(ResourceProvider):
    """Adapter wrapping KubernetesClient to implement ResourceProvider.

    This adapter normalizes Kubernetes API responses into dataclasses and
    canonical resource models, hiding kubernetes Python client details.
    Objects that do not exist raise ResourceNotFoundError; every other
    failure is reported as ResourceProviderError.
    """

    def __init__(self, kubeconfig_path: str | None = None, context: str | None = None):
        """Initialize Kubernetes adapter.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
        """
        try:
            self.client = KubernetesClient(kubeconfig_path=kubeconfig_path, context=context)
            logger.debug("k8s_adapter_initialized", context=context)
        except Exception as e:
            raise ResourceProviderError(f"Failed to initialize K8s adapter: {e}") from e

    @classmethod
    def from_config(cls, config: KubernetesConfig) -> "KubernetesAdapter":
        """Build an adapter from the `kubernetes` section of KubegateConfig."""
        return cls(kubeconfig_path=config.kubeconfig_path, context=config.context)

    def get_service(self, namespace: str, name: str) -> ServiceInfo:
        """Get a service.

        Returns:
            Normalized service information

        Raises:
            ResourceNotFoundError: If the service does not exist
            ResourceProviderError: If the lookup fails
        """
        try:
            service = self.client.get_service(namespace, name)
        except Exception as e:
            raise _lookup_error("Service", namespace, name, e) from e

        spec = service.spec
        ports = [
            ServicePort(
                name=port.name or "",
                port=port.port,
                target_port=port.target_port,
                protocol=port.protocol or "TCP",
            )
            for port in spec.ports or []
        ]
        return ServiceInfo(
            name=service.metadata.name,
            namespace=service.metadata.namespace,
            type=spec.type or "ClusterIP",
            cluster_ip=spec.cluster_ip or "",
            external_name=spec.external_name or "",
            ports=ports,
        )

    def get_endpoints(self, namespace: str, name: str) -> EndpointsInfo:
        """Get the endpoints of a service.

        Addresses backed by pods carry the pod's labels so subsets can be
        selected by label. A pod that cannot be read contributes no labels.

        Raises:
            ResourceNotFoundError: If the endpoints object does not exist
            ResourceProviderError: If the lookup fails
        """
        try:
            endpoints = self.client.get_endpoints(namespace, name)
        except Exception as e:
            raise _lookup_error("Endpoints", namespace, name, e) from e

        pod_labels: dict[tuple[str, str], dict[str, str]] = {}
        subsets = []
        for subset in endpoints.subsets or []:
            addresses = []
            for address in subset.addresses or []:
                labels: dict[str, str] = {}
                ref = address.target_ref
                if ref is not None and ref.kind == "Pod":
                    key = (ref.namespace or namespace, ref.name)
                    if key not in pod_labels:
                        pod_labels[key] = self._pod_labels(*key)
                    labels = pod_labels[key]
                addresses.append(EndpointAddress(ip=address.ip, labels=labels))

            ports = [
                EndpointPort(name=port.name or "", port=port.port, protocol=port.protocol or "TCP")
                for port in subset.ports or []
            ]
            subsets.append(EndpointSubset(addresses=addresses, ports=ports))

        return EndpointsInfo(name=name, namespace=namespace, subsets=subsets)

    def get_secret(self, namespace: str, name: str) -> SecretInfo:
        """Get a secret with its data base64-decoded.

        Raises:
            ResourceNotFoundError: If the secret does not exist
            ResourceProviderError: If the lookup fails
        """
        try:
            secret = self.client.get_secret(namespace, name)
        except Exception as e:
            raise _lookup_error("Secret", namespace, name, e) from e

        try:
            data = {key: base64.b64decode(value) for key, value in (secret.data or {}).items()}
        except ValueError as e:
            raise ResourceProviderError(f"Secret {namespace}/{name} holds invalid data") from e
        return SecretInfo(name=name, namespace=namespace, data=data)

    def get_upstream(self, namespace: str, name: str) -> UpstreamResource:
        try:
            manifest = self.client.get_custom_object(
                APISIX_GROUP, APISIX_VERSION, "apisixupstreams", name, namespace
            )
        except Exception as e:
            raise _lookup_error("ApisixUpstream", namespace, name, e) from e
        return self._parse(UpstreamResource.model_validate, manifest, f"{namespace}/{name}")

    def get_gateway_class(self, name: str) -> GatewayClassInfo:
        try:
            manifest = self.client.get_custom_object(
                GATEWAY_GROUP, GATEWAY_VERSION, "gatewayclasses", name
            )
        except Exception as e:
            raise _lookup_error("GatewayClass", "", name, e) from e

        spec = manifest.get("spec", {})
        parameters = None
        if spec.get("parametersRef"):
            ref = spec["parametersRef"]
            parameters = self._parse(ParametersReference.model_validate, ref, name)
        return GatewayClassInfo(
            name=name, controller_name=spec.get("controllerName", ""), parameters=parameters
        )

    def get_ingress_class(self, name: str) -> IngressClassInfo:
        try:
            ingress_class = self.client.get_ingress_class(name)
        except Exception as e:
            raise _lookup_error("IngressClass", "", name, e) from e
        return self._ingress_class_info(ingress_class)

    def list_ingress_classes(self) -> list[IngressClassInfo]:
        try:
            classes = self.client.list_ingress_classes()
        except Exception as e:
            log_error(logger, e, operation="list_ingress_classes")
            raise ResourceProviderError(f"Failed to list ingress classes: {e}") from e
        return [self._ingress_class_info(ingress_class) for ingress_class in classes]

    def list_gateways(self) -> list[GatewayResource]:
        return self._list_custom(GATEWAY_GROUP, GATEWAY_VERSION, "gateways", GatewayResource)

    def list_ingresses(self) -> list[IngressResource]:
        try:
            ingresses = self.client.list_ingresses()
        except Exception as e:
            log_error(logger, e, operation="list_ingresses")
            raise ResourceProviderError(f"Failed to list ingresses: {e}") from e
        return self._valid_items(
            IngressResource, (self.client.to_dict(ingress) for ingress in ingresses)
        )

    def list_apisix_tls(self) -> list[ApisixTlsResource]:
        return self._list_custom(APISIX_GROUP, APISIX_VERSION, "apisixtlses", ApisixTlsResource)

    def _pod_labels(self, namespace: str, name: str) -> dict[str, str]:
        try:
            pod = self.client.get_pod(namespace, name)
        except KubernetesError as e:
            logger.warning("pod_labels_unavailable", namespace=namespace, pod=name, error=str(e))
            return {}
        return dict(pod.metadata.labels or {})

    def _ingress_class_info(self, ingress_class: Any) -> IngressClassInfo:
        annotations = ingress_class.metadata.annotations or {}
        spec = ingress_class.spec
        parameters = None
        if spec is not None and spec.parameters is not None:
            ref = spec.parameters
            parameters = ParametersReference(
                group=ref.api_group or "",
                kind=ref.kind,
                name=ref.name,
                namespace=ref.namespace,
            )
        return IngressClassInfo(
            name=ingress_class.metadata.name,
            controller=spec.controller if spec is not None else "",
            is_default=annotations.get(DEFAULT_CLASS_ANNOTATION) == "true",
            parameters=parameters,
        )

    def _list_custom(self, group: str, version: str, plural: str, model: type[T]) -> list[T]:
        try:
            items = self.client.list_custom_objects(group, version, plural)
        except Exception as e:
            log_error(logger, e, operation="list_custom_objects", plural=plural)
            raise ResourceProviderError(f"Failed to list {plural}: {e}") from e
        return self._valid_items(model, items)

    @staticmethod
    def _valid_items(model: Any, manifests: Any) -> list:
        """Validate listed manifests, skipping the ones that do not parse."""
        resources = []
        for manifest in manifests:
            try:
                resources.append(model.model_validate(manifest))
            except ValueError as e:
                metadata = manifest.get("metadata", {})
                logger.warning(
                    "invalid_resource_skipped",
                    kind=manifest.get("kind", model.__name__),
                    namespace=metadata.get("namespace"),
                    name=metadata.get("name"),
                    error=str(e),
                )
        return resources

    @staticmethod
    def _parse(validate: Callable[[Any], T], manifest: Any, name: str) -> T:
        try:
            return validate(manifest)
        except ValueError as e:
            raise ResourceProviderError(f"Invalid resource {name}: {e}") from e
