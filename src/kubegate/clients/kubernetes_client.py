"""Kubernetes client for read-only cluster lookups."""

from typing import Any

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.client.models import (
    V1Endpoints,
    V1Ingress,
    V1IngressClass,
    V1Pod,
    V1Secret,
    V1Service,
)

from kubegate.core.exceptions import KubernetesError
from kubegate.utils.logging import get_logger
from kubegate.utils.retry import retry_on_transient

logger = get_logger(__name__)

APISIX_GROUP = "apisix.apache.org"
APISIX_VERSION = "v2"
GATEWAY_GROUP = "gateway.networking.k8s.io"
GATEWAY_VERSION = "v1"


def _api_error(action: str, e: ApiException) -> KubernetesError:
    return KubernetesError(f"Failed to {action}: {e.reason}", status=e.status)


class KubernetesClient:
    """Kubernetes client wrapper.

    Every API failure surfaces as KubernetesError carrying the HTTP status,
    so callers can tell a missing object (404) from a broken API server.
    Reads are retried on transient failures.
    """

    def __init__(self, kubeconfig_path: str | None = None, context: str | None = None):
        """Initialize Kubernetes client.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
        """
        try:
            if kubeconfig_path:
                config.load_kube_config(config_file=kubeconfig_path, context=context)
            else:
                # Webhooks usually run in-cluster; fall back to the local kubeconfig
                try:
                    config.load_incluster_config()
                except config.ConfigException:
                    config.load_kube_config(context=context)

            self.api_client = client.ApiClient()
            self.core_v1 = client.CoreV1Api(self.api_client)
            self.networking_v1 = client.NetworkingV1Api(self.api_client)
            self.custom_objects = client.CustomObjectsApi(self.api_client)

            logger.debug("k8s_client_initialized", context=context)

        except Exception as e:
            logger.error("k8s_client_initialization_failed", error=str(e))
            raise KubernetesError("Failed to initialize Kubernetes client") from e

    def to_dict(self, obj: Any) -> dict[str, Any]:
        """Serialize an API model to its camelCase manifest form."""
        return self.api_client.sanitize_for_serialization(obj)

    @retry_on_transient()
    def get_service(self, namespace: str, name: str) -> V1Service:
        """Get a service.

        Raises:
            KubernetesError: If the service cannot be retrieved
        """
        try:
            return self.core_v1.read_namespaced_service(name=name, namespace=namespace)
        except ApiException as e:
            logger.debug("get_service_failed", namespace=namespace, name=name, status=e.status)
            raise _api_error(f"get service {namespace}/{name}", e) from e

    @retry_on_transient()
    def get_endpoints(self, namespace: str, name: str) -> V1Endpoints:
        """Get the endpoints object of a service.

        Raises:
            KubernetesError: If the endpoints cannot be retrieved
        """
        try:
            return self.core_v1.read_namespaced_endpoints(name=name, namespace=namespace)
        except ApiException as e:
            logger.debug("get_endpoints_failed", namespace=namespace, name=name, status=e.status)
            raise _api_error(f"get endpoints {namespace}/{name}", e) from e

    @retry_on_transient()
    def get_secret(self, namespace: str, name: str) -> V1Secret:
        """Get a secret.

        Raises:
            KubernetesError: If the secret cannot be retrieved
        """
        try:
            return self.core_v1.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            logger.debug("get_secret_failed", namespace=namespace, name=name, status=e.status)
            raise _api_error(f"get secret {namespace}/{name}", e) from e

    @retry_on_transient()
    def get_pod(self, namespace: str, name: str) -> V1Pod:
        """Get a pod.

        Raises:
            KubernetesError: If the pod cannot be retrieved
        """
        try:
            return self.core_v1.read_namespaced_pod(name=name, namespace=namespace)
        except ApiException as e:
            logger.debug("get_pod_failed", namespace=namespace, name=name, status=e.status)
            raise _api_error(f"get pod {namespace}/{name}", e) from e

    @retry_on_transient()
    def get_ingress_class(self, name: str) -> V1IngressClass:
        """Get an IngressClass.

        Raises:
            KubernetesError: If the class cannot be retrieved
        """
        try:
            return self.networking_v1.read_ingress_class(name=name)
        except ApiException as e:
            logger.debug("get_ingress_class_failed", name=name, status=e.status)
            raise _api_error(f"get ingress class {name}", e) from e

    @retry_on_transient()
    def list_ingress_classes(self) -> list[V1IngressClass]:
        """List IngressClasses.

        Raises:
            KubernetesError: If the classes cannot be listed
        """
        try:
            response = self.networking_v1.list_ingress_class()
        except ApiException as e:
            logger.error("list_ingress_classes_failed", status=e.status, reason=e.reason)
            raise _api_error("list ingress classes", e) from e

        logger.debug("ingress_classes_retrieved", count=len(response.items))
        return response.items

    @retry_on_transient()
    def list_ingresses(self) -> list[V1Ingress]:
        """List Ingresses in all namespaces.

        Raises:
            KubernetesError: If the ingresses cannot be listed
        """
        try:
            response = self.networking_v1.list_ingress_for_all_namespaces()
        except ApiException as e:
            logger.error("list_ingresses_failed", status=e.status, reason=e.reason)
            raise _api_error("list ingresses", e) from e

        logger.debug("ingresses_retrieved", count=len(response.items))
        return response.items

    @retry_on_transient()
    def get_custom_object(
        self,
        group: str,
        version: str,
        plural: str,
        name: str,
        namespace: str | None = None,
    ) -> dict[str, Any]:
        """Get a custom resource, namespaced or cluster scoped.

        Args:
            group: API group (e.g. "apisix.apache.org")
            version: API version (e.g. "v2")
            plural: Resource plural (e.g. "apisixupstreams")
            name: Object name
            namespace: Namespace, or None for cluster-scoped resources

        Returns:
            The object as a manifest dict

        Raises:
            KubernetesError: If the object cannot be retrieved
        """
        try:
            if namespace is None:
                return self.custom_objects.get_cluster_custom_object(
                    group=group, version=version, plural=plural, name=name
                )
            return self.custom_objects.get_namespaced_custom_object(
                group=group, version=version, namespace=namespace, plural=plural, name=name
            )
        except ApiException as e:
            logger.debug(
                "get_custom_object_failed",
                plural=plural,
                namespace=namespace,
                name=name,
                status=e.status,
            )
            raise _api_error(f"get {plural} {namespace or ''}/{name}", e) from e

    @retry_on_transient()
    def list_custom_objects(self, group: str, version: str, plural: str) -> list[dict[str, Any]]:
        """List a custom resource across all namespaces.

        Raises:
            KubernetesError: If the objects cannot be listed
        """
        try:
            response = self.custom_objects.list_cluster_custom_object(
                group=group, version=version, plural=plural
            )
        except ApiException as e:
            logger.error("list_custom_objects_failed", plural=plural, status=e.status)
            raise _api_error(f"list {plural}", e) from e

        items = response.get("items", [])
        logger.debug("custom_objects_retrieved", plural=plural, count=len(items))
        return items
