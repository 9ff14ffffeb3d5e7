"""Schema-version adapters.

Each supported apiVersion/kind pair is mapped onto one canonical model
before any translation happens, so translators never branch on versions.
"""

import copy
from collections.abc import Callable, Iterator
from typing import Any

import yaml

from kubegate.core.exceptions import UnsupportedResourceError
from kubegate.resources.common import KubernetesResource
from kubegate.resources.consumer import ApisixConsumerResource, ConsumerResource
from kubegate.resources.gateway import GatewayResource
from kubegate.resources.gateway_route import GatewayRouteResource
from kubegate.resources.ingress import IngressResource
from kubegate.resources.route import RouteResource
from kubegate.resources.tls import ApisixTlsResource
from kubegate.resources.upstream import UpstreamResource
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)

APISIX_V2 = "apisix.apache.org/v2"
APISIX_V2BETA3 = "apisix.apache.org/v2beta3"
APISIX_V1ALPHA1 = "apisix.apache.org/v1alpha1"
GATEWAY_V1 = "gateway.networking.k8s.io/v1"
GATEWAY_V1ALPHA2 = "gateway.networking.k8s.io/v1alpha2"

Adapter = Callable[[dict[str, Any]], KubernetesResource]


def _route_from_v2beta3(manifest: dict[str, Any]) -> RouteResource:
    """Rewrite a v2beta3 ApisixRoute into the v2 layout.

    v2beta3 differs in three places: L4 rules live under `tcp` instead of
    `stream`, a rule may carry a single `backend` next to `backends`, and
    key-auth settings are spelled `keyauth`.
    """
    manifest = copy.deepcopy(manifest)
    spec = manifest.setdefault("spec", {}) or {}

    for rule in spec.get("http") or []:
        backend = rule.pop("backend", None)
        if backend:
            rule["backends"] = [backend, *(rule.get("backends") or [])]
        auth = rule.get("authentication")
        if auth and "keyauth" in auth:
            auth["keyAuth"] = auth.pop("keyauth")

    tcp_rules = spec.pop("tcp", None)
    if tcp_rules:
        stream = spec.setdefault("stream", [])
        for rule in tcp_rules:
            stream.append({"protocol": "TCP", **rule})

    manifest["spec"] = spec
    return RouteResource.model_validate(manifest)


ADAPTERS: dict[tuple[str, str], Adapter] = {
    (APISIX_V2, "ApisixRoute"): RouteResource.model_validate,
    (APISIX_V2BETA3, "ApisixRoute"): _route_from_v2beta3,
    (APISIX_V2, "ApisixUpstream"): UpstreamResource.model_validate,
    (APISIX_V2BETA3, "ApisixUpstream"): UpstreamResource.model_validate,
    (APISIX_V2, "ApisixTls"): ApisixTlsResource.model_validate,
    (APISIX_V2BETA3, "ApisixTls"): ApisixTlsResource.model_validate,
    ("networking.k8s.io/v1", "Ingress"): IngressResource.model_validate,
    (GATEWAY_V1, "Gateway"): GatewayResource.model_validate,
    ("gateway.networking.k8s.io/v1beta1", "Gateway"): GatewayResource.model_validate,
    (APISIX_V2, "ApisixConsumer"): ApisixConsumerResource.model_validate,
    (APISIX_V1ALPHA1, "Consumer"): ConsumerResource.model_validate,
    (GATEWAY_V1, "HTTPRoute"): GatewayRouteResource.model_validate,
    (GATEWAY_V1, "GRPCRoute"): GatewayRouteResource.model_validate,
    (GATEWAY_V1ALPHA2, "TCPRoute"): GatewayRouteResource.model_validate,
    (GATEWAY_V1ALPHA2, "UDPRoute"): GatewayRouteResource.model_validate,
}


def load_resource(manifest: dict[str, Any]) -> KubernetesResource:
    """Convert a manifest into its canonical resource model.

    Args:
        manifest: Decoded Kubernetes object (apiVersion, kind, metadata, spec)

    Returns:
        Canonical resource model

    Raises:
        UnsupportedResourceError: If the apiVersion/kind pair is unknown
    """
    key = (manifest.get("apiVersion", ""), manifest.get("kind", ""))
    adapter = ADAPTERS.get(key)
    if adapter is None:
        raise UnsupportedResourceError(f"unsupported resource {key[1]} in {key[0] or '<none>'}")

    logger.debug("resource_loaded", api_version=key[0], kind=key[1])
    return adapter(manifest)


def load_manifests(text: str) -> Iterator[KubernetesResource]:
    """Parse a multi-document YAML stream into canonical resources.

    Empty documents are skipped.
    """
    for document in yaml.safe_load_all(text):
        if document:
            yield load_resource(document)
