"""Gateway API route resources (HTTPRoute, GRPCRoute, TCPRoute, UDPRoute).

The four kinds share one model: admission only looks at where their
backends point, and that part of the schema is common to all of them.
"""

from pydantic import Field

from kubegate.resources.common import KubernetesResource, ResourceModel


class BackendObjectReference(ResourceModel):
    """A backend object; an empty group with kind Service is a core Service."""

    group: str = ""
    kind: str = "Service"
    name: str = ""
    namespace: str | None = None
    port: int | None = None

    def is_service(self) -> bool:
        return self.group == "" and self.kind == "Service"


class RequestMirror(ResourceModel):
    backend_ref: BackendObjectReference = Field(alias="backendRef")


class RouteFilter(ResourceModel):
    type: str = ""
    request_mirror: RequestMirror | None = Field(None, alias="requestMirror")


class BackendRef(BackendObjectReference):
    weight: int = 1
    filters: list[RouteFilter] = Field(default_factory=list)


class RouteRule(ResourceModel):
    backend_refs: list[BackendRef] = Field(default_factory=list, alias="backendRefs")
    filters: list[RouteFilter] = Field(default_factory=list)


class ParentReference(ResourceModel):
    group: str = "gateway.networking.k8s.io"
    kind: str = "Gateway"
    name: str
    namespace: str | None = None
    section_name: str | None = Field(None, alias="sectionName")


class GatewayRouteSpec(ResourceModel):
    parent_refs: list[ParentReference] = Field(default_factory=list, alias="parentRefs")
    hostnames: list[str] = Field(default_factory=list)
    rules: list[RouteRule] = Field(default_factory=list)


class GatewayRouteResource(KubernetesResource):
    """Any of the Gateway API route kinds; `kind` tells them apart."""

    kind: str = "HTTPRoute"
    spec: GatewayRouteSpec = Field(default_factory=GatewayRouteSpec)

    def backend_objects(self) -> list[BackendObjectReference]:
        """Backends of every rule, then request-mirror targets, in declaration order."""
        objects: list[BackendObjectReference] = []
        for rule in self.spec.rules:
            for backend in rule.backend_refs:
                objects.append(backend)
                objects.extend(_mirror_targets(backend.filters))
            objects.extend(_mirror_targets(rule.filters))
        return objects


def _mirror_targets(filters: list[RouteFilter]) -> list[BackendObjectReference]:
    return [f.request_mirror.backend_ref for f in filters if f.request_mirror is not None]
