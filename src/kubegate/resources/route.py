"""ApisixRoute resource, canonical (schema-version independent) shape."""

from typing import Any

from pydantic import Field

from kubegate.resources.common import KubernetesResource, ResourceModel
from kubegate.resources.upstream import UpstreamTimeoutSpec


class ExpressionSubject(ResourceModel):
    scope: str
    name: str = ""


class MatchExpression(ResourceModel):
    """A predicate over one request attribute.

    Exactly one of `value` and `set_values` is expected; `In` and `NotIn`
    take a set, every other operator a scalar value.
    """

    subject: ExpressionSubject
    op: str
    set_values: list[str] | None = Field(None, alias="set")
    value: str | None = None


class ParamMatch(ResourceModel):
    """Header or query parameter condition (Gateway API style)."""

    name: str
    value: str
    type: str = "Exact"


class HTTPMatch(ResourceModel):
    paths: list[str] = Field(default_factory=list)
    methods: list[str] = Field(default_factory=list)
    hosts: list[str] = Field(default_factory=list)
    remote_addrs: list[str] = Field(default_factory=list, alias="remoteAddrs")
    headers: list[ParamMatch] = Field(default_factory=list)
    query_params: list[ParamMatch] = Field(default_factory=list, alias="queryParams")
    exprs: list[MatchExpression] = Field(default_factory=list)
    filter_func: str = ""


class Backend(ResourceModel):
    """A Kubernetes service port traffic is forwarded to."""

    service_name: str = Field(alias="serviceName")
    service_port: int | str = Field(alias="servicePort")
    resolve_granularity: str = Field("endpoints", alias="resolveGranularity")
    weight: int | None = None
    subset: str = ""


class UpstreamReference(ResourceModel):
    """Reference to an ApisixUpstream with external nodes."""

    name: str
    weight: int | None = None


class Plugin(ResourceModel):
    name: str
    enable: bool = False
    config: dict[str, Any] = Field(default_factory=dict)
    secret_ref: str = Field("", alias="secretRef")


class Authentication(ResourceModel):
    enable: bool = False
    type: str = ""
    key_auth: dict[str, Any] = Field(default_factory=dict, alias="keyAuth")
    jwt_auth: dict[str, Any] = Field(default_factory=dict, alias="jwtAuth")
    ldap_auth: dict[str, Any] = Field(default_factory=dict, alias="ldapAuth")


class HTTPRule(ResourceModel):
    """One named HTTP rule of an ApisixRoute."""

    name: str
    priority: int = 0
    timeout: UpstreamTimeoutSpec | None = None
    match: HTTPMatch = Field(default_factory=HTTPMatch)
    backends: list[Backend] = Field(default_factory=list)
    upstreams: list[UpstreamReference] = Field(default_factory=list)
    websocket: bool = False
    plugin_config_name: str = ""
    plugins: list[Plugin] = Field(default_factory=list)
    authentication: Authentication = Field(default_factory=Authentication)


class StreamMatch(ResourceModel):
    ingress_port: int = Field(alias="ingressPort")
    host: str = ""


class StreamBackend(ResourceModel):
    service_name: str = Field(alias="serviceName")
    service_port: int | str = Field(alias="servicePort")
    resolve_granularity: str = Field("endpoints", alias="resolveGranularity")
    subset: str = ""


class StreamRule(ResourceModel):
    """One named TCP/UDP rule of an ApisixRoute."""

    name: str
    protocol: str = "TCP"
    match: StreamMatch
    backend: StreamBackend
    plugins: list[Plugin] = Field(default_factory=list)


class RouteSpec(ResourceModel):
    ingress_class_name: str = Field("", alias="ingressClassName")
    http: list[HTTPRule] = Field(default_factory=list)
    stream: list[StreamRule] = Field(default_factory=list)


class RouteResource(KubernetesResource):
    kind: str = "ApisixRoute"
    spec: RouteSpec = Field(default_factory=RouteSpec)
