"""Proxy data-plane configuration models produced by kubegate.

These mirror the objects accepted by the proxy admin API. Field names use the
admin API's snake_case spelling so `to_payload()` can be pushed as-is.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_WEIGHT = 100
DEFAULT_UPSTREAM_TIMEOUT = 60
HEALTH_CHECK_MAX_CONSECUTIVE = 254
ACTIVE_HEALTH_CHECK_MIN_INTERVAL = 1.0


class Scheme(str, Enum):
    """Upstream protocol scheme."""

    HTTP = "http"
    HTTPS = "https"
    GRPC = "grpc"
    GRPCS = "grpcs"
    TCP = "tcp"
    UDP = "udp"


class LoadBalancerType(str, Enum):
    """Upstream load balancing algorithm."""

    ROUND_ROBIN = "roundrobin"
    CHASH = "chash"
    EWMA = "ewma"
    LEAST_CONN = "least_conn"


class HashOn(str, Enum):
    """Source of the consistent hashing key."""

    VARS = "vars"
    HEADER = "header"
    COOKIE = "cookie"
    CONSUMER = "consumer"
    VARS_COMBINATIONS = "vars_combinations"


class HealthCheckType(str, Enum):
    """Health check protocol."""

    HTTP = "http"
    HTTPS = "https"
    TCP = "tcp"


class PassHost(str, Enum):
    """How the Host header is passed to the upstream."""

    PASS = "pass"
    NODE = "node"
    REWRITE = "rewrite"


class ProxyObject(BaseModel):
    """Base for objects pushed to the proxy admin API."""

    class Config:
        """Pydantic config."""

        use_enum_values = True
        validate_assignment = True

    def to_payload(self) -> dict[str, Any]:
        """Render the admin API payload, omitting unset fields."""
        return self.model_dump(exclude_none=True)


class Node(ProxyObject):
    """A single backend endpoint."""

    host: str
    port: int
    weight: int = DEFAULT_WEIGHT


class UpstreamTimeout(ProxyObject):
    """Upstream timeouts in seconds."""

    connect: int = DEFAULT_UPSTREAM_TIMEOUT
    send: int = DEFAULT_UPSTREAM_TIMEOUT
    read: int = DEFAULT_UPSTREAM_TIMEOUT


class ActiveHealthy(ProxyObject):
    interval: int | None = None
    http_statuses: list[int] | None = None
    successes: int | None = None


class ActiveUnhealthy(ProxyObject):
    interval: int | None = None
    http_statuses: list[int] | None = None
    http_failures: int | None = None
    tcp_failures: int | None = None
    timeouts: int | None = None


class ActiveHealthCheck(ProxyObject):
    """Active checks sent to upstream nodes.

    Unset fields are left out of the payload so the data plane applies
    its own defaults.
    """

    type: HealthCheckType = HealthCheckType.HTTP
    timeout: int | None = None
    concurrency: int | None = None
    host: str | None = None
    port: int | None = None
    http_path: str | None = None
    https_verify_certificate: bool = True
    req_headers: list[str] | None = None
    healthy: ActiveHealthy | None = None
    unhealthy: ActiveUnhealthy | None = None


class PassiveHealthy(ProxyObject):
    http_statuses: list[int] | None = None
    successes: int | None = None


class PassiveUnhealthy(ProxyObject):
    http_statuses: list[int] | None = None
    http_failures: int | None = None
    tcp_failures: int | None = None
    timeouts: int | None = None


class PassiveHealthCheck(ProxyObject):
    """Health inferred from proxied traffic."""

    type: HealthCheckType = HealthCheckType.HTTP
    healthy: PassiveHealthy | None = None
    unhealthy: PassiveUnhealthy | None = None


class UpstreamHealthCheck(ProxyObject):
    active: ActiveHealthCheck | None = None
    passive: PassiveHealthCheck | None = None


class ClientTLS(ProxyObject):
    """Client certificate presented to the upstream."""

    client_cert: str
    client_key: str


class Upstream(ProxyObject):
    """A named pool of backend nodes with balancing and health policy."""

    id: str = ""
    name: str = ""
    labels: dict[str, str] | None = None
    type: LoadBalancerType = LoadBalancerType.ROUND_ROBIN
    hash_on: HashOn | None = None
    key: str | None = None
    scheme: Scheme = Scheme.HTTP
    nodes: list[Node] = Field(default_factory=list)
    checks: UpstreamHealthCheck | None = None
    timeout: UpstreamTimeout | None = None
    retries: int | None = None
    pass_host: PassHost | None = None
    upstream_host: str | None = None
    tls: ClientTLS | None = None
    service_name: str | None = None
    discovery_type: str | None = None
    discovery_args: dict[str, str] | None = None


class WeightedUpstream(ProxyObject):
    """One weighted entry of a traffic split rule; empty id means the route's own upstream."""

    upstream_id: str = ""
    weight: int = DEFAULT_WEIGHT


class TrafficSplitRule(ProxyObject):
    weighted_upstreams: list[WeightedUpstream] = Field(default_factory=list)


class TrafficSplitConfig(ProxyObject):
    """Configuration of the traffic-split plugin."""

    rules: list[TrafficSplitRule] = Field(default_factory=list)


class Route(ProxyObject):
    """A compiled HTTP match-and-forward rule."""

    id: str = ""
    name: str = ""
    labels: dict[str, str] | None = None
    uri: str | None = None
    uris: list[str] | None = None
    host: str | None = None
    hosts: list[str] | None = None
    vars: list[list[Any]] | None = None
    methods: list[str] | None = None
    remote_addrs: list[str] | None = None
    priority: int = 0
    upstream_id: str | None = None
    plugins: dict[str, Any] = Field(default_factory=dict)
    plugin_config_id: str | None = None
    enable_websocket: bool | None = None
    timeout: UpstreamTimeout | None = None
    filter_func: str | None = None


class StreamRoute(ProxyObject):
    """A compiled L4 route."""

    id: str = ""
    name: str = ""
    server_port: int
    sni: str | None = None
    upstream_id: str
    plugins: dict[str, Any] | None = None


class MutualTLSClientConfig(ProxyObject):
    """Client certificate verification for downstream mTLS."""

    ca: str
    depth: int | None = None
    skip_mtls_uri_regex: list[str] | None = None


class Ssl(ProxyObject):
    """A certificate bound to one or more SNIs."""

    id: str = ""
    snis: list[str]
    cert: str
    key: str
    client: MutualTLSClientConfig | None = None
    labels: dict[str, str] | None = None


class HostCertMapping(BaseModel):
    """One hostname bound to the hash of the certificate terminating it."""

    host: str
    certificate_hash: str
    resource_ref: str


class SSLConflict(BaseModel):
    """A hostname already bound to a different certificate elsewhere."""

    host: str
    conflicting_resource: str
    certificate_hash: str
