"""ApisixUpstream resource: per-service upstream overrides."""

from pydantic import Field

from kubegate.resources.common import Duration, KubernetesResource, ResourceModel, SecretReference


class LoadBalancer(ResourceModel):
    type: str = ""
    hash_on: str = Field("", alias="hashOn")
    key: str = ""


class UpstreamTimeoutSpec(ResourceModel):
    connect: Duration = None
    send: Duration = None
    read: Duration = None


class ActiveHealthy(ResourceModel):
    interval: Duration = None
    http_codes: list[int] | None = Field(None, alias="httpCodes")
    successes: int = 0


class ActiveUnhealthy(ResourceModel):
    interval: Duration = None
    http_codes: list[int] | None = Field(None, alias="httpCodes")
    http_failures: int = Field(0, alias="httpFailures")
    tcp_failures: int = Field(0, alias="tcpFailures")
    timeouts: int = 0


class ActiveHealthCheckSpec(ResourceModel):
    """Active probing configuration."""

    type: str = ""
    timeout: Duration = None
    concurrency: int = 0
    host: str = ""
    port: int | None = None
    http_path: str = Field("", alias="httpPath")
    strict_tls: bool | None = Field(None, alias="strictTLS")
    request_headers: list[str] | None = Field(None, alias="requestHeaders")
    healthy: ActiveHealthy | None = None
    unhealthy: ActiveUnhealthy | None = None


class PassiveHealthy(ResourceModel):
    http_codes: list[int] | None = Field(None, alias="httpCodes")
    successes: int = 0


class PassiveUnhealthy(ResourceModel):
    http_codes: list[int] | None = Field(None, alias="httpCodes")
    http_failures: int = Field(0, alias="httpFailures")
    tcp_failures: int = Field(0, alias="tcpFailures")
    timeouts: int = 0


class PassiveHealthCheckSpec(ResourceModel):
    """Passive (traffic-based) health configuration."""

    type: str = ""
    healthy: PassiveHealthy | None = None
    unhealthy: PassiveUnhealthy | None = None


class HealthCheckSpec(ResourceModel):
    active: ActiveHealthCheckSpec | None = None
    passive: PassiveHealthCheckSpec | None = None


class UpstreamSubset(ResourceModel):
    """A named subset of endpoints selected by pod labels."""

    name: str
    labels: dict[str, str] = Field(default_factory=dict)


class Discovery(ResourceModel):
    """Delegate node discovery to a proxy-side registry."""

    service_name: str = Field(alias="serviceName")
    type: str
    args: dict[str, str] | None = None


class UpstreamConfig(ResourceModel):
    """Settings that may be given service-wide or per port."""

    loadbalancer: LoadBalancer | None = None
    scheme: str = ""
    retries: int | None = None
    timeout: UpstreamTimeoutSpec | None = None
    health_check: HealthCheckSpec | None = Field(None, alias="healthCheck")
    tls_secret: SecretReference | None = Field(None, alias="tlsSecret")
    subsets: list[UpstreamSubset] = Field(default_factory=list)
    pass_host: str = Field("", alias="passHost")
    upstream_host: str = Field("", alias="upstreamHost")
    discovery: Discovery | None = None


class PortLevelSettings(UpstreamConfig):
    port: int


class ExternalNode(ResourceModel):
    """A backend outside the cluster, addressed by domain or ExternalName service."""

    name: str
    type: str = "Domain"
    weight: int | None = None
    port: int | None = None


class UpstreamSpec(UpstreamConfig):
    """Canonical ApisixUpstream spec."""

    port_level_settings: list[PortLevelSettings] = Field(
        default_factory=list, alias="portLevelSettings"
    )
    external_nodes: list[ExternalNode] = Field(default_factory=list, alias="externalNodes")

    def for_port(self, port: int) -> UpstreamConfig:
        """Return the settings effective for a service port.

        The first port-level entry matching `port` wins; otherwise the
        service-level settings apply.
        """
        for settings in self.port_level_settings:
            if settings.port == port:
                return settings
        return self

    def subset_labels(self, name: str) -> dict[str, str] | None:
        for subset in self.subsets:
            if subset.name == name:
                return subset.labels
        return None


class UpstreamResource(KubernetesResource):
    kind: str = "ApisixUpstream"
    spec: UpstreamSpec = Field(default_factory=UpstreamSpec)
