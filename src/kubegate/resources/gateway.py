"""Gateway API Gateway resource (the parts relevant to TLS)."""

from pydantic import Field

from kubegate.resources.common import KubernetesResource, ResourceModel


class ParametersReference(ResourceModel):
    """Reference to an implementation-specific parameters object."""

    group: str = ""
    kind: str
    name: str
    namespace: str | None = None


class CertificateRef(ResourceModel):
    group: str = ""
    kind: str = "Secret"
    name: str
    namespace: str | None = None


class ListenerTLS(ResourceModel):
    mode: str = "Terminate"
    certificate_refs: list[CertificateRef] = Field(default_factory=list, alias="certificateRefs")


class Listener(ResourceModel):
    name: str
    hostname: str | None = None
    port: int
    protocol: str
    tls: ListenerTLS | None = None


class GatewayInfrastructure(ResourceModel):
    parameters_ref: ParametersReference | None = Field(None, alias="parametersRef")


class GatewaySpec(ResourceModel):
    gateway_class_name: str = Field(alias="gatewayClassName")
    listeners: list[Listener] = Field(default_factory=list)
    infrastructure: GatewayInfrastructure | None = None


class GatewayResource(KubernetesResource):
    kind: str = "Gateway"
    spec: GatewaySpec
