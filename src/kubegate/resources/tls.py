"""ApisixTls resource: certificates bound to hostnames."""

from pydantic import Field

from kubegate.resources.common import KubernetesResource, ResourceModel, SecretReference


class ClientCA(ResourceModel):
    """Downstream mTLS settings."""

    ca_secret: SecretReference = Field(alias="caSecret")
    depth: int | None = None
    skip_mtls_uri_regex: list[str] = Field(default_factory=list)


class TlsSpec(ResourceModel):
    ingress_class_name: str = Field("", alias="ingressClassName")
    hosts: list[str] = Field(default_factory=list)
    secret: SecretReference
    client: ClientCA | None = None


class ApisixTlsResource(KubernetesResource):
    kind: str = "ApisixTls"
    spec: TlsSpec
