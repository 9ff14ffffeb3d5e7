"""networking.k8s.io/v1 Ingress resource."""

from pydantic import Field

from kubegate.resources.common import KubernetesResource, ResourceModel


class ServiceBackendPort(ResourceModel):
    number: int | None = None
    name: str = ""


class IngressServiceBackend(ResourceModel):
    name: str
    port: ServiceBackendPort = Field(default_factory=ServiceBackendPort)


class IngressBackend(ResourceModel):
    service: IngressServiceBackend | None = None


class HTTPIngressPath(ResourceModel):
    path: str = "/"
    path_type: str = Field("Prefix", alias="pathType")
    backend: IngressBackend


class HTTPIngressRuleValue(ResourceModel):
    paths: list[HTTPIngressPath] = Field(default_factory=list)


class IngressRule(ResourceModel):
    host: str = ""
    http: HTTPIngressRuleValue | None = None


class IngressTLS(ResourceModel):
    hosts: list[str] = Field(default_factory=list)
    secret_name: str = Field("", alias="secretName")


class IngressSpec(ResourceModel):
    ingress_class_name: str = Field("", alias="ingressClassName")
    default_backend: IngressBackend | None = Field(None, alias="defaultBackend")
    tls: list[IngressTLS] = Field(default_factory=list)
    rules: list[IngressRule] = Field(default_factory=list)

    def backends(self) -> list[IngressBackend]:
        """All backends in declaration order, default backend first."""
        found = [self.default_backend] if self.default_backend else []
        for rule in self.rules:
            if rule.http:
                found.extend(path.backend for path in rule.http.paths)
        return found


class IngressResource(KubernetesResource):
    kind: str = "Ingress"
    spec: IngressSpec = Field(default_factory=IngressSpec)
