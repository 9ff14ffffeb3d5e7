"""Consumer resources: ApisixConsumer (v2) and Consumer (v1alpha1)."""

from typing import Any

from pydantic import Field

from kubegate.resources.common import KubernetesResource, ResourceModel


class LocalSecretReference(ResourceModel):
    name: str = ""


class ConsumerAuth(ResourceModel):
    """One authentication method, configured inline or from a Secret."""

    secret_ref: LocalSecretReference | None = Field(None, alias="secretRef")
    value: dict[str, Any] | None = None


class AuthParameter(ResourceModel):
    basic_auth: ConsumerAuth | None = Field(None, alias="basicAuth")
    key_auth: ConsumerAuth | None = Field(None, alias="keyAuth")
    wolf_rbac: ConsumerAuth | None = Field(None, alias="wolfRBAC")
    jwt_auth: ConsumerAuth | None = Field(None, alias="jwtAuth")
    hmac_auth: ConsumerAuth | None = Field(None, alias="hmacAuth")
    ldap_auth: ConsumerAuth | None = Field(None, alias="ldapAuth")

    def methods(self) -> list[ConsumerAuth]:
        """Configured methods in basic, key, wolf-rbac, jwt, hmac, ldap order."""
        candidates = (
            self.basic_auth,
            self.key_auth,
            self.wolf_rbac,
            self.jwt_auth,
            self.hmac_auth,
            self.ldap_auth,
        )
        return [auth for auth in candidates if auth is not None]


class ApisixConsumerSpec(ResourceModel):
    ingress_class_name: str = Field("", alias="ingressClassName")
    auth_parameter: AuthParameter = Field(default_factory=AuthParameter, alias="authParameter")


class ApisixConsumerResource(KubernetesResource):
    kind: str = "ApisixConsumer"
    spec: ApisixConsumerSpec = Field(default_factory=ApisixConsumerSpec)


class CredentialSecretReference(ResourceModel):
    name: str = ""
    namespace: str | None = None


class Credential(ResourceModel):
    type: str = ""
    name: str = ""
    settings: dict[str, Any] | None = Field(None, alias="config")
    secret_ref: CredentialSecretReference | None = Field(None, alias="secretRef")


class ConsumerSpec(ResourceModel):
    credentials: list[Credential] = Field(default_factory=list)
    plugins: list[dict[str, Any]] = Field(default_factory=list)


class ConsumerResource(KubernetesResource):
    """Gateway API flavoured consumer; credentials may live in other namespaces."""

    kind: str = "Consumer"
    spec: ConsumerSpec = Field(default_factory=ConsumerSpec)
