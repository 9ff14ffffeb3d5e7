"""Tests for the admission validator."""

from unittest.mock import MagicMock

import pytest

from kubegate.core.exceptions import KubernetesError, SSLConflictError, UnsupportedResourceError
from kubegate.core.models import SSLConflict
from kubegate.interfaces.resource_provider import GatewayClassInfo, IngressClassInfo
from kubegate.resources.common import KubernetesResource
from kubegate.resources.consumer import ApisixConsumerResource, ConsumerResource
from kubegate.resources.gateway import GatewayResource
from kubegate.resources.gateway_route import GatewayRouteResource
from kubegate.resources.ingress import IngressResource
from kubegate.resources.route import RouteResource
from kubegate.resources.tls import ApisixTlsResource
from kubegate.resources.upstream import UpstreamResource
from kubegate.validation.admission import AdmissionValidator, unsupported_annotation_warnings

CONTROLLER = "apisix.apache.org/apisix-ingress-controller"


@pytest.fixture
def detector() -> MagicMock:
    detector = MagicMock()
    detector.detect_conflicts.return_value = []
    return detector


@pytest.fixture
def validator(provider, translator_config, detector) -> AdmissionValidator:
    return AdmissionValidator(provider, translator_config, detector=detector)


def route(class_name: str = "") -> RouteResource:
    return RouteResource.model_validate(
        {
            "metadata": {"name": "r", "namespace": "default"},
            "spec": {
                "ingressClassName": class_name,
                "http": [{"name": "a", "backends": [{"serviceName": "web", "servicePort": 80}]}],
            },
        }
    )


def ingress(annotations: dict[str, str] | None = None) -> IngressResource:
    return IngressResource.model_validate(
        {
            "metadata": {"name": "i", "namespace": "default", "annotations": annotations or {}},
            "spec": {"tls": [{"hosts": ["a.example.com"], "secretName": "cert"}]},
        }
    )


def tls() -> ApisixTlsResource:
    return ApisixTlsResource.model_validate(
        {
            "metadata": {"name": "t", "namespace": "default"},
            "spec": {
                "hosts": ["a.example.com"],
                "secret": {"name": "cert", "namespace": "default"},
            },
        }
    )


def http_route(*parents: dict) -> GatewayRouteResource:
    return GatewayRouteResource.model_validate(
        {
            "kind": "HTTPRoute",
            "metadata": {"name": "hr", "namespace": "default"},
            "spec": {
                "parentRefs": list(parents),
                "rules": [{"backendRefs": [{"name": "missing-svc", "port": 80}]}],
            },
        }
    )


@pytest.fixture
def edge_gateway(provider) -> GatewayResource:
    """An `infra/edge` Gateway of a class owned by this controller."""
    provider.gateway_classes["apisix"] = GatewayClassInfo(name="apisix", controller_name=CONTROLLER)
    gateway = GatewayResource.model_validate(
        {
            "metadata": {"name": "edge", "namespace": "infra"},
            "spec": {"gatewayClassName": "apisix", "listeners": []},
        }
    )
    provider.gateways.append(gateway)
    return gateway


class TestAdmissionValidator:
    """Tests for AdmissionValidator."""

    def test_route_missing_backend(self, validator):
        """Test routes to missing services are admitted with a warning."""
        assert validator.validate(route()) == ["Referenced Service 'default/web' not found"]

    def test_route_of_foreign_class_skipped(self, validator, provider):
        """Test routes of another controller's class are not checked."""
        provider.ingress_classes["nginx"] = IngressClassInfo(
            name="nginx", controller="k8s.io/ingress-nginx"
        )

        assert validator.validate(route("nginx")) == []

    def test_route_of_own_class_checked(self, validator, provider):
        """Test routes of a class managed by this controller are checked."""
        provider.ingress_classes["apisix-internal"] = IngressClassInfo(
            name="apisix-internal", controller=CONTROLLER
        )

        assert len(validator.validate(route("apisix-internal"))) == 1

    def test_upstream(self, validator):
        """Test ApisixUpstream client certificate secrets are checked."""
        upstream = UpstreamResource.model_validate(
            {
                "metadata": {"name": "web", "namespace": "default"},
                "spec": {"tlsSecret": {"name": "client", "namespace": "default"}},
            }
        )

        assert validator.validate(upstream) == ["Referenced Secret 'default/client' not found"]

    def test_tls_conflict_rejected(self, validator, detector):
        """Test conflicts reject the resource with the formatted message."""
        conflict = SSLConflict(
            host="a.example.com", conflicting_resource="Gateway/default/web", certificate_hash="x"
        )
        detector.detect_conflicts.return_value = [conflict]

        with pytest.raises(SSLConflictError) as exc_info:
            validator.validate(tls())

        assert exc_info.value.conflicts == [conflict]
        assert str(exc_info.value) == (
            "SSL configuration conflicts detected:\n"
            "- Host 'a.example.com' is already configured with a different certificate "
            "in Gateway/default/web"
        )

    def test_tls_without_conflict(self, validator, provider, detector, make_tls_secret):
        """Test a conflict-free ApisixTls with existing secrets passes cleanly."""
        make_tls_secret("default", "cert", "a.example.com")

        resource = tls()
        assert validator.validate(resource) == []
        detector.detect_conflicts.assert_called_once_with(resource)

    def test_ingress_warnings(self, validator):
        """Test ingress annotation and reference warnings are combined."""
        warnings = validator.validate(
            ingress({"k8s.apisix.apache.org/enable-cors": "true", "team": "a"})
        )

        assert warnings == [
            "Annotation 'k8s.apisix.apache.org/enable-cors' is not supported in "
            "APISIX Ingress Controller 2.0.0.",
            "Referenced Secret 'default/cert' not found",
        ]

    def test_gateway(self, validator, detector):
        """Test Gateways are checked for conflicts and certificate secrets."""
        gw = GatewayResource.model_validate(
            {
                "metadata": {"name": "g", "namespace": "default"},
                "spec": {
                    "gatewayClassName": "apisix",
                    "listeners": [
                        {
                            "name": "https",
                            "port": 443,
                            "protocol": "HTTPS",
                            "tls": {"certificateRefs": [{"name": "cert"}]},
                        }
                    ],
                },
            }
        )

        assert validator.validate(gw) == ["Referenced Secret 'default/cert' not found"]
        detector.detect_conflicts.assert_called_once_with(gw)

    def test_unsupported_kind(self, validator):
        """Test kinds without admission checks are refused."""
        resource = KubernetesResource.model_validate(
            {"kind": "ConfigMap", "metadata": {"name": "c"}}
        )

        with pytest.raises(UnsupportedResourceError):
            validator.validate(resource)


class TestGatewayRouteAdmission:
    """Tests for Gateway API route admission."""

    def test_missing_backend(self, validator, edge_gateway):
        """Test routes attached to our Gateway warn about missing Services."""
        resource = http_route({"name": "edge", "namespace": "infra"})

        assert validator.validate(resource) == [
            "Referenced Service 'default/missing-svc' not found"
        ]

    def test_existing_backend(self, validator, provider, edge_gateway):
        """Test existing Services produce no warnings."""
        provider.add_service("default", "missing-svc")

        assert validator.validate(http_route({"name": "edge", "namespace": "infra"})) == []

    def test_foreign_gateway_skipped(self, validator, provider, edge_gateway):
        """Test routes attached only to another controller's Gateway are not checked."""
        provider.gateway_classes["apisix"] = GatewayClassInfo(
            name="apisix", controller_name="example.com/other"
        )

        assert validator.validate(http_route({"name": "edge", "namespace": "infra"})) == []

    def test_parent_namespace_defaults_to_route(self, validator, edge_gateway):
        """Test a parentRef without namespace points into the route's namespace."""
        assert validator.validate(http_route({"name": "edge"})) == []

    def test_without_parents_skipped(self, validator, edge_gateway):
        """Test unattached routes are not checked."""
        assert validator.validate(http_route()) == []

    def test_class_lookup_failure_checks_route(self, validator, provider, edge_gateway):
        """Test a failed GatewayClass read still checks the route."""
        provider.errors[("GatewayClass", "", "apisix")] = KubernetesError("timeout", status=504)

        warnings = validator.validate(http_route({"name": "edge", "namespace": "infra"}))

        assert warnings == ["Referenced Service 'default/missing-svc' not found"]


class TestConsumerAdmission:
    """Tests for ApisixConsumer and Consumer admission."""

    def test_apisix_consumer_missing_secret(self, validator):
        """Test a missing auth secret is reported in the consumer's namespace."""
        consumer = ApisixConsumerResource.model_validate(
            {
                "metadata": {"name": "c", "namespace": "default"},
                "spec": {"authParameter": {"basicAuth": {"secretRef": {"name": "basic-auth"}}}},
            }
        )

        assert validator.validate(consumer) == ["Referenced Secret 'default/basic-auth' not found"]

    def test_apisix_consumer_of_foreign_class_skipped(self, validator, provider):
        """Test consumers of another controller's class are not checked."""
        provider.ingress_classes["nginx"] = IngressClassInfo(
            name="nginx", controller="k8s.io/ingress-nginx"
        )
        consumer = ApisixConsumerResource.model_validate(
            {
                "metadata": {"name": "c", "namespace": "default"},
                "spec": {
                    "ingressClassName": "nginx",
                    "authParameter": {"keyAuth": {"secretRef": {"name": "key-auth"}}},
                },
            }
        )

        assert validator.validate(consumer) == []

    def test_consumer_secret_in_other_namespace(self, validator, provider):
        """Test credential secrets honour an explicit namespace."""
        provider.add_secret("default", "jwt-secret", {"key": b"k"})
        consumer = ConsumerResource.model_validate(
            {
                "metadata": {"name": "c", "namespace": "default"},
                "spec": {
                    "credentials": [
                        {"type": "jwt-auth", "secretRef": {"name": "jwt-secret"}},
                        {
                            "type": "jwt-auth",
                            "secretRef": {"name": "jwt-secret", "namespace": "auth"},
                        },
                    ]
                },
            }
        )

        assert validator.validate(consumer) == ["Referenced Secret 'auth/jwt-secret' not found"]


class TestUnsupportedAnnotations:
    """Tests for legacy ingress annotation warnings."""

    def test_only_listed_annotations(self):
        """Test unrelated and unknown annotations are ignored."""
        ing = ingress(
            {
                "k8s.apisix.apache.org/http-to-https": "true",
                "k8s.apisix.apache.org/something-new": "x",
                "kubernetes.io/ingress.class": "apisix",
            }
        )

        assert unsupported_annotation_warnings(ing) == [
            "Annotation 'k8s.apisix.apache.org/http-to-https' is not supported in "
            "APISIX Ingress Controller 2.0.0."
        ]

    def test_no_annotations(self):
        """Test an ingress without annotations produces no warnings."""
        assert unsupported_annotation_warnings(ingress()) == []
