"""Tests for reference validation."""

from kubegate.core.exceptions import KubernetesError
from kubegate.resources.consumer import ApisixConsumerResource, ConsumerResource
from kubegate.resources.gateway import GatewayResource
from kubegate.resources.gateway_route import GatewayRouteResource
from kubegate.resources.ingress import IngressResource
from kubegate.resources.route import RouteResource
from kubegate.resources.tls import ApisixTlsResource
from kubegate.resources.upstream import UpstreamResource
from kubegate.validation.references import (
    ReferenceValidator,
    SecretRef,
    ServiceRef,
    apisix_consumer_references,
    consumer_references,
    gateway_references,
    gateway_route_references,
    ingress_references,
    route_references,
    tls_references,
    upstream_references,
)


class TestReferenceValidator:
    """Tests for ReferenceValidator.validate."""

    def test_existing_references(self, provider):
        """Test existing services and secrets produce no warnings."""
        provider.add_service("default", "web")
        provider.add_secret("default", "creds", {"password": b"x"})

        warnings = ReferenceValidator(provider).validate(
            [ServiceRef("default", "web"), SecretRef("default", "creds", key="password")]
        )

        assert warnings == []

    def test_missing_references(self, provider):
        """Test one warning per missing reference."""
        warnings = ReferenceValidator(provider).validate(
            [ServiceRef("default", "web"), SecretRef("certs", "tls")]
        )

        assert warnings == [
            "Referenced Service 'default/web' not found",
            "Referenced Secret 'certs/tls' not found",
        ]

    def test_missing_secret_key(self, provider):
        """Test a secret without the required key."""
        provider.add_secret("default", "creds", {"username": b"x"})

        warnings = ReferenceValidator(provider).validate(
            [SecretRef("default", "creds", "password")]
        )

        assert warnings == ["Referenced Secret 'default/creds' is missing key 'password'"]

    def test_deduplicated_within_call(self, provider):
        """Test the same missing secret is reported once per call."""
        validator = ReferenceValidator(provider)
        refs = [SecretRef("default", "tls"), SecretRef("default", "tls")]

        assert len(validator.validate(refs)) == 1

    def test_not_remembered_across_calls(self, provider):
        """Test independent calls each report the missing secret."""
        validator = ReferenceValidator(provider)

        first = validator.validate([SecretRef("default", "tls")])
        second = validator.validate([SecretRef("default", "tls")])

        assert first == second == ["Referenced Secret 'default/tls' not found"]

    def test_service_and_secret_with_same_name(self, provider):
        """Test deduplication is per kind."""
        warnings = ReferenceValidator(provider).validate(
            [ServiceRef("default", "web"), SecretRef("default", "web")]
        )

        assert len(warnings) == 2

    def test_lookup_errors_ignored(self, provider):
        """Test failures other than not-found produce no warning."""
        provider.errors[("Service", "default", "web")] = KubernetesError("timeout", status=504)

        assert ReferenceValidator(provider).validate([ServiceRef("default", "web")]) == []

    def test_incomplete_references_skipped(self, provider):
        """Test references without a name or namespace are not checked."""
        warnings = ReferenceValidator(provider).validate(
            [ServiceRef("default", ""), SecretRef("", "tls")]
        )

        assert warnings == []


class TestCollectors:
    """Tests for per-kind reference collection."""

    def test_route_references(self):
        """Test backends and enabled plugin secrets of all rules are collected."""
        route = RouteResource.model_validate(
            {
                "metadata": {"name": "r", "namespace": "app"},
                "spec": {
                    "http": [
                        {
                            "name": "a",
                            "backends": [{"serviceName": "web", "servicePort": 80}],
                            "plugins": [
                                {"name": "echo", "enable": True, "secretRef": "echo"},
                                {"name": "off", "enable": False, "secretRef": "off"},
                            ],
                        }
                    ],
                    "stream": [
                        {
                            "name": "tcp",
                            "match": {"ingressPort": 9000},
                            "backend": {"serviceName": "db", "servicePort": 5432},
                        }
                    ],
                },
            }
        )

        assert route_references(route) == [
            ServiceRef("app", "web"),
            SecretRef("app", "echo"),
            ServiceRef("app", "db"),
        ]

    def test_tls_references(self):
        """Test the certificate and client CA secrets."""
        tls = ApisixTlsResource.model_validate(
            {
                "metadata": {"name": "t", "namespace": "app"},
                "spec": {
                    "hosts": ["a.example.com"],
                    "secret": {"name": "cert", "namespace": "certs"},
                    "client": {"caSecret": {"name": "ca", "namespace": "certs"}},
                },
            }
        )

        assert tls_references(tls) == [SecretRef("certs", "cert"), SecretRef("certs", "ca")]

    def test_upstream_references(self):
        """Test service-level and port-level client certificate secrets."""
        upstream = UpstreamResource.model_validate(
            {
                "metadata": {"name": "web", "namespace": "app"},
                "spec": {
                    "tlsSecret": {"name": "client", "namespace": "app"},
                    "portLevelSettings": [
                        {"port": 443, "tlsSecret": {"name": "client-443", "namespace": "app"}}
                    ],
                },
            }
        )

        assert upstream_references(upstream) == [
            SecretRef("app", "client"),
            SecretRef("app", "client-443"),
        ]

    def test_ingress_references(self):
        """Test backend services and TLS secrets."""
        ing = IngressResource.model_validate(
            {
                "metadata": {"name": "i", "namespace": "app"},
                "spec": {
                    "tls": [{"hosts": ["a.example.com"], "secretName": "cert"}],
                    "rules": [
                        {
                            "host": "a.example.com",
                            "http": {
                                "paths": [
                                    {
                                        "path": "/",
                                        "backend": {
                                            "service": {"name": "web", "port": {"number": 80}}
                                        },
                                    }
                                ]
                            },
                        }
                    ],
                },
            }
        )

        assert ingress_references(ing) == [ServiceRef("app", "web"), SecretRef("app", "cert")]

    def test_gateway_references(self):
        """Test listener certificate secrets, defaulting to the Gateway's namespace."""
        gw = GatewayResource.model_validate(
            {
                "metadata": {"name": "g", "namespace": "app"},
                "spec": {
                    "gatewayClassName": "apisix",
                    "listeners": [
                        {
                            "name": "https",
                            "port": 443,
                            "protocol": "HTTPS",
                            "tls": {
                                "certificateRefs": [
                                    {"name": "cert"},
                                    {"name": "shared", "namespace": "certs"},
                                ]
                            },
                        },
                        {"name": "http", "port": 80, "protocol": "HTTP"},
                    ],
                },
            }
        )

        assert gateway_references(gw) == [SecretRef("app", "cert"), SecretRef("certs", "shared")]

    def test_gateway_route_references(self):
        """Test Service backends and mirror targets, defaulting to the route's namespace."""
        route = GatewayRouteResource.model_validate(
            {
                "kind": "HTTPRoute",
                "metadata": {"name": "r", "namespace": "app"},
                "spec": {
                    "rules": [
                        {
                            "backendRefs": [
                                {
                                    "name": "web",
                                    "port": 80,
                                    "filters": [
                                        {
                                            "type": "RequestMirror",
                                            "requestMirror": {
                                                "backendRef": {"name": "shadow", "namespace": "qa"}
                                            },
                                        }
                                    ],
                                },
                                {"name": "api", "namespace": "backend", "port": 8080},
                            ],
                            "filters": [
                                {
                                    "type": "RequestMirror",
                                    "requestMirror": {"backendRef": {"name": "audit"}},
                                }
                            ],
                        }
                    ]
                },
            }
        )

        assert gateway_route_references(route) == [
            ServiceRef("app", "web"),
            ServiceRef("qa", "shadow"),
            ServiceRef("backend", "api"),
            ServiceRef("app", "audit"),
        ]

    def test_gateway_route_non_service_backends(self):
        """Test backends of other kinds or groups are not checked."""
        route = GatewayRouteResource.model_validate(
            {
                "kind": "TCPRoute",
                "metadata": {"name": "r", "namespace": "app"},
                "spec": {
                    "rules": [
                        {
                            "backendRefs": [
                                {"name": "pool", "kind": "ServiceImport", "group": "multicluster"},
                                {"name": "svc", "kind": "Service", "group": "example.com"},
                                {"name": "db", "port": 5432},
                            ]
                        }
                    ]
                },
            }
        )

        assert gateway_route_references(route) == [ServiceRef("app", "db")]

    def test_apisix_consumer_references(self):
        """Test every auth method's secret, in the consumer's namespace."""
        consumer = ApisixConsumerResource.model_validate(
            {
                "metadata": {"name": "c", "namespace": "default"},
                "spec": {
                    "authParameter": {
                        "hmacAuth": {"secretRef": {"name": "hmac-auth"}},
                        "jwtAuth": {"secretRef": {"name": "jwt-auth"}},
                        "keyAuth": {"value": {"key": "inline"}},
                    }
                },
            }
        )

        assert apisix_consumer_references(consumer) == [
            SecretRef("default", "jwt-auth"),
            SecretRef("default", "hmac-auth"),
        ]

    def test_consumer_references(self):
        """Test credential secrets, defaulting to the consumer's namespace."""
        consumer = ConsumerResource.model_validate(
            {
                "metadata": {"name": "c", "namespace": "default"},
                "spec": {
                    "credentials": [
                        {"type": "jwt-auth", "secretRef": {"name": "jwt-secret"}},
                        {"type": "key-auth", "secretRef": {"name": "key", "namespace": "auth"}},
                        {"type": "basic-auth", "config": {"username": "u", "password": "p"}},
                    ]
                },
            }
        )

        assert consumer_references(consumer) == [
            SecretRef("default", "jwt-secret"),
            SecretRef("auth", "key"),
        ]
