"""Translate services and ApisixUpstream overrides into proxy upstreams.

Validation never clamps: the first out-of-bounds field is reported as a
TranslateError carrying its dotted path (e.g. ``healthCheck.active.port``).
"""

from kubegate.core.config import TranslatorConfig
from kubegate.core.exceptions import CertificateError, KubegateError, TranslateError
from kubegate.core.models import (
    ACTIVE_HEALTH_CHECK_MIN_INTERVAL,
    HEALTH_CHECK_MAX_CONSECUTIVE,
    ActiveHealthCheck,
    ActiveHealthy,
    ActiveUnhealthy,
    ClientTLS,
    HashOn,
    HealthCheckType,
    LoadBalancerType,
    Node,
    PassHost,
    PassiveHealthCheck,
    PassiveHealthy,
    PassiveUnhealthy,
    Scheme,
    Upstream,
    UpstreamHealthCheck,
    UpstreamTimeout,
)
from kubegate.core.naming import compose_external_upstream_name, compose_upstream_name, gen_id
from kubegate.interfaces.resource_provider import ResourceProvider
from kubegate.resources.upstream import (
    ActiveHealthCheckSpec,
    HealthCheckSpec,
    LoadBalancer,
    PassiveHealthCheckSpec,
    UpstreamConfig,
    UpstreamSpec,
    UpstreamTimeoutSpec,
)
from kubegate.ssl.certificates import extract_key_pair
from kubegate.translation.nodes import NodeResolver
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)

INVALID = "invalid value"

EXTERNAL_NODE_DOMAIN = "Domain"
EXTERNAL_NODE_SERVICE = "Service"


def _check_counter(value: int, field: str) -> int | None:
    if value < 0 or value > HEALTH_CHECK_MAX_CONSECUTIVE:
        raise TranslateError(INVALID, field=field)
    return value or None


def _check_codes(codes: list[int] | None, field: str) -> list[int] | None:
    if codes is not None and len(codes) < 1:
        raise TranslateError("empty", field=field)
    return codes


def _check_interval(interval: float | None, field: str) -> int:
    if interval is None or interval < ACTIVE_HEALTH_CHECK_MIN_INTERVAL:
        raise TranslateError(INVALID, field=field)
    return int(interval)


def _check_type(value: str, field: str) -> HealthCheckType:
    if not value:
        return HealthCheckType.HTTP
    try:
        return HealthCheckType(value)
    except ValueError:
        raise TranslateError(INVALID, field=field) from None


def translate_scheme(scheme: str) -> Scheme:
    if not scheme:
        return Scheme.HTTP
    try:
        return Scheme(scheme)
    except ValueError:
        raise TranslateError(INVALID, field="scheme") from None


def translate_load_balancer(lb: LoadBalancer | None, ups: Upstream) -> None:
    """Apply the load balancing algorithm to an upstream."""
    if lb is None or not lb.type:
        ups.type = LoadBalancerType.ROUND_ROBIN
        return

    try:
        lb_type = LoadBalancerType(lb.type)
    except ValueError:
        raise TranslateError(INVALID, field="loadbalancer.type") from None

    ups.type = lb_type
    if lb_type != LoadBalancerType.CHASH:
        return

    try:
        hash_on = HashOn(lb.hash_on)
    except ValueError:
        raise TranslateError(INVALID, field="loadbalancer.hashOn") from None
    # Consumer hashing keys on the authenticated consumer, every other source needs a key.
    if not lb.key and hash_on != HashOn.CONSUMER:
        raise TranslateError("key is required", field="loadbalancer.hashOn")
    ups.hash_on = hash_on
    ups.key = lb.key or None


def translate_active_health_check(spec: ActiveHealthCheckSpec) -> ActiveHealthCheck:
    prefix = "healthCheck.active"
    active = ActiveHealthCheck(type=_check_type(spec.type, f"{prefix}.Type"))

    active.timeout = int(spec.timeout) if spec.timeout else None
    if spec.port is not None and not 1 <= spec.port <= 65535:
        raise TranslateError(INVALID, field=f"{prefix}.port")
    active.port = spec.port
    if spec.concurrency < 0:
        raise TranslateError(INVALID, field=f"{prefix}.concurrency")
    active.concurrency = spec.concurrency or None
    active.host = spec.host or None
    active.http_path = spec.http_path or None
    active.req_headers = spec.request_headers or None
    active.https_verify_certificate = spec.strict_tls is None or spec.strict_tls

    if spec.healthy is not None:
        healthy = spec.healthy
        active.healthy = ActiveHealthy(
            successes=_check_counter(healthy.successes, f"{prefix}.healthy.successes"),
            http_statuses=_check_codes(healthy.http_codes, f"{prefix}.healthy.httpCodes"),
            interval=_check_interval(healthy.interval, f"{prefix}.healthy.interval"),
        )

    if spec.unhealthy is not None:
        unhealthy = spec.unhealthy
        active.unhealthy = ActiveUnhealthy(
            http_failures=_check_counter(
                unhealthy.http_failures, f"{prefix}.unhealthy.httpFailures"
            ),
            tcp_failures=_check_counter(unhealthy.tcp_failures, f"{prefix}.unhealthy.tcpFailures"),
            timeouts=unhealthy.timeouts or None,
            http_statuses=_check_codes(unhealthy.http_codes, f"{prefix}.unhealthy.httpCodes"),
            interval=_check_interval(unhealthy.interval, f"{prefix}.unhealthy.interval"),
        )

    return active


def translate_passive_health_check(spec: PassiveHealthCheckSpec) -> PassiveHealthCheck:
    prefix = "healthCheck.passive"
    passive = PassiveHealthCheck(type=_check_type(spec.type, f"{prefix}.Type"))

    if spec.healthy is not None:
        passive.healthy = PassiveHealthy(
            successes=_check_counter(spec.healthy.successes, f"{prefix}.healthy.successes"),
            http_statuses=_check_codes(spec.healthy.http_codes, f"{prefix}.healthy.httpCodes"),
        )

    if spec.unhealthy is not None:
        unhealthy = spec.unhealthy
        passive.unhealthy = PassiveUnhealthy(
            http_failures=_check_counter(
                unhealthy.http_failures, f"{prefix}.unhealthy.httpFailures"
            ),
            tcp_failures=_check_counter(unhealthy.tcp_failures, f"{prefix}.unhealthy.tcpFailures"),
            timeouts=unhealthy.timeouts or None,
            http_statuses=_check_codes(unhealthy.http_codes, f"{prefix}.unhealthy.httpCodes"),
        )

    return passive


def translate_health_check(spec: HealthCheckSpec | None) -> UpstreamHealthCheck | None:
    """Validate and translate health checks.

    Passive checks only work alongside active ones, so a passive-only
    configuration is rejected.
    """
    if spec is None or (spec.active is None and spec.passive is None):
        return None

    checks = UpstreamHealthCheck()
    if spec.passive is not None:
        checks.passive = translate_passive_health_check(spec.passive)
    if spec.active is None:
        raise TranslateError("not exist", field="healthCheck.active")
    checks.active = translate_active_health_check(spec.active)
    return checks


def translate_timeout(
    timeout: UpstreamTimeoutSpec | None, default: int, prefix: str = "timeout"
) -> UpstreamTimeout | None:
    """Convert connect/send/read durations into whole seconds.

    Unset or zero durations take the default; negative ones are rejected.
    """
    if timeout is None:
        return None

    values = {}
    for name in ("connect", "send", "read"):
        seconds = getattr(timeout, name)
        if seconds is not None and seconds < 0:
            raise TranslateError(INVALID, field=f"{prefix}.{name}")
        values[name] = int(seconds) if seconds else default
    return UpstreamTimeout(**values)


class UpstreamTranslator:
    """Build validated upstreams from nodes and optional overrides."""

    def __init__(self, config: TranslatorConfig, provider: ResourceProvider | None = None):
        """Initialize the translator.

        Args:
            config: Translation settings
            provider: Cluster lookups; needed for client TLS secrets,
                backend resolution and external nodes
        """
        self.config = config
        self.provider = provider
        self.nodes = NodeResolver(provider, config) if provider is not None else None

    def translate(
        self,
        namespace: str,
        service: str,
        subset: str,
        port: int,
        nodes: list[Node],
        override: UpstreamSpec | UpstreamConfig | None = None,
    ) -> Upstream:
        """Translate one service port into an upstream.

        Args:
            namespace: Service namespace
            service: Service name
            subset: Subset name, or "" for all endpoints
            port: Service port number
            nodes: Nodes resolved for the service port
            override: ApisixUpstream spec for the service, if any

        Returns:
            Validated upstream with its name and id set

        Raises:
            TranslateError: If the override has an invalid field
        """
        if override is None:
            ups = Upstream(nodes=nodes)
        else:
            if isinstance(override, UpstreamSpec):
                override = override.for_port(port)
            ups = self.translate_config(override, namespace)
            if override.discovery is None:
                ups.nodes = nodes

        ups.name = compose_upstream_name(namespace, service, subset, port)
        ups.id = gen_id(ups.name)
        return ups

    def translate_config(self, config: UpstreamConfig, namespace: str = "") -> Upstream:
        """Validate an override, in order: scheme, load balancer, health check,
        retries and timeout, client TLS, host passing, discovery.

        Raises:
            TranslateError: On the first invalid field
        """
        ups = Upstream(scheme=translate_scheme(config.scheme))
        translate_load_balancer(config.loadbalancer, ups)
        ups.checks = translate_health_check(config.health_check)

        if config.retries is not None and config.retries < 0:
            raise TranslateError(INVALID, field="retries")
        ups.retries = config.retries
        ups.timeout = translate_timeout(config.timeout, self.config.default_timeout)

        if config.tls_secret is not None:
            secret_ref = config.tls_secret
            ups.tls = self._client_tls(secret_ref.namespace or namespace, secret_ref.name)

        self._pass_host(config, ups)

        if config.discovery is not None:
            ups.nodes = []
            ups.service_name = config.discovery.service_name
            ups.discovery_type = config.discovery.type
            ups.discovery_args = config.discovery.args
        return ups

    def translate_backend(
        self,
        namespace: str,
        service_name: str,
        service_port: int | str,
        subset: str = "",
        resolve_granularity: str = "endpoints",
    ) -> Upstream:
        """Resolve a backend reference and translate it into an upstream.

        Raises:
            ResourceNotFoundError: If the service does not exist
            ServicePortNotDefinedError: If the port is not declared
            TranslateError: On granularity conflicts or invalid overrides
        """
        if self.nodes is None:
            raise KubegateError("backend resolution requires a resource provider")

        backend = self.nodes.resolve(
            namespace, service_name, service_port, subset, resolve_granularity
        )
        override = backend.override.spec if backend.override is not None else None
        ups = self.translate(
            namespace, service_name, subset, backend.port.port, backend.nodes, override
        )
        logger.debug(
            "upstream_translated",
            upstream=ups.name,
            nodes=len(ups.nodes),
            override=backend.override is not None,
        )
        return ups

    def translate_external(self, namespace: str, name: str) -> Upstream:
        """Translate an ApisixUpstream whose nodes live outside the cluster.

        Raises:
            ResourceNotFoundError: If the ApisixUpstream or a referenced
                service does not exist
            TranslateError: If it has no external nodes or an invalid field
        """
        if self.provider is None:
            raise KubegateError("external upstreams require a resource provider")

        resource = self.provider.get_upstream(namespace, name)
        spec = resource.spec
        if not spec.external_nodes:
            raise TranslateError("empty", field="externalNodes")

        ups = self.translate_config(spec, namespace)
        default_port = 443 if ups.scheme in (Scheme.HTTPS.value, Scheme.GRPCS.value) else 80
        nodes = []
        for node in spec.external_nodes:
            if node.type == EXTERNAL_NODE_DOMAIN:
                host = node.name
            elif node.type == EXTERNAL_NODE_SERVICE:
                service = self.provider.get_service(namespace, node.name)
                if service.type != "ExternalName":
                    raise TranslateError(
                        f"service {node.name} is not ExternalName type", field="externalNodes"
                    )
                host = service.external_name
            else:
                raise TranslateError(INVALID, field="externalNodes.type")
            weight = node.weight if node.weight is not None else self.config.default_weight
            nodes.append(Node(host=host, port=node.port or default_port, weight=weight))

        ups.nodes = nodes
        ups.name = compose_external_upstream_name(namespace, name)
        ups.id = gen_id(ups.name)
        return ups

    def _client_tls(self, namespace: str, name: str) -> ClientTLS:
        if self.provider is None:
            raise TranslateError("secret lookup unavailable", field="tlsSecret")
        try:
            secret = self.provider.get_secret(namespace, name)
        except KubegateError as e:
            raise TranslateError(f"get secret failed, {e}", field="tlsSecret") from e
        try:
            cert, key = extract_key_pair(secret, include_private_key=True)
        except CertificateError as e:
            raise TranslateError(
                f"extract cert and key from secret failed, {e}", field="tlsSecret"
            ) from e
        return ClientTLS(client_cert=cert.decode(), client_key=key.decode())

    @staticmethod
    def _pass_host(config: UpstreamConfig, ups: Upstream) -> None:
        if not config.pass_host:
            return
        try:
            pass_host = PassHost(config.pass_host)
        except ValueError:
            raise TranslateError(INVALID, field="passHost") from None
        if pass_host == PassHost.REWRITE and not config.upstream_host:
            raise TranslateError("empty", field="upstreamHost")
        ups.pass_host = pass_host
        ups.upstream_host = config.upstream_host or None
