"""Assemble proxy routes and stream routes from ApisixRoute resources."""

import copy
import ipaddress
from typing import Any

from kubegate.core.config import TranslatorConfig
from kubegate.core.exceptions import KubegateError, TranslateError
from kubegate.core.models import (
    Route,
    StreamRoute,
    TrafficSplitConfig,
    TrafficSplitRule,
    Upstream,
    WeightedUpstream,
)
from kubegate.core.naming import (
    compose_plugin_config_name,
    compose_route_name,
    compose_stream_route_name,
    gen_id,
)
from kubegate.interfaces.resource_provider import ResourceProvider
from kubegate.resources.route import Authentication, HTTPRule, Plugin, RouteResource, StreamRule
from kubegate.translation.context import TranslateContext
from kubegate.translation.expressions import compile_match
from kubegate.translation.traffic_split import TrafficSplitComposer
from kubegate.translation.upstream import UpstreamTranslator, translate_timeout
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)

TRAFFIC_SPLIT_PLUGIN = "traffic-split"

# Authentication type -> (plugin name, settings attribute or None for empty config).
AUTH_PLUGINS: dict[str, tuple[str, str | None]] = {
    "keyAuth": ("key-auth", "key_auth"),
    "basicAuth": ("basic-auth", None),
    "wolfRBAC": ("wolf-rbac", None),
    "jwtAuth": ("jwt-auth", "jwt_auth"),
    "hmacAuth": ("hmac-auth", None),
    "ldapAuth": ("ldap-auth", "ldap_auth"),
}
DEFAULT_AUTH_PLUGIN = "basic-auth"


def insert_key(config: dict[str, Any], key: str, value: Any) -> None:
    """Set a dotted key ("a.b.c") in a nested dict, creating levels as needed."""
    parts = key.split(".")
    target = config
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[parts[-1]] = value


def validate_remote_addrs(addrs: list[str]) -> None:
    """Ensure every remote address is an IP address or a CIDR block.

    Raises:
        TranslateError: On the first malformed entry
    """
    for addr in addrs:
        try:
            if "/" in addr:
                ipaddress.ip_network(addr, strict=False)
            else:
                ipaddress.ip_address(addr)
        except ValueError:
            raise TranslateError(f"invalid ip address {addr}", field="remoteAddrs") from None


def authentication_plugins(auth: Authentication) -> dict[str, Any]:
    if not auth.enable:
        return {}
    plugin, attr = AUTH_PLUGINS.get(auth.type, (DEFAULT_AUTH_PLUGIN, None))
    config = copy.deepcopy(getattr(auth, attr)) if attr else {}
    return {plugin: config}


class RouteTranslator:
    """Translate an ApisixRoute into routes, stream routes and upstreams."""

    def __init__(self, config: TranslatorConfig, provider: ResourceProvider):
        self.config = config
        self.provider = provider
        self.upstreams = UpstreamTranslator(config, provider)
        self.traffic_split = TrafficSplitComposer(config, self.upstreams)

    def translate(self, resource: RouteResource) -> TranslateContext:
        """Translate every HTTP and stream rule of a route resource.

        Args:
            resource: Canonical ApisixRoute

        Returns:
            Context holding the compiled routes and upstreams

        Raises:
            TranslateError: On invalid rules (duplicate names, bad
                expressions or addresses, invalid upstream overrides)
            ResourceNotFoundError: If a backend service does not exist
            ServicePortNotDefinedError: If a backend port is not declared
        """
        ctx = TranslateContext()
        self.translate_http(ctx, resource)
        self.translate_stream(ctx, resource)
        logger.info(
            "route_translated",
            namespace=resource.namespace,
            name=resource.name,
            routes=len(ctx.routes),
            stream_routes=len(ctx.stream_routes),
            upstreams=len(ctx.upstreams),
        )
        return ctx

    def translate_http(self, ctx: TranslateContext, resource: RouteResource) -> None:
        seen: set[str] = set()
        for rule in resource.spec.http:
            if rule.name in seen:
                raise TranslateError("duplicated route rule name")
            seen.add(rule.name)
            ctx.add_route(self._http_route(ctx, resource, rule))

    def translate_stream(self, ctx: TranslateContext, resource: RouteResource) -> None:
        seen: set[str] = set()
        for rule in resource.spec.stream:
            if rule.name in seen:
                raise TranslateError("duplicated route rule name")
            seen.add(rule.name)
            ctx.add_stream_route(self._stream_route(ctx, resource, rule))

    def plugins(self, namespace: str, plugins: list[Plugin]) -> dict[str, Any]:
        """Collect enabled plugins, merging secret-provided settings.

        Keys of a referenced secret are inserted into the plugin config as
        dotted paths and override inline values. An unreadable secret is
        logged and the plugin keeps its inline config.
        """
        result: dict[str, Any] = {}
        for plugin in plugins:
            if not plugin.enable:
                continue
            config = copy.deepcopy(plugin.config)
            if plugin.secret_ref:
                try:
                    secret = self.provider.get_secret(namespace, plugin.secret_ref)
                except KubegateError as e:
                    logger.error(
                        "plugin_secret_ref_invalid",
                        plugin=plugin.name,
                        secret_ref=plugin.secret_ref,
                        error=str(e),
                    )
                else:
                    for key, value in secret.data.items():
                        insert_key(config, key, value.decode("utf-8"))
            result[plugin.name] = config
        return result

    def _http_route(self, ctx: TranslateContext, resource: RouteResource, rule: HTTPRule) -> Route:
        namespace = resource.namespace
        validate_remote_addrs(rule.match.remote_addrs)
        exprs = compile_match(rule.match)

        plugins = self.plugins(namespace, rule.plugins)
        plugins.update(authentication_plugins(rule.authentication))

        route = Route(
            name=compose_route_name(namespace, resource.name, rule.name),
            priority=rule.priority,
            uris=rule.match.paths or None,
            hosts=rule.match.hosts or None,
            methods=rule.match.methods or None,
            remote_addrs=rule.match.remote_addrs or None,
            vars=exprs or None,
            enable_websocket=rule.websocket or None,
            filter_func=rule.match.filter_func or None,
            timeout=translate_timeout(rule.timeout, self.config.default_timeout),
            labels=dict(resource.metadata.labels) or None,
            plugins=plugins,
        )
        route.id = gen_id(route.name)
        if rule.plugin_config_name:
            route.plugin_config_id = gen_id(
                compose_plugin_config_name(namespace, rule.plugin_config_name)
            )

        weighted: list[WeightedUpstream] = []
        if rule.backends:
            first, rest = rule.backends[0], rule.backends[1:]
            ups = self.upstreams.translate_backend(
                namespace,
                first.service_name,
                first.service_port,
                first.subset,
                first.resolve_granularity,
            )
            ctx.add_upstream(ups)
            route.upstream_id = ups.id

            default_weight = self.config.default_weight
            if first.weight is not None:
                default_weight = first.weight
            if rest:
                split = self.traffic_split.compose(ctx, namespace, default_weight, rest)
                weighted = split.rules[0].weighted_upstreams

        externals = self._external_upstreams(namespace, rule)
        if externals:
            if not rule.backends:
                route.upstream_id = externals[0][0].id
                if len(externals) > 1:
                    # The first external upstream is the route's own, hence the empty id.
                    weighted = [WeightedUpstream(upstream_id="", weight=externals[0][1])]
                    weighted.extend(
                        WeightedUpstream(upstream_id=ups.id, weight=weight)
                        for ups, weight in externals[1:]
                    )
            else:
                if not weighted:
                    weighted = [WeightedUpstream(upstream_id="", weight=default_weight)]
                weighted.extend(
                    WeightedUpstream(upstream_id=ups.id, weight=weight) for ups, weight in externals
                )
            for ups, _ in externals:
                ctx.add_upstream(ups)

        if weighted:
            split = TrafficSplitConfig(rules=[TrafficSplitRule(weighted_upstreams=weighted)])
            route.plugins[TRAFFIC_SPLIT_PLUGIN] = split.to_payload()
        return route

    def _external_upstreams(self, namespace: str, rule: HTTPRule) -> list[tuple[Upstream, int]]:
        """Translate referenced ApisixUpstreams; failures skip the reference."""
        result = []
        for ref in rule.upstreams:
            try:
                ups = self.upstreams.translate_external(namespace, ref.name)
            except KubegateError as e:
                logger.error(
                    "external_upstream_translation_failed",
                    namespace=namespace,
                    upstream=ref.name,
                    error=str(e),
                )
                continue
            weight = ref.weight if ref.weight is not None else self.config.default_weight
            result.append((ups, weight))
        return result

    def _stream_route(
        self, ctx: TranslateContext, resource: RouteResource, rule: StreamRule
    ) -> StreamRoute:
        backend = rule.backend
        ups = self.upstreams.translate_backend(
            resource.namespace,
            backend.service_name,
            backend.service_port,
            backend.subset,
            backend.resolve_granularity,
        )
        ctx.add_upstream(ups)

        name = compose_stream_route_name(resource.namespace, resource.name, rule.name)
        return StreamRoute(
            id=gen_id(name),
            name=name,
            server_port=rule.match.ingress_port,
            sni=rule.match.host or None,
            upstream_id=ups.id,
            plugins=self.plugins(resource.namespace, rule.plugins),
        )
