"""Accumulator for the proxy objects produced while translating one resource."""

from dataclasses import dataclass, field

from kubegate.core.models import Route, StreamRoute, Upstream


@dataclass
class TranslateContext:
    """Objects compiled from one source resource.

    Upstreams are keyed by id: several backends resolving to the same
    service, subset and port share one compiled upstream.
    """

    routes: list[Route] = field(default_factory=list)
    stream_routes: list[StreamRoute] = field(default_factory=list)
    upstreams: list[Upstream] = field(default_factory=list)
    _upstream_ids: set[str] = field(default_factory=set, repr=False)

    def add_route(self, route: Route) -> None:
        self.routes.append(route)

    def add_stream_route(self, route: StreamRoute) -> None:
        self.stream_routes.append(route)

    def add_upstream(self, upstream: Upstream) -> bool:
        """Add an upstream unless one with the same id is already present.

        Returns:
            True if the upstream was added
        """
        if upstream.id in self._upstream_ids:
            return False
        self._upstream_ids.add(upstream.id)
        self.upstreams.append(upstream)
        return True
