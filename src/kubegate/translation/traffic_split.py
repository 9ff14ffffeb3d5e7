"""Compose weighted multi-backend traffic splits."""

from kubegate.core.config import TranslatorConfig
from kubegate.core.models import TrafficSplitConfig, TrafficSplitRule, WeightedUpstream
from kubegate.resources.route import Backend
from kubegate.translation.context import TranslateContext
from kubegate.translation.upstream import UpstreamTranslator
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)


class TrafficSplitComposer:
    """Build the traffic-split plugin configuration for a list of backends."""

    def __init__(self, config: TranslatorConfig, upstreams: UpstreamTranslator):
        self.config = config
        self.upstreams = upstreams

    def compose(
        self,
        ctx: TranslateContext,
        namespace: str,
        default_weight: int,
        backends: list[Backend],
    ) -> TrafficSplitConfig:
        """Translate backends into a single weighted traffic-split rule.

        Each backend contributes one weighted entry in order, followed by a
        trailing entry with an empty upstream id that carries
        `default_weight` for the route's own upstream. Backends resolving to
        the same upstream share one compiled upstream in `ctx`, but their
        weights are kept separately.

        Args:
            ctx: Translate context collecting compiled upstreams
            namespace: Namespace of the route
            default_weight: Weight of the route's own upstream
            backends: Extra backends to split traffic to

        Returns:
            Traffic split configuration with exactly one rule

        Raises:
            ResourceNotFoundError: If a backend service does not exist
            ServicePortNotDefinedError: If a backend port is not declared
            TranslateError: On granularity conflicts or invalid overrides
        """
        weighted = []
        for backend in backends:
            ups = self.upstreams.translate_backend(
                namespace,
                backend.service_name,
                backend.service_port,
                backend.subset,
                backend.resolve_granularity,
            )
            ctx.add_upstream(ups)

            weight = backend.weight if backend.weight is not None else self.config.default_weight
            weighted.append(WeightedUpstream(upstream_id=ups.id, weight=weight))

        weighted.append(WeightedUpstream(upstream_id="", weight=default_weight))
        logger.debug("traffic_split_composed", namespace=namespace, entries=len(weighted))
        return TrafficSplitConfig(rules=[TrafficSplitRule(weighted_upstreams=weighted)])
