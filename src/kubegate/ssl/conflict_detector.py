"""Detect hostnames bound to different certificates within a gateway group."""

from kubegate.core.config import TranslatorConfig
from kubegate.core.exceptions import KubegateError
from kubegate.core.models import HostCertMapping, SSLConflict
from kubegate.core.naming import resource_ref
from kubegate.interfaces.exceptions import InterfaceError
from kubegate.interfaces.resource_provider import ResourceProvider
from kubegate.resources.common import KubernetesResource
from kubegate.resources.gateway import GatewayResource
from kubegate.resources.ingress import IngressResource
from kubegate.resources.tls import ApisixTlsResource
from kubegate.ssl.certificates import CertificateInfo, SecretCertificateCache, normalize_hosts
from kubegate.ssl.groups import GatewayGroup, GatewayGroupResolver
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)

SECRET_KIND = "Secret"
CORE_GROUP = ""

# Lookup failures the detector tolerates; it never blocks admission on them.
LOOKUP_ERRORS = (KubegateError, InterfaceError)


def format_conflicts(conflicts: list[SSLConflict]) -> str:
    """Render conflicts as an admission denial message.

    Returns:
        Multi-line message, or an empty string when there are no conflicts
    """
    if not conflicts:
        return ""
    lines = ["SSL configuration conflicts detected:"]
    for conflict in conflicts:
        lines.append(
            f"- Host '{conflict.host}' is already configured with a different certificate "
            f"in {conflict.conflicting_resource}"
        )
    return "\n".join(lines)


def _same_object(a: KubernetesResource, b: KubernetesResource) -> bool:
    if a.metadata.uid and a.metadata.uid == b.metadata.uid:
        return True
    return (a.kind, a.namespace, a.name) == (b.kind, b.namespace, b.name)


class ConflictDetector:
    """Check a candidate resource's host/certificate bindings against its group.

    A conflict exists when the same hostname is terminated with different
    certificates, either within the candidate itself or between the
    candidate and another resource served by the same gateway group.
    Detection fails open: when the candidate's group cannot be determined
    no conflicts are reported.
    """

    def __init__(
        self,
        provider: ResourceProvider,
        config: TranslatorConfig,
        groups: GatewayGroupResolver | None = None,
    ):
        self.provider = provider
        self.config = config
        self.groups = groups or GatewayGroupResolver(provider, config)

    def build_mappings(
        self, resource: KubernetesResource, cache: SecretCertificateCache | None = None
    ) -> list[HostCertMapping]:
        if cache is None:
            cache = SecretCertificateCache(self.provider)
        if isinstance(resource, GatewayResource):
            return self.build_gateway_mappings(resource, cache)
        if isinstance(resource, IngressResource):
            return self.build_ingress_mappings(resource, cache)
        if isinstance(resource, ApisixTlsResource):
            return self.build_apisixtls_mappings(resource, cache)
        return []

    def build_gateway_mappings(
        self, gateway: GatewayResource, cache: SecretCertificateCache | None = None
    ) -> list[HostCertMapping]:
        """Map every TLS listener hostname to its certificate.

        Listeners without a hostname fall back to the certificate's SANs.
        Certificate refs that are not core Secrets are ignored.
        """
        if cache is None:
            cache = SecretCertificateCache(self.provider)
        ref = resource_ref("Gateway", gateway.namespace, gateway.name)
        mappings = []
        for listener in gateway.spec.listeners:
            if listener.tls is None or not listener.tls.certificate_refs:
                continue
            for cert_ref in listener.tls.certificate_refs:
                if cert_ref.kind != SECRET_KIND or cert_ref.group != CORE_GROUP:
                    continue
                namespace = cert_ref.namespace or gateway.namespace
                info = self._certificate(cache, ref, namespace, cert_ref.name)
                if info is None:
                    continue
                hosts = normalize_hosts([listener.hostname] if listener.hostname else [])
                mappings.extend(self._mappings(hosts or info.hosts, info, ref))
        return mappings

    def build_ingress_mappings(
        self, ingress: IngressResource, cache: SecretCertificateCache | None = None
    ) -> list[HostCertMapping]:
        if cache is None:
            cache = SecretCertificateCache(self.provider)
        ref = resource_ref("Ingress", ingress.namespace, ingress.name)
        mappings = []
        for tls in ingress.spec.tls:
            if not tls.secret_name:
                continue
            info = self._certificate(cache, ref, ingress.namespace, tls.secret_name)
            if info is None:
                continue
            hosts = normalize_hosts(tls.hosts)
            mappings.extend(self._mappings(hosts or info.hosts, info, ref))
        return mappings

    def build_apisixtls_mappings(
        self, tls: ApisixTlsResource, cache: SecretCertificateCache | None = None
    ) -> list[HostCertMapping]:
        if cache is None:
            cache = SecretCertificateCache(self.provider)
        ref = resource_ref("ApisixTls", tls.namespace, tls.name)
        secret = tls.spec.secret
        info = self._certificate(cache, ref, secret.namespace, secret.name)
        if info is None:
            return []
        # hosts is required by the ApisixTls schema; no SAN fallback
        return self._mappings(normalize_hosts(tls.spec.hosts), info, ref)

    def detect_conflicts(self, candidate: KubernetesResource) -> list[SSLConflict]:
        """Detect host/certificate conflicts for a resource being admitted.

        Args:
            candidate: Gateway, Ingress or ApisixTls in its proposed state

        Returns:
            Conflicts found. Inconsistencies inside the candidate are reported
            on their own, without consulting the rest of the group.
        """
        cache = SecretCertificateCache(self.provider)
        mappings = self.build_mappings(candidate, cache)
        if not mappings:
            return []

        group = self._resolve_group(candidate)
        if group is None:
            return []

        own: dict[str, str] = {}
        conflicts: list[SSLConflict] = []
        for mapping in mappings:
            if not mapping.host or not mapping.certificate_hash:
                continue
            previous = own.get(mapping.host)
            if previous is None:
                own[mapping.host] = mapping.certificate_hash
            elif previous != mapping.certificate_hash:
                conflicts.append(
                    SSLConflict(
                        host=mapping.host,
                        conflicting_resource=mapping.resource_ref,
                        certificate_hash=previous,
                    )
                )
        if conflicts:
            logger.info("ssl_self_conflicts_detected", group=str(group), count=len(conflicts))
            return conflicts

        existing = self._existing_mappings(group, candidate, cache)
        seen: set[str] = set()
        for host, cert_hash in own.items():
            holders = existing.get(host, [])
            if not self.config.report_all_conflicts:
                holders = holders[:1]
            for holder in holders:
                if holder.certificate_hash == cert_hash:
                    continue
                key = f"{host}|{holder.resource_ref}|{holder.certificate_hash}"
                if key in seen:
                    continue
                seen.add(key)
                conflicts.append(
                    SSLConflict(
                        host=host,
                        conflicting_resource=holder.resource_ref,
                        certificate_hash=holder.certificate_hash,
                    )
                )

        if conflicts:
            logger.info("ssl_conflicts_detected", group=str(group), count=len(conflicts))
        return conflicts

    def group_members(
        self, group: GatewayGroup, candidate: KubernetesResource
    ) -> list[KubernetesResource]:
        """List other Gateways, Ingresses and ApisixTls resources in a group.

        Resources whose group cannot be resolved are skipped.
        """
        resources: list[KubernetesResource] = []
        resources.extend(self.provider.list_gateways())
        resources.extend(self.provider.list_ingresses())
        resources.extend(self.provider.list_apisix_tls())

        members = []
        for resource in resources:
            if _same_object(resource, candidate):
                continue
            try:
                member_group = self.groups.resolve(resource)
            except LOOKUP_ERRORS as e:
                logger.warning(
                    "gateway_group_resolution_failed",
                    resource=resource_ref(resource.kind, resource.namespace, resource.name),
                    error=str(e),
                )
                continue
            if member_group == group:
                members.append(resource)
        return members

    def _resolve_group(self, candidate: KubernetesResource) -> GatewayGroup | None:
        try:
            group = self.groups.resolve(candidate)
        except LOOKUP_ERRORS as e:
            logger.warning(
                "gateway_group_resolution_failed",
                resource=resource_ref(candidate.kind, candidate.namespace, candidate.name),
                error=str(e),
            )
            return None
        if group is None:
            logger.debug(
                "gateway_group_not_found",
                resource=resource_ref(candidate.kind, candidate.namespace, candidate.name),
            )
        return group

    def _existing_mappings(
        self, group: GatewayGroup, candidate: KubernetesResource, cache: SecretCertificateCache
    ) -> dict[str, list[HostCertMapping]]:
        """Index mappings held by the rest of the group by host.

        Each resource contributes at most its first mapping per host; holders
        keep the order in which resources were listed.
        """
        try:
            members = self.group_members(group, candidate)
        except LOOKUP_ERRORS as e:
            logger.warning("gateway_group_listing_failed", group=str(group), error=str(e))
            return {}

        index: dict[str, list[HostCertMapping]] = {}
        for member in members:
            first_per_host: dict[str, HostCertMapping] = {}
            for mapping in self.build_mappings(member, cache):
                if mapping.host and mapping.certificate_hash:
                    first_per_host.setdefault(mapping.host, mapping)
            for host, mapping in first_per_host.items():
                index.setdefault(host, []).append(mapping)
        return index

    def _certificate(
        self, cache: SecretCertificateCache, ref: str, namespace: str, name: str
    ) -> CertificateInfo | None:
        try:
            return cache.get(namespace, name)
        except LOOKUP_ERRORS as e:
            logger.warning(
                "tls_secret_unreadable",
                resource=ref,
                secret=f"{namespace}/{name}",
                error=str(e),
            )
            return None

    @staticmethod
    def _mappings(hosts: list[str], info: CertificateInfo, ref: str) -> list[HostCertMapping]:
        return [
            HostCertMapping(host=host, certificate_hash=info.hash, resource_ref=ref)
            for host in hosts
        ]
