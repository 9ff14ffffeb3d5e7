"""Translate ApisixTls resources into proxy SSL objects."""

from kubegate.core.exceptions import CertificateError, TranslateError
from kubegate.core.models import MutualTLSClientConfig, Ssl
from kubegate.core.naming import compose_ssl_name, gen_id
from kubegate.interfaces.resource_provider import ResourceProvider
from kubegate.resources.tls import ApisixTlsResource
from kubegate.ssl.certificates import extract_key_pair
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)


class SslTranslator:
    """Build SSL objects from the certificates an ApisixTls references."""

    def __init__(self, provider: ResourceProvider):
        self.provider = provider

    def translate(self, resource: ApisixTlsResource) -> Ssl:
        """Translate an ApisixTls.

        Args:
            resource: ApisixTls to translate

        Returns:
            SSL object carrying the certificate, key and optional client CA

        Raises:
            ResourceNotFoundError: If a referenced secret does not exist
            TranslateError: If a secret does not hold the expected material
        """
        spec = resource.spec
        secret = self.provider.get_secret(spec.secret.namespace, spec.secret.name)
        try:
            cert, key = extract_key_pair(secret, include_private_key=True)
        except CertificateError as e:
            raise TranslateError(str(e), field="secret") from e

        ssl = Ssl(
            snis=list(spec.hosts),
            cert=cert.decode(),
            key=key.decode(),
            labels=dict(resource.metadata.labels) or None,
        )
        ssl.id = gen_id(compose_ssl_name(resource.namespace, resource.name))

        if spec.client is not None:
            ca_ref = spec.client.ca_secret
            ca_secret = self.provider.get_secret(ca_ref.namespace, ca_ref.name)
            try:
                ca, _ = extract_key_pair(ca_secret, include_private_key=False)
            except CertificateError as e:
                raise TranslateError(str(e), field="client.caSecret") from e
            ssl.client = MutualTLSClientConfig(
                ca=ca.decode(),
                depth=spec.client.depth,
                skip_mtls_uri_regex=spec.client.skip_mtls_uri_regex or None,
            )

        logger.debug(
            "ssl_translated", namespace=resource.namespace, name=resource.name, snis=ssl.snis
        )
        return ssl
