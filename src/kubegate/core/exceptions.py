"""Custom exceptions for kubegate."""


class KubegateError(Exception):
    """Base exception for all kubegate errors."""


class ConfigurationError(KubegateError):
    """Configuration-related errors."""


class TranslateError(KubegateError):
    """A resource field failed validation during translation.

    Attributes:
        field: Dotted path of the offending field (may be empty)
        reason: Short description of what is wrong with it
    """

    def __init__(self, reason: str, field: str = ""):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}" if field else reason)


class ResourceNotFoundError(KubegateError):
    """A referenced Kubernetes object does not exist.

    Attributes:
        kind: Object kind (Service, Secret, ...)
        namespace: Object namespace
        name: Object name
    """

    def __init__(self, kind: str, namespace: str, name: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f'{kind.lower()} "{name}" not found in namespace "{namespace}"')


class ServicePortNotDefinedError(KubegateError):
    """The requested port is not declared on the service."""


class KubernetesError(KubegateError):
    """Kubernetes operation failed.

    Attributes:
        status: HTTP status returned by the API server, if any
    """

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)


class SSLConflictError(KubegateError):
    """Admission rejected because hosts are bound to different certificates.

    Attributes:
        conflicts: The detected SSLConflict entries
    """

    def __init__(self, message: str, conflicts: list):
        self.conflicts = conflicts
        super().__init__(message)


class UnsupportedResourceError(KubegateError):
    """The manifest's apiVersion/kind is not understood."""


class CertificateError(KubegateError):
    """A TLS secret does not hold a usable certificate or key."""
