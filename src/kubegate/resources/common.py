"""Building blocks shared by the declarative resource models."""

import re
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> float | None:
    """Parse a Kubernetes duration into seconds.

    Accepts Go duration strings ("500ms", "1m30s", "-2s") as used by
    metav1.Duration, or plain numbers which are taken as seconds.

    Args:
        value: Raw field value

    Returns:
        Duration in seconds, or None when the field is unset

    Raises:
        ValueError: If a string does not follow the duration syntax
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"invalid duration: {value!r}")

    text = value.strip()
    sign = 1.0
    if text and text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return sign * total


Duration = Annotated[float | None, BeforeValidator(parse_duration)]


class ResourceModel(BaseModel):
    """Base for models parsed from Kubernetes manifests (camelCase keys)."""

    class Config:
        """Pydantic config."""

        populate_by_name = True
        extra = "ignore"


class ObjectMeta(ResourceModel):
    """The subset of object metadata kubegate relies on."""

    name: str
    namespace: str = "default"
    uid: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class SecretReference(ResourceModel):
    """Reference to a Secret in an explicit namespace."""

    name: str
    namespace: str


class KubernetesResource(ResourceModel):
    """A namespaced object with metadata and identity helpers."""

    kind: str = ""
    metadata: ObjectMeta

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def identity(self) -> str:
        """Stable identity: the uid when assigned, else kind/namespace/name."""
        if self.metadata.uid:
            return self.metadata.uid
        return f"{self.kind}/{self.namespace}/{self.name}"
