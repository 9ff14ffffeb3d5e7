"""Object names and ids for compiled proxy configuration.

Every compiled object has a human-readable name built from the source
resource's coordinates and an id derived from that name. The id is the
idempotent upsert key used against the proxy admin API, so it must be a pure
function of the name.
"""

import zlib


def gen_id(name: str) -> str:
    """Derive a stable object id from its name.

    Args:
        name: Composed object name

    Returns:
        Lowercase hex CRC32 (IEEE) of the name, or "" for an empty name
    """
    if not name:
        return ""
    return format(zlib.crc32(name.encode("utf-8")), "x")


def compose_upstream_name(namespace: str, name: str, subset: str, port: int | str) -> str:
    """Compose an upstream name: <namespace>_<service>[_<subset>]_<port>."""
    parts = [namespace, name]
    if subset:
        parts.append(subset)
    parts.append(str(port))
    return "_".join(parts)


def compose_external_upstream_name(namespace: str, name: str) -> str:
    """Compose the name of an upstream backed by external nodes."""
    return f"{namespace}_{name}"


def compose_route_name(namespace: str, name: str, rule: str) -> str:
    """Compose an HTTP route name: <namespace>_<resource>_<rule>."""
    return f"{namespace}_{name}_{rule}"


def compose_stream_route_name(namespace: str, name: str, rule: str) -> str:
    """Compose a stream route name: <namespace>_<resource>_<rule>_tcp."""
    return f"{namespace}_{name}_{rule}_tcp"


def compose_plugin_config_name(namespace: str, name: str) -> str:
    """Compose a plugin config name: <namespace>_<name>."""
    return f"{namespace}_{name}"


def compose_ssl_name(namespace: str, name: str) -> str:
    """Compose an SSL object name: <namespace>_<name>."""
    return f"{namespace}_{name}"


def resource_ref(kind: str, namespace: str, name: str) -> str:
    """Render an operator-facing reference such as Gateway/default/web."""
    return f"{kind}/{namespace}/{name}"
