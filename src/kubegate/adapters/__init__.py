"""Adapters implementing kubegate interfaces on top of cluster clients."""

from kubegate.adapters.k8s_adapter import KubernetesAdapter

__all__ = ["KubernetesAdapter"]
