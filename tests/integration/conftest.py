"""Integration test fixtures and configuration."""

import os
from pathlib import Path

import pytest

from kubegate.adapters.k8s_adapter import KubernetesAdapter
from kubegate.clients.kubernetes_client import KubernetesClient
from kubegate.core.exceptions import KubernetesError
from kubegate.interfaces.exceptions import ResourceProviderError


@pytest.fixture
def skip_if_no_kubeconfig():
    """Skip test if kubeconfig is not available."""
    kubeconfig_path = os.getenv("KUBECONFIG", str(Path("~/.kube/config").expanduser()))
    if not Path(kubeconfig_path).exists():
        pytest.skip(
            "Kubeconfig not found. Set KUBECONFIG environment variable or "
            "ensure ~/.kube/config exists."
        )


@pytest.fixture
def k8s_test_context() -> str | None:
    """Optional kubeconfig context for integration tests."""
    return os.getenv("K8S_TEST_CONTEXT")


@pytest.fixture
def k8s_client(skip_if_no_kubeconfig, k8s_test_context) -> KubernetesClient:
    """Create Kubernetes client for integration tests."""
    try:
        return KubernetesClient(context=k8s_test_context)
    except KubernetesError as e:
        pytest.skip(f"Failed to initialize Kubernetes client: {e}")


@pytest.fixture
def k8s_adapter(skip_if_no_kubeconfig, k8s_test_context) -> KubernetesAdapter:
    """Create the Kubernetes-backed resource provider."""
    try:
        return KubernetesAdapter(context=k8s_test_context)
    except ResourceProviderError as e:
        pytest.skip(f"Failed to initialize Kubernetes adapter: {e}")
