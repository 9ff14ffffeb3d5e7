"""Integration tests for kubegate.

These tests read from a real Kubernetes cluster and require a kubeconfig
(KUBECONFIG or ~/.kube/config) with read access to Services, Secrets,
IngressClasses and Ingresses. Missing Gateway API or APISIX CRDs skip the
corresponding tests.

Tests are marked with @pytest.mark.integration and can be run with:
    pytest tests/integration/ -m integration

To skip integration tests:
    pytest -m "not integration"
"""
