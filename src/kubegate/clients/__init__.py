"""Kubernetes API client wrappers."""
