"""Exceptions for interface implementations."""


class InterfaceError(Exception):
    """Base exception for all interface-related errors."""


class ResourceProviderError(InterfaceError):
    """Exception for resource provider operations."""
