"""Interface definitions for kubegate's external collaborators."""

from kubegate.interfaces.resource_provider import (
    EndpointAddress,
    EndpointPort,
    EndpointsInfo,
    EndpointSubset,
    GatewayClassInfo,
    IngressClassInfo,
    ResourceProvider,
    SecretInfo,
    ServiceInfo,
    ServicePort,
)

__all__ = [
    "EndpointAddress",
    "EndpointPort",
    "EndpointsInfo",
    "EndpointSubset",
    "GatewayClassInfo",
    "IngressClassInfo",
    "ResourceProvider",
    "SecretInfo",
    "ServiceInfo",
    "ServicePort",
]
