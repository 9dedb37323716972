"""Kubernetes object store access and create-or-update primitives."""

from .base import ObjectStore
from .client import KubeClient, create_kube_client
from .resources import (
    ConfigurationResource,
    ManagedResource,
    NetworkResource,
    StorageResource,
    WorkloadResource,
    managed_resources,
)
from .upsert import UpsertEngine, UpsertOutcome, UpsertResult

__all__ = [
    "ObjectStore",
    "KubeClient",
    "create_kube_client",
    "ManagedResource",
    "ConfigurationResource",
    "StorageResource",
    "NetworkResource",
    "WorkloadResource",
    "managed_resources",
    "UpsertEngine",
    "UpsertOutcome",
    "UpsertResult",
]
