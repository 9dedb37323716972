"""Builder for the PersistentVolumeClaim backing the data directory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .naming import claim_name, resource_labels

if TYPE_CHECKING:
    from ..models import DesiredClusterState


def build_claim(state: DesiredClusterState) -> dict[str, Any]:
    """Create the PersistentVolumeClaim manifest.

    storageClassName, accessModes and the requested size are create-once:
    the claim is never patched to follow later changes to them.

    Args:
        state: Desired cluster state

    Returns:
        PersistentVolumeClaim manifest
    """
    name = state.identity.name
    spec: dict[str, Any] = {
        "accessModes": list(state.storage.access_modes),
        "resources": {"requests": {"storage": state.storage.size}},
    }
    if state.storage.storage_class:
        spec["storageClassName"] = state.storage.storage_class

    return {
        "apiVersion": "v1",
        "kind": "PersistentVolumeClaim",
        "metadata": {
            "name": claim_name(name),
            "namespace": state.identity.namespace,
            "labels": resource_labels(name, "storage", state.labels),
        },
        "spec": spec,
    }
