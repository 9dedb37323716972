"""Builder for the Service exposing the database port."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..constants import PORT_NAME
from .naming import resource_labels, selector_labels, service_name

if TYPE_CHECKING:
    from ..models import DesiredClusterState


def build_service(state: DesiredClusterState) -> dict[str, Any]:
    """Create the ClusterIP Service manifest.

    The selector matches the cluster's pod labels, so the endpoint follows
    replica membership without further updates.

    Args:
        state: Desired cluster state

    Returns:
        Service manifest
    """
    name = state.identity.name
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": service_name(name),
            "namespace": state.identity.namespace,
            "labels": resource_labels(name, "network", state.labels),
        },
        "spec": {
            "type": "ClusterIP",
            "selector": selector_labels(name),
            "ports": [
                {
                    "name": PORT_NAME,
                    "port": state.port,
                    "targetPort": PORT_NAME,
                    "protocol": "TCP",
                }
            ],
        },
    }
