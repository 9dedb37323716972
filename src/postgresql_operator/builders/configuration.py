"""Builder for the ConfigMap holding the database environment."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..constants import PGDATA_PATH
from .naming import config_map_name, resource_labels

if TYPE_CHECKING:
    from ..models import DesiredClusterState


def build_config_map(state: DesiredClusterState) -> dict[str, Any]:
    """Create the ConfigMap manifest consumed by the workload via envFrom.

    Credentials are not part of the ConfigMap. The workload reads them from
    the referenced Secret, whose name is recorded here for operators.

    Args:
        state: Desired cluster state

    Returns:
        ConfigMap manifest
    """
    name = state.identity.name
    data = dict(state.parameters)
    data.update({
        "POSTGRES_DB": state.database,
        "PGDATA": PGDATA_PATH,
        "PGPORT": str(state.port),
        "POSTGRES_CREDENTIALS_SECRET": state.credentials_secret,
    })

    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": config_map_name(name),
            "namespace": state.identity.namespace,
            "labels": resource_labels(name, "config", state.labels),
        },
        "data": dict(sorted(data.items())),
    }
