"""Builder for the StatefulSet running the database."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..constants import (
    CONTAINER_NAME,
    CREDENTIALS_PASSWORD_KEY,
    CREDENTIALS_USERNAME_KEY,
    DATA_MOUNT_PATH,
    DATA_VOLUME_NAME,
    PORT_NAME,
)
from .naming import (
    claim_name,
    config_map_name,
    resource_labels,
    selector_labels,
    service_name,
    statefulset_name,
)

if TYPE_CHECKING:
    from ..models import DesiredClusterState


def _secret_env(name: str, secret: str, key: str) -> dict[str, Any]:
    return {
        "name": name,
        "valueFrom": {"secretKeyRef": {"name": secret, "key": key}},
    }


def build_container(state: DesiredClusterState) -> dict[str, Any]:
    """Create the database container spec."""
    readiness_command = [
        "sh",
        "-c",
        'pg_isready -U "$POSTGRES_USER" -d "$POSTGRES_DB" -h 127.0.0.1 -p "$PGPORT"',
    ]
    return {
        "name": CONTAINER_NAME,
        "image": state.version,
        "ports": [{"name": PORT_NAME, "containerPort": state.port, "protocol": "TCP"}],
        "envFrom": [{"configMapRef": {"name": config_map_name(state.identity.name)}}],
        "env": [
            _secret_env("POSTGRES_USER", state.credentials_secret, CREDENTIALS_USERNAME_KEY),
            _secret_env("POSTGRES_PASSWORD", state.credentials_secret, CREDENTIALS_PASSWORD_KEY),
        ],
        "volumeMounts": [{"name": DATA_VOLUME_NAME, "mountPath": DATA_MOUNT_PATH}],
        "readinessProbe": {
            "exec": {"command": readiness_command},
            "initialDelaySeconds": 5,
            "periodSeconds": 10,
        },
    }


def build_statefulset(state: DesiredClusterState) -> dict[str, Any]:
    """Create the StatefulSet manifest.

    Args:
        state: Desired cluster state

    Returns:
        StatefulSet manifest
    """
    name = state.identity.name
    pod_labels = resource_labels(name, "database", state.labels)

    return {
        "apiVersion": "apps/v1",
        "kind": "StatefulSet",
        "metadata": {
            "name": statefulset_name(name),
            "namespace": state.identity.namespace,
            "labels": pod_labels,
        },
        "spec": {
            "replicas": state.effective_replicas,
            "serviceName": service_name(name),
            "selector": {"matchLabels": selector_labels(name)},
            "template": {
                "metadata": {"labels": pod_labels},
                "spec": {
                    "containers": [build_container(state)],
                    "volumes": [
                        {
                            "name": DATA_VOLUME_NAME,
                            "persistentVolumeClaim": {"claimName": claim_name(name)},
                        }
                    ],
                },
            },
        },
    }
