"""Deterministic names and labels for managed resources."""

from __future__ import annotations

from ..constants import (
    APP_NAME,
    LABEL_CLUSTER,
    LABEL_COMPONENT,
    LABEL_INSTANCE,
    LABEL_MANAGED_BY,
    LABEL_NAME,
    MANAGED_BY,
    NAME_PREFIX,
    SUFFIX_CONFIG,
    SUFFIX_DATA,
    ResourceKind,
)


def config_map_name(cluster_name: str) -> str:
    return f"{NAME_PREFIX}-{cluster_name}-{SUFFIX_CONFIG}"


def claim_name(cluster_name: str) -> str:
    return f"{NAME_PREFIX}-{cluster_name}-{SUFFIX_DATA}"


def service_name(cluster_name: str) -> str:
    return f"{NAME_PREFIX}-{cluster_name}"


def statefulset_name(cluster_name: str) -> str:
    return f"{NAME_PREFIX}-{cluster_name}"


def child_names(cluster_name: str) -> dict[ResourceKind, str]:
    """Names of every managed resource for a cluster, keyed by kind.

    Each name is a fixed prefix and suffix around the cluster name, so two
    clusters in the same namespace never share a child of the same kind.
    """
    return {
        ResourceKind.CONFIGURATION: config_map_name(cluster_name),
        ResourceKind.STORAGE: claim_name(cluster_name),
        ResourceKind.NETWORK: service_name(cluster_name),
        ResourceKind.WORKLOAD: statefulset_name(cluster_name),
    }


def selector_labels(cluster_name: str) -> dict[str, str]:
    """Labels that select the pods of exactly one cluster."""
    return {
        LABEL_NAME: APP_NAME,
        LABEL_CLUSTER: cluster_name,
    }


def resource_labels(
    cluster_name: str,
    component: str,
    user_labels: dict[str, str] | None = None,
) -> dict[str, str]:
    """Labels stamped on every managed resource.

    Labels from the cluster object are carried over; operator-owned keys win.
    """
    labels = dict(user_labels or {})
    labels.update(selector_labels(cluster_name))
    labels.update({
        LABEL_INSTANCE: cluster_name,
        LABEL_COMPONENT: component,
        LABEL_MANAGED_BY: MANAGED_BY,
    })
    return dict(sorted(labels.items()))
