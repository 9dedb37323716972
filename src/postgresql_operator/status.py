"""Observed status of a cluster, aggregated from its live children."""

from __future__ import annotations

import copy
import logging
from typing import Any

from . import metrics
from .builders.naming import child_names
from .constants import COND_READY, ResourceKind
from .models import ClusterIdentity
from .services.kube.base import ObjectStore
from .utils.conditions import (
    set_ready_condition,
    set_reconciled_condition,
    set_spec_valid_condition,
    set_storage_immutable_condition,
    update_condition,
)

logger = logging.getLogger(__name__)


def statefulset_status(live: dict[str, Any] | None) -> dict[str, Any]:
    """Replica counts reported by the live StatefulSet."""
    if not live:
        return {}
    status = live.get("status") or {}
    return {
        "replicas": status.get("replicas", 0),
        "readyReplicas": status.get("readyReplicas", 0),
        "currentReplicas": status.get("currentReplicas", 0),
        "updatedReplicas": status.get("updatedReplicas", 0),
    }


def claim_status(live: dict[str, Any] | None) -> dict[str, Any]:
    """Phase and capacity reported by the live PersistentVolumeClaim."""
    if not live:
        return {}
    status = live.get("status") or {}
    observed = {"phase": status.get("phase", "Pending")}
    capacity = (status.get("capacity") or {}).get("storage")
    if capacity:
        observed["capacity"] = capacity
    storage_class = (live.get("spec") or {}).get("storageClassName")
    if storage_class:
        observed["storageClassName"] = storage_class
    return observed


def service_status(live: dict[str, Any] | None) -> dict[str, Any]:
    """Address and ports of the live Service."""
    if not live:
        return {}
    spec = live.get("spec") or {}
    observed: dict[str, Any] = {
        "ports": [port.get("port") for port in spec.get("ports", [])],
        "loadBalancer": (live.get("status") or {}).get("loadBalancer") or {},
    }
    if spec.get("clusterIP"):
        observed["clusterIP"] = spec["clusterIP"]
    return observed


def is_ready(statefulset: dict[str, Any] | None, claim: dict[str, Any]) -> tuple[bool, str]:
    """Readiness judged from live children only."""
    if not statefulset:
        return False, "StatefulSet not found"
    wanted = (statefulset.get("spec") or {}).get("replicas", 1)
    ready = (statefulset.get("status") or {}).get("readyReplicas", 0)
    if claim.get("phase") != "Bound":
        return False, f"Storage claim is {claim.get('phase', 'missing')}"
    if ready < wanted:
        return False, f"{ready}/{wanted} replicas ready"
    return True, f"{ready}/{wanted} replicas ready"


class StatusAggregator:
    """Reads the live children of a cluster and writes its status."""

    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    def observe(
        self,
        identity: ClusterIdentity,
        previous: dict[str, Any],
        generation: int,
        violations: list[str],
    ) -> dict[str, Any]:
        """Compute the status of a successfully reconciled cluster.

        Args:
            identity: Cluster identity
            previous: The status currently persisted on the cluster object
            generation: metadata.generation of the cluster object
            violations: Create-once storage fields the desired state tried to change

        Returns:
            The complete status record
        """
        names = child_names(identity.name)
        statefulset = self.store.get(ResourceKind.WORKLOAD, identity.namespace, names[ResourceKind.WORKLOAD])
        claim = self.store.get(ResourceKind.STORAGE, identity.namespace, names[ResourceKind.STORAGE])
        service = self.store.get(ResourceKind.NETWORK, identity.namespace, names[ResourceKind.NETWORK])

        observed_claim = claim_status(claim)
        ready, ready_message = is_ready(statefulset, observed_claim)

        conditions = copy.deepcopy(previous.get("conditions") or [])
        conditions = set_spec_valid_condition(conditions, True, "Spec is valid", generation)
        if violations:
            message = (
                "Storage fields cannot change after the claim is created: " + ", ".join(violations)
            )
            conditions = set_storage_immutable_condition(conditions, True, message, generation)
        else:
            conditions = set_storage_immutable_condition(
                conditions, False, "Storage matches the claim", generation
            )
        conditions = set_reconciled_condition(
            conditions, True, "Reconciled", "All managed resources are up to date", generation
        )
        conditions = set_ready_condition(conditions, ready, ready_message, generation)

        return {
            "statefulSetStatus": statefulset_status(statefulset),
            "persistentVolumeClaimStatus": observed_claim,
            "serviceStatus": service_status(service),
            "observedGeneration": generation,
            "conditions": conditions,
        }

    def failed(
        self,
        previous: dict[str, Any],
        generation: int,
        reason: str,
        message: str,
        spec_invalid: bool = False,
    ) -> dict[str, Any]:
        """Compute the status fields recorded when a reconcile aborts.

        Observed child fields are left as they were persisted.
        """
        conditions = copy.deepcopy(previous.get("conditions") or [])
        if spec_invalid:
            conditions = set_spec_valid_condition(conditions, False, message, generation)
        conditions = set_reconciled_condition(conditions, False, reason, message, generation)
        conditions = update_condition(conditions, COND_READY, "False", reason, message, generation)
        return {
            "observedGeneration": generation,
            "conditions": conditions,
        }

    def write_if_changed(
        self,
        identity: ClusterIdentity,
        previous: dict[str, Any],
        status: dict[str, Any],
    ) -> bool:
        """Persist ``status`` unless the cluster already carries the same values.

        Returns:
            True if a write was issued
        """
        if all(previous.get(key) == value for key, value in status.items()):
            return False
        try:
            self.store.patch_cluster_status(identity.namespace, identity.name, status)
        except Exception:
            metrics.status_writes_total.labels(result="error").inc()
            raise
        metrics.status_writes_total.labels(result="success").inc()
        return True
