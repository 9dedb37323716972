"""Scenario tests for the cluster reconciler."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from postgresql_operator.constants import ResourceKind
from postgresql_operator.reconciler import ClusterReconciler, Stage
from postgresql_operator.services.kube.upsert import UpsertOutcome
from postgresql_operator.utils.conditions import get_condition
from postgresql_operator.utils.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TransientError,
    ValidationError,
)


@pytest.fixture
def reconciler(store, config):
    return ClusterReconciler(store, config)


def _status(store, name="demo"):
    return store.clusters[("default", name)].get("status", {})


class TestCreate:
    """A new cluster gets all four children."""

    def test_children_created_and_owned(self, store, reconciler) -> None:
        """Test every child is created once and points at the cluster."""
        store.add_cluster()

        result = reconciler.reconcile(store.identity())

        assert result.ok
        assert result.stage is Stage.DONE
        assert result.requeue_after is None
        assert set(result.outcomes.values()) == {UpsertOutcome.CREATED}
        creates = [w for w in store.writes if w.op == "create"]
        assert [w.kind for w in creates] == ["ConfigMap", "PersistentVolumeClaim", "Service", "StatefulSet"]
        uid = store.clusters[("default", "demo")]["metadata"]["uid"]
        for obj in store.objects.values():
            assert obj["metadata"]["ownerReferences"][0]["uid"] == uid
        sts = store.objects[(ResourceKind.WORKLOAD, "default", "postgresql-demo")]
        assert sts["spec"]["replicas"] == 1

    def test_status_written(self, store, reconciler) -> None:
        """Test status reflects the live children."""
        store.add_cluster()

        result = reconciler.reconcile(store.identity())
        status = _status(store)

        assert result.status_written
        assert status["observedGeneration"] == 1
        assert status["serviceStatus"]["clusterIP"] == "10.96.0.10"
        assert status["persistentVolumeClaimStatus"]["phase"] == "Pending"
        assert get_condition(status["conditions"], "Reconciled")["status"] == "True"
        assert get_condition(status["conditions"], "Ready")["status"] == "False"
        assert get_condition(status["conditions"], "SpecValid")["status"] == "True"

    def test_ready_once_children_report_ready(self, store, reconciler) -> None:
        """Test Ready follows the live claim and StatefulSet status."""
        store.add_cluster()
        reconciler.reconcile(store.identity())
        store.set_child_status(ResourceKind.STORAGE, "postgresql-demo-data", {"phase": "Bound", "capacity": {"storage": "10Gi"}})
        store.set_child_status(ResourceKind.WORKLOAD, "postgresql-demo", {"replicas": 1, "readyReplicas": 1})

        reconciler.reconcile(store.identity())
        status = _status(store)

        assert get_condition(status["conditions"], "Ready")["status"] == "True"
        assert status["statefulSetStatus"]["readyReplicas"] == 1
        assert status["persistentVolumeClaimStatus"]["capacity"] == "10Gi"


class TestConvergence:
    """Spec changes reach the children that own the changed fields."""

    def test_scale_patches_only_the_workload(self, store, reconciler) -> None:
        """Test a replica change is one workload update."""
        store.add_cluster(replicas=1)
        reconciler.reconcile(store.identity())
        store.writes.clear()
        store.update_cluster_spec(replicas=3)

        result = reconciler.reconcile(store.identity())

        assert result.ok
        writes = store.child_writes()
        assert len(writes) == 1
        assert writes[0].kind == "StatefulSet"
        assert writes[0].body["spec"] == {"replicas": 3}
        assert result.outcomes[ResourceKind.WORKLOAD] is UpsertOutcome.UPDATED
        assert result.outcomes[ResourceKind.CONFIGURATION] is UpsertOutcome.UNCHANGED
        assert _status(store)["observedGeneration"] == 2

    def test_idempotent(self, store, reconciler) -> None:
        """Test a second pass over an unchanged cluster writes nothing."""
        store.add_cluster()
        reconciler.reconcile(store.identity())
        store.writes.clear()

        result = reconciler.reconcile(store.identity())

        assert result.ok
        assert store.writes == []
        assert not result.status_written
        assert set(result.outcomes.values()) == {UpsertOutcome.UNCHANGED}

    def test_drift_corrected(self, store, reconciler) -> None:
        """Test an out-of-band change to a mutable field is reverted."""
        store.add_cluster(replicas=2)
        reconciler.reconcile(store.identity())
        store.objects[(ResourceKind.WORKLOAD, "default", "postgresql-demo")]["spec"]["replicas"] = 7

        reconciler.reconcile(store.identity())

        assert store.objects[(ResourceKind.WORKLOAD, "default", "postgresql-demo")]["spec"]["replicas"] == 2

    def test_deleted_child_recreated(self, store, reconciler) -> None:
        """Test a deleted child is created again."""
        store.add_cluster()
        reconciler.reconcile(store.identity())
        del store.objects[(ResourceKind.NETWORK, "default", "postgresql-demo")]
        store.writes.clear()

        result = reconciler.reconcile(store.identity())

        assert result.outcomes[ResourceKind.NETWORK] is UpsertOutcome.CREATED
        assert [w.op for w in store.child_writes()] == ["create"]

    def test_port_change_reaches_every_child(self, store, reconciler) -> None:
        """Test a port change keeps the Service target and container port in step."""
        store.add_cluster()
        reconciler.reconcile(store.identity())
        store.update_cluster_spec(port=6543)

        result = reconciler.reconcile(store.identity())

        assert result.ok
        config_map = store.objects[(ResourceKind.CONFIGURATION, "default", "postgresql-demo-config")]
        service = store.objects[(ResourceKind.NETWORK, "default", "postgresql-demo")]
        container = store.objects[(ResourceKind.WORKLOAD, "default", "postgresql-demo")]["spec"]["template"]["spec"]["containers"][0]
        assert config_map["data"]["PGPORT"] == "6543"
        assert service["spec"]["ports"][0]["port"] == 6543
        assert [port["containerPort"] for port in container["ports"]] == [6543]
        assert container["ports"][0]["name"] == service["spec"]["ports"][0]["targetPort"]
        assert container["image"] == "postgres:14"

    def test_storage_class_change_not_applied(self, store, reconciler) -> None:
        """Test a storage class change leaves the claim alone and is reported."""
        store.add_cluster()
        reconciler.reconcile(store.identity())
        store.writes.clear()
        store.update_cluster_spec(storage={"size": "10Gi", "storageClassName": "fast"})

        result = reconciler.reconcile(store.identity())

        assert result.ok
        assert store.child_writes() == []
        assert result.violations == {ResourceKind.STORAGE: ["storageClassName"]}
        claim = store.objects[(ResourceKind.STORAGE, "default", "postgresql-demo-data")]
        assert claim["spec"]["storageClassName"] == "standard"
        condition = get_condition(_status(store)["conditions"], "StorageImmutable")
        assert condition["status"] == "True"
        assert "storageClassName" in condition["message"]

    def test_clusters_isolated(self, store, reconciler) -> None:
        """Test two clusters in one namespace get disjoint children."""
        store.add_cluster("alpha")
        store.add_cluster("beta")

        reconciler.reconcile(store.identity("alpha"))
        reconciler.reconcile(store.identity("beta"))

        assert len(store.objects) == 8


class TestDeletion:
    """Deletion is left to owner-reference garbage collection."""

    def test_cascade(self, store, reconciler) -> None:
        """Test children go with the cluster and no delete is issued."""
        store.add_cluster()
        reconciler.reconcile(store.identity())
        identity = store.identity()
        store.delete_cluster()
        store.writes.clear()

        result = reconciler.reconcile(identity)

        assert result.ok
        assert store.objects == {}
        assert store.writes == []

    def test_deleted_mid_pipeline(self, store, reconciler, monkeypatch) -> None:
        """Test a NotFound after the cluster disappeared ends quietly."""
        obj = store.add_cluster()
        identity = store.identity()
        monkeypatch.setattr(store, "get_cluster", MagicMock(side_effect=[obj, None]))
        store.fail["create"] = NotFoundError("namespace default not found")

        result = reconciler.reconcile(identity)

        assert result.ok
        assert result.requeue_after is None


class TestFailures:
    """Errors abort the pipeline and are mapped to requeue delays."""

    def test_empty_version(self, store, reconciler, config) -> None:
        """Test an invalid spec writes no children and records the failure."""
        store.add_cluster(version="")

        result = reconciler.reconcile(store.identity())

        assert not result.ok
        assert isinstance(result.error, ValidationError)
        assert result.failed_stage is Stage.FETCH
        assert result.requeue_after == config.retry_base_delay
        assert store.child_writes() == []
        status = _status(store)
        assert get_condition(status["conditions"], "SpecValid")["status"] == "False"
        assert get_condition(status["conditions"], "Reconciled")["reason"] == "ValidationFailed"

    def test_transient_error_backoff(self, store, reconciler, config) -> None:
        """Test a transient error aborts with exponential backoff."""
        store.add_cluster()
        store.fail["get"] = TransientError("connection reset")

        result = reconciler.reconcile(store.identity(), attempt=2)

        assert result.failed_stage is Stage.ENSURE_CONFIG
        assert result.requeue_after == config.retry_base_delay * 4
        assert store.child_writes() == []

    def test_abort_skips_later_stages(self, store, reconciler) -> None:
        """Test stages after a failed stage are not run."""
        store.add_cluster()
        reconciler.reconcile(store.identity())
        store.update_cluster_spec(replicas=2, port=6432)
        store.writes.clear()
        store.conflicts_on_patch = 10

        result = reconciler.reconcile(store.identity())

        assert isinstance(result.error, ConflictError)
        assert result.failed_stage is Stage.ENSURE_CONFIG
        assert ResourceKind.WORKLOAD not in result.outcomes
        assert store.objects[(ResourceKind.WORKLOAD, "default", "postgresql-demo")]["spec"]["replicas"] == 1

    def test_status_write_failure_does_not_mask_error(self, store, reconciler) -> None:
        """Test the original error is reported when the status write fails too."""
        store.add_cluster(version="")
        store.fail["patch_cluster_status"] = TransientError("timeout")

        result = reconciler.reconcile(store.identity())

        assert isinstance(result.error, ValidationError)
        assert not result.status_written

    def test_long_outage_still_classified(self, store, reconciler, config) -> None:
        """Test a very high retry count still yields a capped requeue."""
        store.add_cluster()
        store.fail["get"] = TransientError("connection reset")

        result = reconciler.reconcile(store.identity(), attempt=1100)

        assert isinstance(result.error, TransientError)
        assert result.requeue_after == config.retry_max_delay

    def test_failure_clears_ready(self, store, reconciler) -> None:
        """Test Ready does not stay True once a pass fails."""
        store.add_cluster()
        reconciler.reconcile(store.identity())
        store.set_child_status(ResourceKind.STORAGE, "postgresql-demo-data", {"phase": "Bound"})
        store.set_child_status(ResourceKind.WORKLOAD, "postgresql-demo", {"readyReplicas": 1})
        reconciler.reconcile(store.identity())
        assert get_condition(_status(store)["conditions"], "Ready")["status"] == "True"
        store.update_cluster_spec(replicas=2)
        store.fail["get"] = TransientError("connection reset")

        reconciler.reconcile(store.identity())
        ready = get_condition(_status(store)["conditions"], "Ready")

        assert ready["status"] == "False"
        assert ready["reason"] == "TransientError"

    @pytest.mark.parametrize(
        "error,attempt,expected",
        [
            (TransientError("x"), 0, 2.0),
            (TransientError("x"), 3, 16.0),
            (TransientError("x"), 10, 30.0),
            (ConflictError("x"), 1, 4.0),
            (ValidationError("x"), 0, 2.0),
            (AuthorizationError("x"), 5, 600.0),
            (NotFoundError("x"), 0, None),
            (TransientError("x"), 5000, 30.0),
            (ValidationError("x"), 10**6, 30.0),
        ],
    )
    def test_requeue_delay(self, reconciler, error, attempt, expected) -> None:
        """Test error classes map to requeue delays."""
        assert reconciler.requeue_delay(error, attempt) == expected
