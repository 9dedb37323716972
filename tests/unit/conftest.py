"""Shared fixtures: an in-memory object store that records every write."""

from __future__ import annotations

import copy
import itertools
from dataclasses import dataclass
from typing import Any

import pytest

from postgresql_operator.config import OperatorConfig
from postgresql_operator.constants import API_GROUP_VERSION, KIND_POSTGRESQL, ResourceKind
from postgresql_operator.models import ClusterIdentity
from postgresql_operator.utils.errors import ConflictError


@dataclass
class Write:
    op: str
    kind: str
    name: str
    body: dict[str, Any]


def _merge(target: dict[str, Any], patch: dict[str, Any]) -> None:
    """Good-enough strategic merge for the fields the operator patches."""
    for key, value in patch.items():
        if value is None:
            target.pop(key, None)
        elif isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        elif isinstance(value, list) and value and isinstance(value[0], dict) and value[0].get("$patch") == "replace":
            target[key] = copy.deepcopy(value[1:])
        elif key == "containers" and isinstance(target.get(key), list):
            by_name = {c["name"]: c for c in target[key]}
            for item in value:
                if item["name"] in by_name:
                    _merge(by_name[item["name"]], item)
                else:
                    target[key].append(copy.deepcopy(item))
        else:
            target[key] = copy.deepcopy(value)


class FakeObjectStore:
    """In-memory ObjectStore with optimistic concurrency and cascade deletion."""

    def __init__(self) -> None:
        self.objects: dict[tuple[ResourceKind, str, str], dict[str, Any]] = {}
        self.clusters: dict[tuple[str, str], dict[str, Any]] = {}
        self.writes: list[Write] = []
        self.conflicts_on_patch = 0
        self.fail: dict[str, Exception] = {}
        self._versions = itertools.count(1)
        self._uids = itertools.count(1)

    # Helpers for tests

    def _bump(self, obj: dict[str, Any]) -> None:
        obj.setdefault("metadata", {})["resourceVersion"] = str(next(self._versions))

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail:
            raise self.fail.pop(op)

    def add_cluster(self, name: str = "demo", namespace: str = "default", **spec: Any) -> dict[str, Any]:
        cluster_spec = {
            "replicas": 1,
            "version": "postgres:14",
            "storage": {"size": "10Gi", "storageClassName": "standard"},
        }
        cluster_spec.update(spec)
        obj = {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_POSTGRESQL,
            "metadata": {
                "name": name,
                "namespace": namespace,
                "uid": f"uid-{next(self._uids)}",
                "generation": 1,
            },
            "spec": cluster_spec,
        }
        self._bump(obj)
        self.clusters[(namespace, name)] = obj
        return obj

    def update_cluster_spec(self, name: str = "demo", namespace: str = "default", **spec: Any) -> None:
        obj = self.clusters[(namespace, name)]
        obj["spec"].update(spec)
        obj["metadata"]["generation"] += 1
        self._bump(obj)

    def identity(self, name: str = "demo", namespace: str = "default") -> ClusterIdentity:
        uid = self.clusters[(namespace, name)]["metadata"]["uid"]
        return ClusterIdentity(namespace=namespace, name=name, uid=uid)

    def set_child_status(self, kind: ResourceKind, name: str, status: dict[str, Any], namespace: str = "default") -> None:
        self.objects[(kind, namespace, name)]["status"] = copy.deepcopy(status)

    def delete_cluster(self, name: str = "demo", namespace: str = "default") -> None:
        """Delete a cluster and garbage-collect its owned children."""
        uid = self.clusters.pop((namespace, name))["metadata"]["uid"]
        for key, obj in list(self.objects.items()):
            refs = obj["metadata"].get("ownerReferences", [])
            if any(ref["uid"] == uid for ref in refs):
                del self.objects[key]

    def child_writes(self) -> list[Write]:
        return [w for w in self.writes if w.op != "patch_status"]

    def status_writes(self) -> list[Write]:
        return [w for w in self.writes if w.op == "patch_status"]

    # ObjectStore protocol

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any] | None:
        self._maybe_fail("get")
        obj = self.objects.get((kind, namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def create(self, kind: ResourceKind, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        self._maybe_fail("create")
        name = body["metadata"]["name"]
        if (kind, namespace, name) in self.objects:
            raise ConflictError(f"{kind.value} {name} already exists")
        self.writes.append(Write("create", kind.value, name, copy.deepcopy(body)))
        obj = copy.deepcopy(body)
        obj["metadata"]["uid"] = f"uid-{next(self._uids)}"
        if kind is ResourceKind.NETWORK:
            obj["spec"]["clusterIP"] = "10.96.0.10"
        self._bump(obj)
        self.objects[(kind, namespace, name)] = obj
        return copy.deepcopy(obj)

    def patch(self, kind: ResourceKind, namespace: str, name: str, body: dict[str, Any]) -> dict[str, Any]:
        self._maybe_fail("patch")
        obj = self.objects[(kind, namespace, name)]
        if self.conflicts_on_patch:
            self.conflicts_on_patch -= 1
            self._bump(obj)
            raise ConflictError(f"{kind.value} {name} was modified")
        patch = copy.deepcopy(body)
        expected = patch.get("metadata", {}).pop("resourceVersion", None)
        if expected is not None and expected != obj["metadata"]["resourceVersion"]:
            raise ConflictError(f"{kind.value} {name} was modified")
        self.writes.append(Write("patch", kind.value, name, copy.deepcopy(body)))
        _merge(obj, patch)
        self._bump(obj)
        return copy.deepcopy(obj)

    def get_cluster(self, namespace: str, name: str) -> dict[str, Any] | None:
        self._maybe_fail("get_cluster")
        obj = self.clusters.get((namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def patch_cluster_status(self, namespace: str, name: str, status: dict[str, Any]) -> dict[str, Any]:
        self._maybe_fail("patch_cluster_status")
        obj = self.clusters[(namespace, name)]
        self.writes.append(Write("patch_status", KIND_POSTGRESQL, name, copy.deepcopy(status)))
        obj.setdefault("status", {})
        _merge(obj["status"], status)
        return copy.deepcopy(obj)


@pytest.fixture
def store() -> FakeObjectStore:
    """Empty in-memory object store."""
    return FakeObjectStore()


@pytest.fixture
def config() -> OperatorConfig:
    """Operator configuration with small, predictable delays."""
    return OperatorConfig(
        conflict_retry_attempts=3,
        retry_base_delay=2.0,
        retry_max_delay=30.0,
        auth_retry_interval=600.0,
    )


def _cluster_object(**spec: Any) -> dict[str, Any]:
    cluster_spec = {
        "replicas": 1,
        "version": "postgres:14",
        "storage": {"size": "10Gi", "storageClassName": "standard"},
    }
    cluster_spec.update(spec)
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_POSTGRESQL,
        "metadata": {"name": "demo", "namespace": "default", "uid": "uid-demo", "generation": 3},
        "spec": cluster_spec,
    }


@pytest.fixture
def cluster_object():
    """Factory for PostgreSQL object bodies with spec overrides."""
    return _cluster_object
