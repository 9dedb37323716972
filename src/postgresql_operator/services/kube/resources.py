"""Managed resource variants and their restricted diffs.

Each variant knows how to build its desired manifest and which fields of a
live object it is allowed to change. Everything else (status, generated
identifiers, finalizers, fields the API server defaults) is never touched.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from kubernetes.utils import parse_quantity

from ...builders.configuration import build_config_map
from ...builders.network import build_service
from ...builders.storage import build_claim
from ...builders.workload import build_statefulset
from ...constants import CONTAINER_NAME, ResourceKind

if TYPE_CHECKING:
    from ...models import DesiredClusterState


def _map_patch(
    live: dict[str, Any] | None,
    desired: dict[str, Any],
    prune: bool = False,
) -> dict[str, Any]:
    """Keys whose values differ; with prune, keys to delete map to None."""
    live = live or {}
    patch = {key: value for key, value in desired.items() if live.get(key) != value}
    if prune:
        patch.update({key: None for key in live if key not in desired})
    return patch


def _ports_differ(live: list[dict[str, Any]], desired: list[dict[str, Any]]) -> bool:
    """Compare only the port fields this operator sets."""
    if len(live) != len(desired):
        return True
    return any(
        {key: port.get(key) for key in wanted} != wanted
        for port, wanted in zip(live, desired)
    )


def _labels_patch(live: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    labels = _map_patch(
        live.get("metadata", {}).get("labels"),
        desired.get("metadata", {}).get("labels", {}),
    )
    return {"metadata": {"labels": labels}} if labels else {}


class ManagedResource(ABC):
    """One kind of resource managed for every cluster."""

    kind: ResourceKind

    @abstractmethod
    def build(self, state: DesiredClusterState) -> dict[str, Any]:
        """Build the desired manifest."""

    @abstractmethod
    def diff(self, live: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
        """Return a strategic merge patch limited to mutable fields, or {}."""

    def immutable_violations(self, live: dict[str, Any], desired: dict[str, Any]) -> list[str]:
        """Return the create-once fields that differ between live and desired."""
        return []


class ConfigurationResource(ManagedResource):
    kind = ResourceKind.CONFIGURATION

    def build(self, state: DesiredClusterState) -> dict[str, Any]:
        return build_config_map(state)

    def diff(self, live: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
        patch = _labels_patch(live, desired)
        data = _map_patch(live.get("data"), desired.get("data", {}), prune=True)
        if data:
            patch["data"] = data
        return patch


class StorageResource(ManagedResource):
    """PersistentVolumeClaim; only labels are mutable."""

    kind = ResourceKind.STORAGE

    def build(self, state: DesiredClusterState) -> dict[str, Any]:
        return build_claim(state)

    def diff(self, live: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
        return _labels_patch(live, desired)

    def immutable_violations(self, live: dict[str, Any], desired: dict[str, Any]) -> list[str]:
        live_spec = live.get("spec", {})
        desired_spec = desired.get("spec", {})
        violations = []

        desired_class = desired_spec.get("storageClassName")
        if desired_class and live_spec.get("storageClassName") != desired_class:
            violations.append("storageClassName")

        live_size = live_spec.get("resources", {}).get("requests", {}).get("storage")
        desired_size = desired_spec.get("resources", {}).get("requests", {}).get("storage")
        if live_size is None or parse_quantity(live_size) != parse_quantity(desired_size):
            violations.append("resources.requests.storage")

        if sorted(live_spec.get("accessModes", [])) != sorted(desired_spec.get("accessModes", [])):
            violations.append("accessModes")

        return violations


class NetworkResource(ManagedResource):
    """Service; labels, selector and ports are mutable, clusterIP is not."""

    kind = ResourceKind.NETWORK

    def build(self, state: DesiredClusterState) -> dict[str, Any]:
        return build_service(state)

    def diff(self, live: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
        patch = _labels_patch(live, desired)
        live_spec = live.get("spec", {})
        desired_spec = desired["spec"]
        spec: dict[str, Any] = {}

        selector = _map_patch(live_spec.get("selector"), desired_spec["selector"], prune=True)
        if selector:
            spec["selector"] = selector

        if _ports_differ(live_spec.get("ports", []), desired_spec["ports"]):
            spec["ports"] = [{"$patch": "replace"}, *desired_spec["ports"]]

        if spec:
            patch["spec"] = spec
        return patch


class WorkloadResource(ManagedResource):
    """StatefulSet; replicas, image, container ports and labels are mutable.

    Volumes, mounts, selector and the rest of the pod template are held
    as created.
    """

    kind = ResourceKind.WORKLOAD

    def build(self, state: DesiredClusterState) -> dict[str, Any]:
        return build_statefulset(state)

    def diff(self, live: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
        patch = _labels_patch(live, desired)
        live_spec = live.get("spec", {})
        desired_spec = desired["spec"]
        spec: dict[str, Any] = {}

        if live_spec.get("replicas") != desired_spec["replicas"]:
            spec["replicas"] = desired_spec["replicas"]

        live_container = _container(live_spec)
        desired_container = _container(desired_spec)
        container: dict[str, Any] = {}
        if live_container.get("image") != desired_container.get("image"):
            container["image"] = desired_container.get("image")
        if _ports_differ(live_container.get("ports", []), desired_container.get("ports", [])):
            # Service targetPort resolves through the named container port
            container["ports"] = [{"$patch": "replace"}, *desired_container.get("ports", [])]
        if container:
            spec["template"] = {
                "spec": {"containers": [{"name": CONTAINER_NAME, **container}]}
            }

        if spec:
            patch["spec"] = spec
        return patch


def _container(spec: dict[str, Any]) -> dict[str, Any]:
    containers = spec.get("template", {}).get("spec", {}).get("containers", [])
    for container in containers:
        if container.get("name") == CONTAINER_NAME:
            return container
    return {}


def managed_resources() -> tuple[ManagedResource, ...]:
    """Managed resources in pipeline order."""
    return (
        ConfigurationResource(),
        StorageResource(),
        NetworkResource(),
        WorkloadResource(),
    )
