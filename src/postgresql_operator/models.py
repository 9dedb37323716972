"""Desired-state records read from PostgreSQL objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kubernetes.utils import parse_quantity

from .builders.naming import child_names
from .constants import (
    API_GROUP_VERSION,
    CREDENTIALS_SECRET_SUFFIX,
    DEFAULT_ACCESS_MODES,
    DEFAULT_DATABASE,
    DEFAULT_PORT,
    DEFAULT_REPLICAS,
    KIND_POSTGRESQL,
    MAX_NAME_LENGTH,
    NAME_PREFIX,
)
from .utils.errors import ValidationError


@dataclass(frozen=True)
class ClusterIdentity:
    """Namespace, name and uid of one PostgreSQL object."""

    namespace: str
    name: str
    uid: str = ""

    def owner_body(self) -> dict[str, Any]:
        """Minimal object body usable as an ownerReference target."""
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_POSTGRESQL,
            "metadata": {"name": self.name, "namespace": self.namespace, "uid": self.uid},
        }

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class StorageRequest:
    """Capacity, access modes and storage class for the data claim."""

    size: str
    storage_class: str | None = None
    access_modes: tuple[str, ...] = DEFAULT_ACCESS_MODES


@dataclass(frozen=True)
class DesiredClusterState:
    """Validated view of a PostgreSQL object's spec."""

    identity: ClusterIdentity
    version: str
    storage: StorageRequest
    replicas: int | None = None
    database: str = DEFAULT_DATABASE
    port: int = DEFAULT_PORT
    credentials_secret: str = ""
    parameters: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    generation: int = 0

    @property
    def effective_replicas(self) -> int:
        return DEFAULT_REPLICAS if self.replicas is None else self.replicas


def _parse_storage(storage: dict[str, Any]) -> StorageRequest:
    pvcspec = storage.get("pvcspec") or {}
    size = storage.get("size") or (
        pvcspec.get("resources", {}).get("requests", {}).get("storage")
    )
    if not size:
        raise ValidationError("storage.size is required")
    size = str(size)
    try:
        parse_quantity(size)
    except ValueError as e:
        raise ValidationError(f"storage.size {size!r} is not a valid quantity") from e

    storage_class = (
        storage.get("storageClassName")
        or storage.get("storageClass")
        or storage.get("class")
        or pvcspec.get("storageClassName")
    )
    access_modes = storage.get("accessModes") or pvcspec.get("accessModes") or DEFAULT_ACCESS_MODES
    if isinstance(access_modes, str) or not all(isinstance(m, str) for m in access_modes):
        raise ValidationError("storage.accessModes must be a list of strings")

    return StorageRequest(
        size=size,
        storage_class=storage_class or None,
        access_modes=tuple(access_modes),
    )


def parse_cluster(obj: dict[str, Any]) -> DesiredClusterState:
    """Build a DesiredClusterState from a PostgreSQL object.

    Args:
        obj: The full PostgreSQL object as returned by the API server

    Returns:
        Validated desired state

    Raises:
        ValidationError: If a required field is missing or malformed
    """
    meta = obj.get("metadata", {})
    spec = obj.get("spec") or {}
    identity = ClusterIdentity(
        namespace=meta.get("namespace", "default"),
        name=meta.get("name", ""),
        uid=meta.get("uid", ""),
    )

    version = spec.get("version")
    if not isinstance(version, str) or not version.strip():
        raise ValidationError("version is required and must be a non-empty image reference")

    replicas = spec.get("replicas")
    if replicas is not None and (
        isinstance(replicas, bool) or not isinstance(replicas, int) or replicas < 0
    ):
        raise ValidationError("replicas must be a non-negative integer")

    port = spec.get("port", DEFAULT_PORT)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ValidationError("port must be an integer between 1 and 65535")

    parameters = spec.get("parameters") or {}
    if not isinstance(parameters, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in parameters.items()
    ):
        raise ValidationError("parameters must be a map of strings")

    for kind, name in child_names(identity.name).items():
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"cluster name is too long: {kind} name {name!r} exceeds {MAX_NAME_LENGTH} characters"
            )

    secret_ref = spec.get("credentialsSecretRef") or {}
    credentials_secret = secret_ref.get("name") or (
        f"{NAME_PREFIX}-{identity.name}-{CREDENTIALS_SECRET_SUFFIX}"
    )

    return DesiredClusterState(
        identity=identity,
        version=version.strip(),
        storage=_parse_storage(spec.get("storage") or {}),
        replicas=replicas,
        database=spec.get("database") or DEFAULT_DATABASE,
        port=port,
        credentials_secret=credentials_secret,
        parameters=dict(parameters),
        labels=dict(meta.get("labels") or {}),
        generation=meta.get("generation", 0),
    )
