"""Object store interface used by the reconciler."""

from __future__ import annotations

from typing import Any, Protocol

from ...constants import ResourceKind


class ObjectStore(Protocol):
    """Protocol defining the object store operations the operator needs.

    Implementations raise the classified errors from ``utils.errors``;
    ``get`` and ``get_cluster`` return None instead of raising NotFoundError.
    """

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any] | None:
        """Read a managed resource."""
        ...

    def create(self, kind: ResourceKind, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        """Create a managed resource."""
        ...

    def patch(
        self,
        kind: ResourceKind,
        namespace: str,
        name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        """Apply a strategic merge patch to a managed resource."""
        ...

    def get_cluster(self, namespace: str, name: str) -> dict[str, Any] | None:
        """Read a PostgreSQL object."""
        ...

    def patch_cluster_status(
        self,
        namespace: str,
        name: str,
        status: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge the given fields into a PostgreSQL object's status."""
        ...
