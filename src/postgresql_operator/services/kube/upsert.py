"""Create-or-update of managed resources with ownership stamping."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

import kopf

from ... import metrics
from ...utils.errors import ConflictError, ValidationError
from .base import ObjectStore
from .resources import ManagedResource

if TYPE_CHECKING:
    from ...models import ClusterIdentity

logger = logging.getLogger(__name__)


class UpsertOutcome(str, Enum):
    CREATED = "Created"
    UPDATED = "Updated"
    UNCHANGED = "Unchanged"


@dataclass
class UpsertResult:
    """What ``UpsertEngine.ensure`` did to one resource."""

    outcome: UpsertOutcome
    name: str
    live: dict[str, Any]
    violations: list[str] = field(default_factory=list)


class UpsertEngine:
    """Get-or-create-or-update primitive shared by every pipeline stage."""

    def __init__(self, store: ObjectStore, conflict_retry_attempts: int = 3) -> None:
        """Initialize the engine.

        Args:
            store: Object store to read and write through
            conflict_retry_attempts: Attempts per call before a conflict is surfaced
        """
        self.store = store
        self.conflict_retry_attempts = max(1, conflict_retry_attempts)

    def ensure(
        self,
        resource: ManagedResource,
        desired: dict[str, Any],
        owner: ClusterIdentity,
    ) -> UpsertResult:
        """Make the live resource match ``desired`` on its mutable fields.

        Conflicts (a concurrent write between our read and our update, or a
        concurrent create) are retried from a fresh read.

        Args:
            resource: The resource variant that owns the diff rules
            desired: Manifest produced by the resource's builder
            owner: Identity of the owning cluster

        Returns:
            UpsertResult with the outcome and any create-once field violations

        Raises:
            ConflictError: If every attempt hit a conflict
            ReconcileError: Any other classified store error
        """
        last_error: ConflictError | None = None
        for attempt in range(1, self.conflict_retry_attempts + 1):
            try:
                result = self._ensure_once(resource, desired, owner)
            except ConflictError as e:
                last_error = e
                logger.debug(
                    f"Conflict on {resource.kind.value} {desired['metadata']['name']} "
                    f"(attempt {attempt}/{self.conflict_retry_attempts})"
                )
                continue
            metrics.upsert_total.labels(
                resource_kind=resource.kind.value, outcome=result.outcome.value
            ).inc()
            return result

        metrics.upsert_total.labels(resource_kind=resource.kind.value, outcome="Conflict").inc()
        raise ConflictError(
            f"{resource.kind.value} {desired['metadata']['name']} kept changing during update "
            f"({self.conflict_retry_attempts} attempts)"
        ) from last_error

    def _ensure_once(
        self,
        resource: ManagedResource,
        desired: dict[str, Any],
        owner: ClusterIdentity,
    ) -> UpsertResult:
        namespace = desired["metadata"]["namespace"]
        name = desired["metadata"]["name"]
        owner_body = owner.owner_body()

        live = self.store.get(resource.kind, namespace, name)
        if live is None:
            body = copy.deepcopy(desired)
            kopf.append_owner_reference(body, owner=owner_body)
            created = self.store.create(resource.kind, namespace, body)
            return UpsertResult(UpsertOutcome.CREATED, name, created)

        owner_refs = live.get("metadata", {}).get("ownerReferences") or []
        for ref in owner_refs:
            if ref.get("controller") and ref.get("uid") != owner.uid:
                raise ValidationError(
                    f"{resource.kind.value} {name} is controlled by {ref.get('kind')} {ref.get('name')}"
                )

        violations = resource.immutable_violations(live, desired)
        patch = resource.diff(live, desired)

        # Re-stamp the ownership link if it was stripped from the live object
        if not any(ref.get("uid") == owner.uid for ref in owner_refs):
            owner_ref = kopf.build_owner_reference(owner_body)
            patch.setdefault("metadata", {})["ownerReferences"] = [*owner_refs, owner_ref]

        if not patch:
            return UpsertResult(UpsertOutcome.UNCHANGED, name, live, violations)

        # Carrying resourceVersion makes the API server reject the patch with
        # 409 if the object changed since it was read
        patch.setdefault("metadata", {})["resourceVersion"] = live["metadata"]["resourceVersion"]
        updated = self.store.patch(resource.kind, namespace, name, patch)
        return UpsertResult(UpsertOutcome.UPDATED, name, updated, violations)
