"""Handler for PostgreSQL objects and their managed children."""

from __future__ import annotations

from typing import Any

import kopf

from .. import metrics
from ..builders.naming import child_names
from ..constants import API_GROUP_VERSION, KIND_POSTGRESQL
from ..models import ClusterIdentity
from ..reconciler import ClusterReconciler, ReconcileResult
from ..services.kube.upsert import UpsertOutcome
from ..utils.errors import ValidationError, sanitize_exception
from ..utils.events import (
    emit_child_created,
    emit_child_updated,
    emit_immutable_field_changed,
    emit_reconcile_failed,
    emit_reconcile_succeeded,
    emit_validate_failed,
)
from .base import BaseHandler


def owning_cluster(meta: dict[str, Any]) -> ClusterIdentity | None:
    """Identity of the PostgreSQL object that owns a child, if any."""
    for ref in meta.get("ownerReferences") or []:
        if ref.get("apiVersion") == API_GROUP_VERSION and ref.get("kind") == KIND_POSTGRESQL:
            return ClusterIdentity(
                namespace=meta.get("namespace", "default"),
                name=ref.get("name", ""),
                uid=ref.get("uid", ""),
            )
    return None


class PostgreSQLHandler(BaseHandler):
    """Handler for PostgreSQL resources."""

    def __init__(self, reconciler: ClusterReconciler):
        """Initialize PostgreSQL handler."""
        super().__init__(KIND_POSTGRESQL)
        self.reconciler = reconciler

    def reconcile(self, body: dict[str, Any], retry: int = 0) -> ReconcileResult:
        """Reconcile a PostgreSQL object delivered by kopf.

        Raises:
            kopf.TemporaryError: When the pipeline aborted and should be retried
            kopf.PermanentError: When the pipeline aborted and retrying cannot help
        """
        meta = body.get("metadata", {})
        identity = ClusterIdentity(
            namespace=meta.get("namespace", "default"),
            name=meta.get("name", ""),
            uid=meta.get("uid", ""),
        )
        result = self.reconcile_with_metrics(
            body, lambda: self.reconciler.reconcile(identity, attempt=retry)
        )
        self._emit_outcome_events(body, result)

        if result.ok:
            metrics.reconcile_total.labels(kind=self.kind, result="success").inc()
            return result

        message = sanitize_exception(result.error)
        metrics.reconcile_total.labels(kind=self.kind, result="failed").inc()
        if isinstance(result.error, ValidationError):
            emit_validate_failed(body, message)
        else:
            emit_reconcile_failed(body, f"Reconciliation failed: {message}")
        if result.requeue_after is None:
            raise kopf.PermanentError(message)
        raise kopf.TemporaryError(message, delay=result.requeue_after)

    def reconcile_owner(self, meta: dict[str, Any]) -> ReconcileResult | None:
        """Re-run the owning cluster's pipeline after a change to a child."""
        identity = owning_cluster(meta)
        if identity is None:
            return None
        result = self.reconciler.reconcile(identity)
        if not result.ok:
            self.log_warning(
                meta,
                f"Reconcile of owning cluster {identity} failed: {sanitize_exception(result.error)}",
                event="child",
                reason=result.error.reason,
            )
        return result

    def _emit_outcome_events(self, body: dict[str, Any], result: ReconcileResult) -> None:
        names = child_names(body.get("metadata", {}).get("name", ""))
        for kind, outcome in result.outcomes.items():
            if outcome is UpsertOutcome.CREATED:
                emit_child_created(body, kind.value, names[kind])
            elif outcome is UpsertOutcome.UPDATED:
                emit_child_updated(body, kind.value, names[kind])
        for kind, fields in result.violations.items():
            emit_immutable_field_changed(
                body, f"{kind.value} fields cannot be changed after creation: {', '.join(fields)}"
            )
        changed = any(outcome is not UpsertOutcome.UNCHANGED for outcome in result.outcomes.values())
        if result.ok and changed:
            emit_reconcile_succeeded(body)
