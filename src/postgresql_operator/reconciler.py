"""Reconcile pipeline driving a PostgreSQL cluster toward its desired state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from . import metrics
from .config import OperatorConfig
from .constants import KIND_POSTGRESQL, ResourceKind
from .logging import log_resource_event
from .models import ClusterIdentity, DesiredClusterState, parse_cluster
from .services.kube.base import ObjectStore
from .services.kube.resources import ManagedResource, managed_resources
from .services.kube.upsert import UpsertEngine, UpsertOutcome
from .status import StatusAggregator
from .tracing import trace_span
from .utils.context import with_correlation_id
from .utils.errors import (
    AuthorizationError,
    NotFoundError,
    ReconcileError,
    TransientError,
    ValidationError,
    sanitize_exception,
)

logger = logging.getLogger(__name__)

# Cap on the backoff exponent; 2 ** attempt overflows a float past 1023
MAX_BACKOFF_EXPONENT = 32


class Stage(str, Enum):
    FETCH = "Fetch"
    ENSURE_CONFIG = "EnsureConfig"
    ENSURE_STORAGE = "EnsureStorage"
    ENSURE_NETWORK = "EnsureNetwork"
    ENSURE_WORKLOAD = "EnsureWorkload"
    UPDATE_STATUS = "UpdateStatus"
    DONE = "Done"
    ABORTED = "Aborted"


STAGE_BY_KIND = {
    ResourceKind.CONFIGURATION: Stage.ENSURE_CONFIG,
    ResourceKind.STORAGE: Stage.ENSURE_STORAGE,
    ResourceKind.NETWORK: Stage.ENSURE_NETWORK,
    ResourceKind.WORKLOAD: Stage.ENSURE_WORKLOAD,
}


@dataclass
class ReconcileResult:
    """Outcome of one reconcile invocation.

    ``requeue_after`` is None when no retry is needed. ``error`` is set when
    the pipeline aborted.
    """

    stage: Stage = Stage.DONE
    requeue_after: float | None = None
    error: ReconcileError | None = None
    failed_stage: Stage | None = None
    outcomes: dict[ResourceKind, UpsertOutcome] = field(default_factory=dict)
    violations: dict[ResourceKind, list[str]] = field(default_factory=dict)
    status_written: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class ClusterReconciler:
    """Runs the fixed ensure pipeline for one cluster per invocation.

    Holds no per-cluster state between invocations; every stage is an
    idempotent upsert, so a retry simply starts again from the first stage.
    """

    def __init__(
        self,
        store: ObjectStore,
        config: OperatorConfig | None = None,
        resources: tuple[ManagedResource, ...] | None = None,
    ) -> None:
        self.store = store
        self.config = config or OperatorConfig()
        self.engine = UpsertEngine(store, self.config.conflict_retry_attempts)
        self.aggregator = StatusAggregator(store)
        self.resources = resources or managed_resources()

    def requeue_delay(self, error: ReconcileError, attempt: int = 0) -> float | None:
        """Map an error class to a requeue delay in seconds (None: no retry)."""
        if isinstance(error, NotFoundError) or not error.retryable:
            return None
        if isinstance(error, AuthorizationError):
            return self.config.auth_retry_interval
        delay = self.config.retry_base_delay * (2 ** min(max(attempt, 0), MAX_BACKOFF_EXPONENT))
        return min(delay, self.config.retry_max_delay)

    def reconcile(self, identity: ClusterIdentity, attempt: int = 0) -> ReconcileResult:
        """Fetch the cluster and drive every managed resource toward it.

        Args:
            identity: Namespace and name of the cluster (uid is re-read)
            attempt: Number of previous failed attempts, for backoff

        Returns:
            ReconcileResult; classified errors are returned, never raised
        """
        with with_correlation_id(), trace_span(
            "reconcile_postgresql",
            kind=KIND_POSTGRESQL,
            attributes={"postgresql.namespace": identity.namespace, "postgresql.name": identity.name},
        ):
            return self._reconcile(identity, attempt)

    def _reconcile(self, identity: ClusterIdentity, attempt: int) -> ReconcileResult:
        try:
            obj = self.store.get_cluster(identity.namespace, identity.name)
        except ReconcileError as e:
            return self._abort(identity, None, Stage.FETCH, e, attempt)
        if obj is None:
            self._log(identity, "Cluster not found, nothing to do", reason="NotFound")
            return ReconcileResult()

        try:
            state = parse_cluster(obj)
        except ValidationError as e:
            return self._abort(identity, obj, Stage.FETCH, e, attempt)
        identity = state.identity

        result = ReconcileResult()
        for resource in self.resources:
            stage = STAGE_BY_KIND[resource.kind]
            try:
                with trace_span(stage.value, kind=KIND_POSTGRESQL):
                    self._ensure(state, resource, result)
            except NotFoundError as e:
                if self._cluster_gone(identity):
                    self._log(identity, "Cluster deleted during reconcile", reason="NotFound")
                    return result
                return self._abort(identity, obj, stage, TransientError(str(e)), attempt, result)
            except ReconcileError as e:
                return self._abort(identity, obj, stage, e, attempt, result)

        violations = [name for names in result.violations.values() for name in names]
        try:
            with trace_span(Stage.UPDATE_STATUS.value, kind=KIND_POSTGRESQL):
                previous = obj.get("status") or {}
                status = self.aggregator.observe(identity, previous, state.generation, violations)
                result.status_written = self.aggregator.write_if_changed(identity, previous, status)
        except NotFoundError:
            self._log(identity, "Cluster deleted during reconcile", reason="NotFound")
            return result
        except ReconcileError as e:
            return self._abort(identity, obj, Stage.UPDATE_STATUS, e, attempt, result)

        self._log(
            identity,
            "Reconciliation complete",
            reason="Reconciled",
            outcomes={kind.value: outcome.value for kind, outcome in result.outcomes.items()},
            status_written=result.status_written,
        )
        return result

    def _ensure(self, state: DesiredClusterState, resource: ManagedResource, result: ReconcileResult) -> None:
        upsert = self.engine.ensure(resource, resource.build(state), state.identity)
        result.outcomes[resource.kind] = upsert.outcome
        if upsert.violations:
            result.violations[resource.kind] = upsert.violations
            metrics.immutable_violations_total.labels(resource_kind=resource.kind.value).inc()
            self._log(
                state.identity,
                f"Not changing create-once fields of {resource.kind.value} {upsert.name}",
                reason="ImmutableFieldChanged",
                level=logging.WARNING,
                fields=upsert.violations,
            )
        if upsert.outcome is not UpsertOutcome.UNCHANGED:
            self._log(
                state.identity,
                f"{resource.kind.value} {upsert.name} {upsert.outcome.value.lower()}",
                reason=upsert.outcome.value,
            )

    def _cluster_gone(self, identity: ClusterIdentity) -> bool:
        try:
            return self.store.get_cluster(identity.namespace, identity.name) is None
        except ReconcileError:
            return False

    def _abort(
        self,
        identity: ClusterIdentity,
        obj: dict[str, Any] | None,
        stage: Stage,
        error: ReconcileError,
        attempt: int,
        result: ReconcileResult | None = None,
    ) -> ReconcileResult:
        result = result or ReconcileResult()
        message = sanitize_exception(error)
        metrics.error_total.labels(kind=KIND_POSTGRESQL, error_type=type(error).__name__).inc()
        self._log(
            identity,
            f"Reconciliation aborted at {stage.value}: {message}",
            reason=error.reason,
            level=logging.ERROR,
            error_type=type(error).__name__,
        )

        if obj is not None:
            previous = obj.get("status") or {}
            generation = obj.get("metadata", {}).get("generation", 0)
            status = self.aggregator.failed(
                previous,
                generation,
                error.reason,
                message,
                spec_invalid=stage is Stage.FETCH and isinstance(error, ValidationError),
            )
            try:
                result.status_written = self.aggregator.write_if_changed(identity, previous, status)
            except ReconcileError as status_error:
                self._log(
                    identity,
                    f"Could not record failure in status: {sanitize_exception(status_error)}",
                    reason="StatusUpdateFailed",
                    level=logging.WARNING,
                )

        result.stage = Stage.ABORTED
        result.failed_stage = stage
        result.error = error
        result.requeue_after = self.requeue_delay(error, attempt)
        return result

    def _log(
        self,
        identity: ClusterIdentity,
        message: str,
        reason: str,
        level: int = logging.INFO,
        **kwargs: Any,
    ) -> None:
        log_resource_event(
            logger,
            controller="postgresql-operator",
            resource_kind=KIND_POSTGRESQL,
            resource_name=identity.name,
            namespace=identity.namespace,
            uid=identity.uid,
            event="reconcile",
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )
