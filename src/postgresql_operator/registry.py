"""Explicit kopf registry construction for the PostgreSQL Operator."""

from __future__ import annotations

from typing import Any

import kopf

from . import health
from . import logging as structured_logging
from .config import OperatorConfig
from .constants import API_GROUP_VERSION, KIND_POSTGRESQL, LABEL_MANAGED_BY, MANAGED_BY
from .handlers.postgresql import PostgreSQLHandler
from .tracing import initialize_tracing

# (group/version, plural) of every managed child kind
CHILD_RESOURCES = (
    ("v1", "configmaps"),
    ("v1", "persistentvolumeclaims"),
    ("v1", "services"),
    ("apps/v1", "statefulsets"),
)


def configure_settings(settings: kopf.OperatorSettings, config: OperatorConfig) -> None:
    """Apply operator configuration to kopf settings."""
    # Use annotations so handler progress never competes with status writes
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = 0
    settings.networking.request_timeout = config.request_timeout * 3
    settings.execution.max_workers = config.max_workers


def build_registry(handler: PostgreSQLHandler, config: OperatorConfig) -> kopf.OperatorRegistry:
    """Build the registry binding the reconciler to PostgreSQL objects and their children.

    Args:
        handler: Handler wrapping the cluster reconciler
        config: Operator configuration

    Returns:
        A registry to pass to ``kopf.run``
    """
    registry = kopf.OperatorRegistry()

    @kopf.on.startup(registry=registry)
    def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
        """Configure the operator."""
        structured_logging.setup_structured_logging()
        initialize_tracing()
        configure_settings(settings, config)
        health.start_metrics_server(config.metrics_port)

    @kopf.on.create(API_GROUP_VERSION, KIND_POSTGRESQL, registry=registry)
    @kopf.on.update(API_GROUP_VERSION, KIND_POSTGRESQL, registry=registry)
    @kopf.on.resume(API_GROUP_VERSION, KIND_POSTGRESQL, registry=registry)
    def reconcile_cluster(body: kopf.Body, retry: int, **_: Any) -> None:
        """Handle PostgreSQL resource reconciliation."""
        handler.reconcile(dict(body), retry=retry)

    def reconcile_owner(meta: kopf.Meta, **_: Any) -> None:
        """Re-run the owning cluster's pipeline when a managed child changes."""
        handler.reconcile_owner(dict(meta))

    for group_version, plural in CHILD_RESOURCES:
        kopf.on.event(
            group_version,
            plural,
            labels={LABEL_MANAGED_BY: MANAGED_BY},
            registry=registry,
        )(reconcile_owner)

    return registry
