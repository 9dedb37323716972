"""Main entry point for the PostgreSQL Operator."""

from __future__ import annotations

import kopf

from .config import OperatorConfig
from .handlers.postgresql import PostgreSQLHandler
from .reconciler import ClusterReconciler
from .registry import build_registry
from .services.kube.client import create_kube_client


def main() -> None:
    """Build every component once and run the operator until stopped."""
    config = OperatorConfig.from_env()
    store = create_kube_client(config.request_timeout)
    reconciler = ClusterReconciler(store, config)
    registry = build_registry(PostgreSQLHandler(reconciler), config)

    if config.watch_namespace:
        kopf.run(registry=registry, namespaces=[config.watch_namespace])
    else:
        kopf.run(registry=registry, clusterwide=True)


if __name__ == "__main__":
    main()
