"""Operator configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass(frozen=True)
class OperatorConfig:
    """Read-only settings shared by every reconcile invocation."""

    metrics_port: int = 8080
    request_timeout: float = 10.0
    conflict_retry_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 60.0
    auth_retry_interval: float = 300.0
    watch_namespace: str | None = None
    max_workers: int = 4

    @classmethod
    def from_env(cls) -> OperatorConfig:
        """Build the configuration from environment variables.

        Environment Variables:
            METRICS_PORT: Port for /metrics, /healthz and /readyz (default: 8080)
            K8S_REQUEST_TIMEOUT_SECONDS: Timeout for every API call (default: 10)
            CONFLICT_RETRY_ATTEMPTS: Immediate retries on update conflicts (default: 3)
            RETRY_BASE_DELAY_SECONDS: First backoff delay (default: 1)
            RETRY_MAX_DELAY_SECONDS: Backoff cap (default: 60)
            AUTH_RETRY_INTERVAL_SECONDS: Fixed requeue for authorization errors (default: 300)
            WATCH_NAMESPACE: Restrict the operator to one namespace (default: clusterwide)
            MAX_WORKERS: Size of the kopf sync handler pool (default: 4)
        """
        return cls(
            metrics_port=_env_int("METRICS_PORT", 8080),
            request_timeout=_env_float("K8S_REQUEST_TIMEOUT_SECONDS", 10.0),
            conflict_retry_attempts=_env_int("CONFLICT_RETRY_ATTEMPTS", 3),
            retry_base_delay=_env_float("RETRY_BASE_DELAY_SECONDS", 1.0),
            retry_max_delay=_env_float("RETRY_MAX_DELAY_SECONDS", 60.0),
            auth_retry_interval=_env_float("AUTH_RETRY_INTERVAL_SECONDS", 300.0),
            watch_namespace=os.getenv("WATCH_NAMESPACE") or None,
            max_workers=_env_int("MAX_WORKERS", 4),
        )
