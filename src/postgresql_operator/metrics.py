"""Prometheus metrics for the PostgreSQL Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "postgresql_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "postgresql_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Managed resource metrics
upsert_total = Counter(
    "postgresql_operator_upsert_total",
    "Outcomes of create-or-update calls on managed resources",
    ["resource_kind", "outcome"],
)

immutable_violations_total = Counter(
    "postgresql_operator_immutable_violations_total",
    "Total number of rejected changes to create-once fields",
    ["resource_kind"],
)

status_writes_total = Counter(
    "postgresql_operator_status_writes_total",
    "Total number of status writes on cluster objects",
    ["result"],
)

# Error metrics
error_total = Counter(
    "postgresql_operator_error_total",
    "Total number of classified reconcile errors",
    ["kind", "error_type"],
)

# API call metrics
api_call_total = Counter(
    "postgresql_operator_api_call_total",
    "Total number of API calls",
    ["resource_kind", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "postgresql_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["resource_kind", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)
