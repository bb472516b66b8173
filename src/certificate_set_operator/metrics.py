"""Prometheus metrics for the CertificateSet Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "certificate_set_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "certificate_set_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Phase outcome metrics
phase_total = Counter(
    "certificate_set_operator_phase_total",
    "Total number of reconciliation phase outcomes",
    ["phase", "result"],
)

# Child resource operation metrics
child_operations_total = Counter(
    "certificate_set_operator_child_operations_total",
    "Total number of child resource operations",
    ["kind", "operation", "result"],
)

# Status write metrics
condition_updates_total = Counter(
    "certificate_set_operator_condition_updates_total",
    "Total number of status condition writes",
    ["condition", "status"],
)

# Error metrics
error_total = Counter(
    "certificate_set_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

# API call metrics
api_call_total = Counter(
    "certificate_set_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "certificate_set_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)
