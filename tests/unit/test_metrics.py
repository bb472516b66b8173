"""Tests for Prometheus metrics."""

from __future__ import annotations

from prometheus_client import REGISTRY

from certificate_set_operator.metrics import (
    api_call_duration_seconds,
    api_call_total,
    child_operations_total,
    condition_updates_total,
    error_total,
    phase_total,
    reconcile_duration_seconds,
    reconcile_total,
)


class TestMetricsExist:
    """Test that all expected metrics are defined."""

    def test_reconcile_total_exists(self):
        # Prometheus counters don't include "_total" in their _name attribute
        assert reconcile_total._name == "certificate_set_operator_reconcile"

    def test_reconcile_duration_exists(self):
        assert reconcile_duration_seconds._name == "certificate_set_operator_reconcile_duration_seconds"

    def test_phase_total_exists(self):
        assert phase_total._name == "certificate_set_operator_phase"

    def test_child_operations_total_exists(self):
        assert child_operations_total._name == "certificate_set_operator_child_operations"

    def test_condition_updates_total_exists(self):
        assert condition_updates_total._name == "certificate_set_operator_condition_updates"

    def test_error_total_exists(self):
        assert error_total._name == "certificate_set_operator_error"

    def test_api_call_metrics_exist(self):
        assert api_call_total._name == "certificate_set_operator_api_call"
        assert api_call_duration_seconds._name == "certificate_set_operator_api_call_duration_seconds"


class TestMetricsRecording:
    """Test that labelled metrics record values."""

    def test_phase_total_increments(self):
        labels = {"phase": "test_phase", "result": "success"}
        before = REGISTRY.get_sample_value("certificate_set_operator_phase_total", labels) or 0.0

        phase_total.labels(**labels).inc()

        assert REGISTRY.get_sample_value("certificate_set_operator_phase_total", labels) == before + 1

    def test_child_operations_increments(self):
        labels = {"kind": "Certificate", "operation": "test", "result": "success"}
        before = REGISTRY.get_sample_value("certificate_set_operator_child_operations_total", labels) or 0.0

        child_operations_total.labels(**labels).inc()

        assert REGISTRY.get_sample_value("certificate_set_operator_child_operations_total", labels) == before + 1
