"""Reconciliation engine for CertificateSet resources.

One call to ``CertificateSetReconciler.reconcile`` is one attempt. Phases
run strictly in order because each one needs what the previous phase's
resources produced:

    CA certificates -> CA secret ready -> Issuer + super-admin certificate
    -> super-admin secret ready -> derived secrets -> registration cleanup
    -> readiness aggregation

An attempt ends in one of three ways: converged (``ReconcileResult.done``),
waiting (``requeue_after`` set, Progressing=True) or failed (``PhaseError``
raised, Degraded=True). Conditions are committed to the status patch on
every exit.
"""

from __future__ import annotations

import copy
import enum
import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from . import metrics
from .builders import (
    build_argocd_cluster_secret,
    build_auxiliary_certificates,
    build_ca_certificate,
    build_issuer,
    build_kubeconfig_secret,
    build_super_admin_certificate,
)
from .builders.names import all_certificate_names, argocd_cluster_name, ca_name, super_admin_name
from .cleanup import FinalizerManager, registration_owned_by
from .config import APPLY_POLICY_CREATE_OR_UPDATE, OperatorConfig
from .constants import (
    ARGOCD_MANAGED_KEYS,
    EVENT_REASON_CONVERGED,
    EVENT_REASON_RESOURCE_CREATED,
    EVENT_REASON_RESOURCE_UPDATED,
    KIND_CERTIFICATE,
    KIND_CERTIFICATE_SET,
    KIND_ISSUER,
    KIND_SECRET,
    KUBECONFIG_MANAGED_KEYS,
    REASON_ARGOCD_CLEANUP_FAILED,
    REASON_ARGOCD_NAMESPACE_NOT_FOUND,
    REASON_CA_CERTIFICATES_FAILED,
    REASON_CHECK_FAILED,
    REASON_CLIENT_CERTIFICATES_FAILED,
    REASON_DERIVED_SECRETS_FAILED,
    REASON_RECONCILE_FAILED,
)
from .logging import log_resource_event
from .models import CertificateSet, ReconcileResult
from .services.base import ResourceStore
from .services.readiness import ReadinessOracle
from .tracing import add_span_attribute, trace_span
from .utils.conditions import ConditionManager
from .utils.errors import (
    PhaseError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    sanitize_exception,
)
from .utils.events import EventSink
from .utils.secrets import merge_managed_keys, secret_data_equal_for_keys

logger = logging.getLogger(__name__)


class ApplyPolicy(enum.Enum):
    """How an existing child resource is treated when it is applied again."""

    # Create once, never touch an existing object
    CREATE_IF_ABSENT = "create-if-absent"
    # Replace spec, labels and annotations when they differ
    CREATE_OR_UPDATE = "create-or-update"
    # Only the managed ``data`` keys are written; other keys are preserved
    CREATE_OR_UPDATE_MANAGED_FIELDS = "create-or-update-managed-fields"


DEFAULT_POLICIES: dict[str, ApplyPolicy] = {
    KIND_CERTIFICATE: ApplyPolicy.CREATE_IF_ABSENT,
    KIND_ISSUER: ApplyPolicy.CREATE_IF_ABSENT,
    KIND_SECRET: ApplyPolicy.CREATE_OR_UPDATE_MANAGED_FIELDS,
}


def policies_for(config: OperatorConfig) -> dict[str, ApplyPolicy]:
    """Per-kind apply policies for a configuration."""
    policies = dict(DEFAULT_POLICIES)
    if config.certificate_apply_policy == APPLY_POLICY_CREATE_OR_UPDATE:
        policies[KIND_CERTIFICATE] = ApplyPolicy.CREATE_OR_UPDATE
        policies[KIND_ISSUER] = ApplyPolicy.CREATE_OR_UPDATE
    return policies


def _needs_update(existing: dict[str, Any], desired: dict[str, Any]) -> bool:
    existing_meta = existing.get("metadata") or {}
    desired_meta = desired.get("metadata") or {}
    return (
        existing.get("spec") != desired.get("spec")
        or (existing_meta.get("labels") or {}) != desired_meta.get("labels", {})
        or (existing_meta.get("annotations") or {}) != desired_meta.get("annotations", {})
    )


class CertificateSetReconciler:
    """Drives one CertificateSet towards its desired set of children."""

    def __init__(
        self,
        store: ResourceStore,
        config: OperatorConfig,
        events: EventSink | None = None,
    ):
        self.store = store
        self.config = config
        self.events = events
        self.oracle = ReadinessOracle(store)
        self.finalizers = FinalizerManager(store, config.argocd_namespace, events)
        self.policies = policies_for(config)

    def _emit(self, reason: str, message: str, type_: str = "Normal") -> None:
        if self.events is not None:
            self.events(reason, message, type_)

    def _log(self, cs: CertificateSet, reason: str, message: str, level: int = logging.INFO, **kwargs: Any) -> None:
        log_resource_event(
            logger,
            controller="certificate-set-operator",
            resource_kind=KIND_CERTIFICATE_SET,
            resource_name=cs.name,
            namespace=cs.namespace,
            uid=cs.uid,
            event="reconcile",
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    @contextmanager
    def _phase(self, name: str, reason: str, description: str) -> Iterator[None]:
        """Run a phase, classifying any unexpected failure under ``reason``."""
        with trace_span(f"phase_{name}", kind=KIND_CERTIFICATE_SET):
            try:
                yield
            except PhaseError:
                metrics.phase_total.labels(phase=name, result="error").inc()
                raise
            except Exception as e:
                metrics.phase_total.labels(phase=name, result="error").inc()
                raise PhaseError(reason, f"{description}: {sanitize_exception(e)}") from e
            metrics.phase_total.labels(phase=name, result="success").inc()

    def apply_resource(
        self,
        cs: CertificateSet,
        kind: str,
        desired: dict[str, Any],
        managed_keys: Iterable[str] = (),
    ) -> str:
        """Apply a child manifest according to the policy for its kind.

        Returns:
            "created", "updated" or "unchanged"
        """
        policy = self.policies[kind]
        meta = desired["metadata"]
        namespace, name = meta["namespace"], meta["name"]

        try:
            existing = self.store.get(kind, namespace, name)
        except ResourceNotFoundError:
            existing = None

        if existing is None:
            try:
                self.store.create(kind, desired)
            except ResourceAlreadyExistsError:
                # Created concurrently; picked up on the next attempt
                metrics.child_operations_total.labels(kind=kind, operation="create", result="exists").inc()
                return "unchanged"
            metrics.child_operations_total.labels(kind=kind, operation="create", result="success").inc()
            self._log(cs, EVENT_REASON_RESOURCE_CREATED, f"Created {kind} {namespace}/{name}", child=name)
            self._emit(EVENT_REASON_RESOURCE_CREATED, f"Created {kind} {namespace}/{name}")
            return "created"

        if policy == ApplyPolicy.CREATE_IF_ABSENT:
            return "unchanged"

        if policy == ApplyPolicy.CREATE_OR_UPDATE:
            if not _needs_update(existing, desired):
                return "unchanged"
            updated = copy.deepcopy(desired)
            updated["metadata"]["resourceVersion"] = existing["metadata"].get("resourceVersion")
            if "status" in existing:
                updated["status"] = existing["status"]
        else:
            keys = tuple(managed_keys)
            existing_meta = existing["metadata"]
            labels = {**(existing_meta.get("labels") or {}), **(meta.get("labels") or {})}
            annotations = {**(existing_meta.get("annotations") or {}), **(meta.get("annotations") or {})}
            if (
                labels == (existing_meta.get("labels") or {})
                and annotations == (existing_meta.get("annotations") or {})
                and secret_data_equal_for_keys(existing.get("data"), desired.get("data"), keys)
            ):
                return "unchanged"
            updated = merge_managed_keys(existing, desired, keys)
            updated["metadata"] = copy.deepcopy(existing_meta)
            updated["metadata"]["labels"] = labels
            updated["metadata"]["annotations"] = annotations

        self.store.update(kind, updated)
        metrics.child_operations_total.labels(kind=kind, operation="update", result="success").inc()
        self._log(cs, EVENT_REASON_RESOURCE_UPDATED, f"Updated {kind} {namespace}/{name}", child=name)
        self._emit(EVENT_REASON_RESOURCE_UPDATED, f"Updated {kind} {namespace}/{name}")
        return "updated"

    def reconcile(self, body: dict[str, Any], status: dict[str, Any] | None, patch: Any) -> ReconcileResult:
        """Run one reconciliation attempt.

        Args:
            body: The CertificateSet object
            status: Its current status (the conditions snapshot)
            patch: kopf.Patch collecting status and metadata writes

        Raises:
            PhaseError: If a phase failed; Degraded is already recorded in ``patch``
        """
        try:
            cs = CertificateSet.from_body(body)
        except (TypeError, ValueError) as e:
            raise self._reject_invalid(body, status, patch, e) from e

        if cs.is_being_deleted:
            return self.reconcile_delete(cs, patch)

        if self.finalizers.ensure_finalizer(cs, patch):
            self._log(cs, "FinalizerAdded", "Added cleanup finalizer")
            return ReconcileResult(requeue=True, message="finalizer added")

        conditions = ConditionManager(status, cs.generation)
        attributes = {
            "certificateset.name": cs.name,
            "certificateset.namespace": cs.namespace,
            "certificateset.environment": cs.environment.value,
        }
        with trace_span("reconcile_certificateset", kind=KIND_CERTIFICATE_SET, attributes=attributes):
            try:
                result = self._run_phases(cs, conditions)
            except PhaseError as e:
                conditions.mark_degraded(e.reason, e.message)
                self._log(cs, e.reason, e.message, level=logging.ERROR)
                raise
            except Exception as e:
                message = sanitize_exception(e)
                conditions.mark_degraded(REASON_RECONCILE_FAILED, message)
                self._log(cs, REASON_RECONCILE_FAILED, message, level=logging.ERROR)
                raise PhaseError(REASON_RECONCILE_FAILED, message) from e
            finally:
                conditions.commit(patch)
            add_span_attribute("reconcile.done", result.done)
        return result

    def _reject_invalid(
        self,
        body: dict[str, Any],
        status: dict[str, Any] | None,
        patch: Any,
        error: Exception,
    ) -> PhaseError:
        """Record Degraded for an object that cannot be parsed."""
        meta = body.get("metadata") or {}
        message = f"invalid CertificateSet: {sanitize_exception(error)}"
        conditions = ConditionManager(status, int(meta.get("generation") or 0))
        conditions.mark_degraded(REASON_RECONCILE_FAILED, message)
        conditions.commit(patch)
        logger.error(f"{meta.get('namespace', 'default')}/{meta.get('name', '')}: {message}")
        return PhaseError(REASON_RECONCILE_FAILED, message)

    def reconcile_delete(self, cs: CertificateSet, patch: Any) -> ReconcileResult:
        """Clean up cross-namespace resources and release the finalizer."""
        if not cs.has_finalizer:
            return ReconcileResult(message="nothing to clean up")

        with self._phase("cleanup", REASON_ARGOCD_CLEANUP_FAILED, "failed to clean up ArgoCD cluster secret"):
            self.finalizers.cleanup(cs)
        self.finalizers.remove_finalizer(cs, patch)
        return ReconcileResult(message="cleanup complete")

    def _wait(self, conditions: ConditionManager, message: str) -> ReconcileResult:
        conditions.mark_progressing(message)
        return ReconcileResult(requeue_after=self.config.requeue_after_seconds, message=message)

    def _secret_ready(self, cs: CertificateSet, phase: str, name: str) -> bool:
        with self._phase(phase, REASON_CHECK_FAILED, f"failed to check Secret {name}"):
            return self.oracle.secret_ready(cs.namespace, name)

    def _run_phases(self, cs: CertificateSet, conditions: ConditionManager) -> ReconcileResult:
        with self._phase("ca_certificates", REASON_CA_CERTIFICATES_FAILED, "failed to apply CA certificates"):
            for certificate in [build_ca_certificate(cs), *build_auxiliary_certificates(cs)]:
                self.apply_resource(cs, KIND_CERTIFICATE, certificate)

        if not self._secret_ready(cs, "ca_secret_gate", ca_name(cs)):
            return self._wait(conditions, f"Waiting for CA secret {ca_name(cs)}")

        if cs.needs_client_certificates:
            with self._phase(
                "client_certificates", REASON_CLIENT_CERTIFICATES_FAILED, "failed to apply client certificates"
            ):
                self.apply_resource(cs, KIND_ISSUER, build_issuer(cs))
                self.apply_resource(cs, KIND_CERTIFICATE, build_super_admin_certificate(cs, ca_name(cs)))

            if not self._secret_ready(cs, "super_admin_secret_gate", super_admin_name(cs)):
                return self._wait(conditions, f"Waiting for super-admin secret {super_admin_name(cs)}")

            with self._phase("derived_secrets", REASON_DERIVED_SECRETS_FAILED, "failed to apply derived secrets"):
                self._apply_derived_secrets(cs)

        if not cs.argocd_cluster:
            with self._phase(
                "argocd_cleanup", REASON_ARGOCD_CLEANUP_FAILED, "failed to delete ArgoCD cluster secret"
            ):
                self.finalizers.delete_registration_secret(cs)

        with self._phase("readiness", REASON_CHECK_FAILED, "failed to check resource readiness"):
            pending = self._first_not_ready(cs)

        if pending is not None:
            return self._wait(conditions, f"{pending} is not ready")

        if conditions.mark_ready():
            self._log(cs, EVENT_REASON_CONVERGED, "All certificate resources are ready")
            self._emit(EVENT_REASON_CONVERGED, "All certificate resources are ready")
        return ReconcileResult(message="converged")

    def _apply_derived_secrets(self, cs: CertificateSet) -> None:
        bundle = self.oracle.certificate_data(cs.namespace, super_admin_name(cs))

        if cs.kubeconfig:
            self.apply_resource(cs, KIND_SECRET, build_kubeconfig_secret(cs, bundle), KUBECONFIG_MANAGED_KEYS)

        if cs.argocd_cluster:
            namespace = self.config.argocd_namespace
            if not self.store.namespace_exists(namespace):
                raise PhaseError(
                    REASON_ARGOCD_NAMESPACE_NOT_FOUND,
                    f"ArgoCD namespace {namespace} does not exist",
                )
            name = argocd_cluster_name(cs)
            try:
                existing = self.store.get(KIND_SECRET, namespace, name)
            except ResourceNotFoundError:
                existing = None
            if existing is not None and not registration_owned_by(existing, cs):
                raise PhaseError(
                    REASON_DERIVED_SECRETS_FAILED,
                    f"Secret {namespace}/{name} belongs to another CertificateSet",
                )
            self.apply_resource(
                cs,
                KIND_SECRET,
                build_argocd_cluster_secret(cs, bundle, namespace),
                ARGOCD_MANAGED_KEYS,
            )

    def _first_not_ready(self, cs: CertificateSet) -> str | None:
        """Name the first required Certificate or Issuer that is not Ready."""
        for name in all_certificate_names(cs):
            if not self.oracle.certificate_ready(cs.namespace, name):
                return f"Certificate {name}"
        if cs.needs_client_certificates and not self.oracle.issuer_ready(cs.namespace, ca_name(cs)):
            return f"Issuer {ca_name(cs)}"
        return None
