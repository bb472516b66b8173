"""kopf handlers for CertificateSet resources and the children they own."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import kopf

from ..config import get_config, resync_interval_from_env
from ..constants import (
    ANNOTATION_CHILD_EVENT,
    API_GROUP_VERSION,
    FINALIZER,
    KIND_CERTIFICATE_SET,
    OWNED_RESOURCES,
)
from ..models import ReconcileResult
from ..reconciler import CertificateSetReconciler
from ..services.base import ResourceStore
from ..services.store import KubernetesResourceStore
from ..utils.errors import ResourceNotFoundError
from ..utils.events import make_event_sink
from .base import BaseHandler

RESYNC_INTERVAL_SECONDS = resync_interval_from_env()


def raise_for_result(result: ReconcileResult) -> None:
    """Translate a non-final result into a kopf retry.

    Raises:
        kopf.TemporaryError: With ``delay=0`` for an immediate requeue, or
            the requested delay for a timed one
    """
    if result.requeue:
        raise kopf.TemporaryError(result.message or "Requeue requested", delay=0)
    if result.requeue_after is not None:
        raise kopf.TemporaryError(result.message or "Waiting for resources", delay=result.requeue_after)


def selected(labels: dict[str, str], **_: Any) -> bool:
    """kopf ``when=`` filter applying the configured label selector."""
    return get_config().matches(labels)


def controller_owner_name(meta: dict[str, Any]) -> str | None:
    """Name of the CertificateSet controlling a child, if any."""
    for ref in meta.get("ownerReferences") or []:
        if (
            ref.get("controller")
            and ref.get("kind") == KIND_CERTIFICATE_SET
            and ref.get("apiVersion") == API_GROUP_VERSION
        ):
            return ref.get("name")
    return None


def has_cleanup_finalizer(meta: dict[str, Any], **_: Any) -> bool:
    """kopf ``when=`` filter: only objects carrying our finalizer need cleanup."""
    return FINALIZER in (meta.get("finalizers") or [])


def owned_by_certificate_set(meta: dict[str, Any], **_: Any) -> bool:
    return controller_owner_name(meta) is not None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CertificateSetHandler(BaseHandler):
    """Connects kopf invocations to the reconciliation engine."""

    def __init__(self, store: ResourceStore | None = None):
        super().__init__(KIND_CERTIFICATE_SET)
        self._store = store

    @property
    def store(self) -> ResourceStore:
        # Created lazily: kubernetes configuration is loaded at operator startup
        if self._store is None:
            self._store = KubernetesResourceStore(request_timeout=get_config().request_timeout_seconds)
        return self._store

    def reconciler(self, body: dict[str, Any]) -> CertificateSetReconciler:
        return CertificateSetReconciler(self.store, get_config(), events=make_event_sink(body))

    def reconcile(self, body: dict[str, Any], status: dict[str, Any], patch: kopf.Patch) -> ReconcileResult:
        return self.reconcile_with_metrics(body, lambda: self.reconciler(body).reconcile(body, status, patch))

    def touch_owner(self, meta: dict[str, Any]) -> None:
        """Bump the trigger annotation on a child's CertificateSet."""
        owner = controller_owner_name(meta)
        if owner is None:
            return
        try:
            self.store.annotate(
                KIND_CERTIFICATE_SET,
                meta.get("namespace", "default"),
                owner,
                {ANNOTATION_CHILD_EVENT: _now()},
            )
        except ResourceNotFoundError:
            # Owner already gone; its children are being garbage-collected
            self.log_info(
                {"name": owner, "namespace": meta.get("namespace", "default")},
                f"Owner of {meta.get('name')} not found, skipping trigger",
                event="child_event",
                reason="OwnerNotFound",
            )


_handler = CertificateSetHandler()


@kopf.on.create(API_GROUP_VERSION, KIND_CERTIFICATE_SET, when=selected)
@kopf.on.update(API_GROUP_VERSION, KIND_CERTIFICATE_SET, when=selected)
@kopf.on.resume(API_GROUP_VERSION, KIND_CERTIFICATE_SET, when=selected)
def handle_certificate_set(
    body: kopf.Body,
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle CertificateSet resource reconciliation."""
    result = _handler.reconcile(dict(body), dict(status or {}), patch)
    raise_for_result(result)


@kopf.on.delete(API_GROUP_VERSION, KIND_CERTIFICATE_SET, when=has_cleanup_finalizer)
def handle_certificate_set_delete(
    body: kopf.Body,
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle CertificateSet deletion.

    The object is held by the cleanup finalizer; the engine takes its
    deletion branch and releases it. Registered without a timeout so kopf
    keeps retrying a failing cleanup until it succeeds.
    """
    result = _handler.reconcile(dict(body), dict(status or {}), patch)
    raise_for_result(result)


@kopf.timer(API_GROUP_VERSION, KIND_CERTIFICATE_SET, interval=RESYNC_INTERVAL_SECONDS, when=selected)
def resync_certificate_set(patch: kopf.Patch, **kwargs: Any) -> None:
    """Periodically re-trigger reconciliation.

    Only the trigger annotation is written; the reconcile itself runs in the
    update handler so it never overlaps another attempt for the same object.
    """
    patch.metadata.annotations[ANNOTATION_CHILD_EVENT] = _now()


def handle_child_event(meta: dict[str, Any], type: str | None = None, **kwargs: Any) -> None:
    """Re-trigger the owning CertificateSet when a child changes."""
    if type == "DELETED":
        return
    _handler.touch_owner(dict(meta))


for _group, _version, _plural in OWNED_RESOURCES:
    kopf.on.event(
        f"{_group}/{_version}" if _group else _version,
        _plural,
        when=owned_by_certificate_set,
    )(handle_child_event)
