"""Finalizer handling and cleanup of resources outside the owner's namespace.

The ArgoCD registration Secret lives in a different namespace than its
CertificateSet, so Kubernetes garbage collection never removes it. The
finalizer keeps the CertificateSet around until that Secret is gone.
"""

from __future__ import annotations

import logging
from typing import Any

from . import metrics
from .builders.names import argocd_cluster_name
from .constants import (
    ANNOTATION_OWNER,
    EVENT_REASON_CLEANUP_COMPLETED,
    EVENT_REASON_SECRET_DELETED,
    FINALIZER,
    KIND_CERTIFICATE_SET,
    KIND_SECRET,
)
from .logging import log_resource_event
from .models import CertificateSet
from .services.base import ResourceStore
from .utils.errors import ResourceNotFoundError
from .utils.events import EventSink

logger = logging.getLogger(__name__)


def registration_owned_by(secret: dict[str, Any], cs: CertificateSet) -> bool:
    """True when the registration Secret may be managed by ``cs``.

    Secrets without an owner annotation predate ownership tracking and are
    adopted.
    """
    annotations = (secret.get("metadata") or {}).get("annotations") or {}
    owner = annotations.get(ANNOTATION_OWNER)
    return owner is None or owner == cs.identity


class FinalizerManager:
    """Attaches and releases the cleanup finalizer and deletes the registration Secret."""

    def __init__(self, store: ResourceStore, argocd_namespace: str, events: EventSink | None = None):
        self.store = store
        self.argocd_namespace = argocd_namespace
        self.events = events

    def _emit(self, reason: str, message: str) -> None:
        if self.events is not None:
            self.events(reason, message, "Normal")

    def _log(self, cs: CertificateSet, reason: str, message: str, **kwargs: Any) -> None:
        log_resource_event(
            logger,
            controller="certificate-set-operator",
            resource_kind=KIND_CERTIFICATE_SET,
            resource_name=cs.name,
            namespace=cs.namespace,
            uid=cs.uid,
            event="cleanup",
            reason=reason,
            message=message,
            **kwargs,
        )

    def ensure_finalizer(self, cs: CertificateSet, patch: Any) -> bool:
        """Queue the finalizer on ``patch.metadata``; False if already present."""
        if cs.has_finalizer:
            return False
        patch.metadata["finalizers"] = [*cs.finalizers, FINALIZER]
        return True

    def remove_finalizer(self, cs: CertificateSet, patch: Any) -> bool:
        """Queue removal of the finalizer; False if it is not present."""
        if not cs.has_finalizer:
            return False
        finalizers = [f for f in cs.finalizers if f != FINALIZER]
        patch.metadata["finalizers"] = finalizers if finalizers else None
        return True

    def delete_registration_secret(self, cs: CertificateSet) -> bool:
        """Delete the ArgoCD registration Secret if it exists and belongs to ``cs``.

        Returns:
            True if a Secret was deleted
        """
        name = argocd_cluster_name(cs)
        try:
            existing = self.store.get(KIND_SECRET, self.argocd_namespace, name)
        except ResourceNotFoundError:
            return False

        if not registration_owned_by(existing, cs):
            owner = existing["metadata"]["annotations"][ANNOTATION_OWNER]
            self._log(
                cs,
                "RegistrationOwnedElsewhere",
                f"Leaving Secret {self.argocd_namespace}/{name} in place, it belongs to {owner}",
                level=logging.WARNING,
            )
            return False

        try:
            self.store.delete(KIND_SECRET, self.argocd_namespace, name)
        except ResourceNotFoundError:
            return False

        metrics.child_operations_total.labels(kind=KIND_SECRET, operation="delete", result="success").inc()
        self._log(cs, EVENT_REASON_SECRET_DELETED, f"Deleted Secret {self.argocd_namespace}/{name}")
        self._emit(EVENT_REASON_SECRET_DELETED, f"Deleted ArgoCD cluster Secret {self.argocd_namespace}/{name}")
        return True

    def cleanup(self, cs: CertificateSet) -> None:
        """Remove everything garbage collection will not.

        Same-namespace children are owned by ``cs`` and are left to the
        garbage collector.
        """
        self.delete_registration_secret(cs)
        self._log(cs, EVENT_REASON_CLEANUP_COMPLETED, "Cleanup completed")
        self._emit(EVENT_REASON_CLEANUP_COMPLETED, "Cleanup completed")
