"""Readiness checks against cert-manager generated resources."""

from __future__ import annotations

from typing import Any, Mapping

from ..constants import COND_READY, KIND_CERTIFICATE, KIND_ISSUER, KIND_SECRET
from ..models import CertificateData
from ..utils.errors import ResourceNotFoundError
from ..utils.secrets import has_bundle_keys
from .base import ResourceStore


def _ready_condition_true(obj: Mapping[str, Any]) -> bool:
    for cond in (obj.get("status") or {}).get("conditions") or []:
        if cond.get("type") == COND_READY:
            return cond.get("status") == "True"
    return False


class ReadinessOracle:
    """Reports whether cert-manager has finished satisfying a resource.

    A missing resource or a missing Ready condition means "not ready".
    Any other lookup failure propagates to the caller.
    """

    def __init__(self, store: ResourceStore):
        self.store = store

    def secret_ready(self, namespace: str, name: str) -> bool:
        """True when the Secret holds ``ca.crt``, ``tls.crt`` and ``tls.key``."""
        try:
            secret = self.store.get(KIND_SECRET, namespace, name)
        except ResourceNotFoundError:
            return False
        return has_bundle_keys(secret.get("data"))

    def certificate_ready(self, namespace: str, name: str) -> bool:
        try:
            certificate = self.store.get(KIND_CERTIFICATE, namespace, name)
        except ResourceNotFoundError:
            return False
        return _ready_condition_true(certificate)

    def issuer_ready(self, namespace: str, name: str) -> bool:
        try:
            issuer = self.store.get(KIND_ISSUER, namespace, name)
        except ResourceNotFoundError:
            return False
        return _ready_condition_true(issuer)

    def certificate_data(self, namespace: str, name: str) -> CertificateData:
        """Read the credential bundle from a certificate Secret.

        Raises:
            ResourceNotFoundError: If the Secret does not exist
        """
        secret = self.store.get(KIND_SECRET, namespace, name)
        return CertificateData.from_secret_data(secret.get("data") or {})
