"""Metadata shared by all resources derived from a CertificateSet."""

from __future__ import annotations

from typing import Any

from ..constants import (
    ANNOTATION_LAST_APPLIED,
    API_GROUP_VERSION,
    KIND_CERTIFICATE_SET,
    KOPF_ANNOTATION_PREFIX,
    OPERATOR_ANNOTATION_PREFIX,
)
from ..models import CertificateSet


def copy_annotations_for_child(source: dict[str, str]) -> dict[str, str]:
    """Copy parent annotations, dropping apply and operator bookkeeping."""
    return {
        key: value
        for key, value in source.items()
        if key != ANNOTATION_LAST_APPLIED
        and not key.startswith(KOPF_ANNOTATION_PREFIX)
        and not key.startswith(OPERATOR_ANNOTATION_PREFIX)
    }


def build_owner_reference(cs: CertificateSet) -> dict[str, Any]:
    """Controller owner reference pointing at the CertificateSet."""
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_CERTIFICATE_SET,
        "name": cs.name,
        "uid": cs.uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }


def build_object_meta(
    cs: CertificateSet,
    name: str,
    namespace: str | None = None,
    owned: bool = True,
) -> dict[str, Any]:
    """Build metadata for a child resource.

    Args:
        cs: Parent CertificateSet
        name: Child name
        namespace: Child namespace, defaults to the parent's
        owned: Attach a controller owner reference (same-namespace children only)
    """
    meta: dict[str, Any] = {
        "name": name,
        "namespace": namespace or cs.namespace,
        "labels": dict(cs.labels),
        "annotations": copy_annotations_for_child(cs.annotations),
    }
    if owned:
        meta["ownerReferences"] = [build_owner_reference(cs)]
    return meta
