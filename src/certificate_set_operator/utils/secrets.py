"""Utilities for working with Kubernetes Secret payloads."""

from __future__ import annotations

import base64
from typing import Any, Iterable, Mapping

from ..constants import BUNDLE_KEYS


def encode_secret_value(value: str) -> str:
    """Base64 encode a string for a Secret's ``data`` field."""
    return base64.b64encode(value.encode("utf-8")).decode("utf-8")


def has_bundle_keys(data: Mapping[str, Any] | None) -> bool:
    """True when ``ca.crt``, ``tls.crt`` and ``tls.key`` are all present."""
    data = data or {}
    return all(key in data for key in BUNDLE_KEYS)


def secret_data_equal_for_keys(
    existing: Mapping[str, Any] | None,
    desired: Mapping[str, Any] | None,
    keys: Iterable[str],
) -> bool:
    """Compare two Secret ``data`` maps on the given keys only."""
    existing = existing or {}
    desired = desired or {}
    for key in keys:
        if (key in existing) != (key in desired):
            return False
        if key in existing and existing[key] != desired[key]:
            return False
    return True


def merge_managed_keys(
    existing: dict[str, Any],
    desired: dict[str, Any],
    keys: Iterable[str],
) -> dict[str, Any]:
    """Copy the managed ``data`` keys of ``desired`` onto ``existing``.

    Unmanaged keys, labels and annotations on ``existing`` are preserved.
    """
    data = dict(existing.get("data") or {})
    desired_data = desired.get("data") or {}
    for key in keys:
        if key in desired_data:
            data[key] = desired_data[key]
        else:
            data.pop(key, None)
    merged = dict(existing)
    merged["data"] = data
    return merged
