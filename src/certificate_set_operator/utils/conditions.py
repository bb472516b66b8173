"""Utilities for managing CertificateSet status conditions."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, MutableMapping

from .. import metrics
from ..constants import (
    COND_DEGRADED,
    COND_PROGRESSING,
    COND_READY,
    REASON_ALL_RESOURCES_READY,
    REASON_COMPLETE,
    REASON_HEALTHY,
    REASON_RESOURCES_PENDING,
    REASON_WAITING_FOR_RESOURCES,
)

STATUS_TRUE = "True"
STATUS_FALSE = "False"


def find_condition(conditions: list[dict[str, Any]], condition_type: str) -> dict[str, Any] | None:
    """Return the condition of the given type, if present."""
    for cond in conditions:
        if cond.get("type") == condition_type:
            return cond
    return None


def set_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    observed_generation: int,
) -> bool:
    """Update or add a condition in place.

    A write whose status, reason, message and observed generation all match
    the existing condition is skipped.

    Args:
        conditions: List of existing conditions (modified in place)
        condition_type: Type of condition
        status: Status of condition ("True" or "False")
        reason: Reason for the condition
        message: Human-readable message
        observed_generation: Generation the condition was evaluated against

    Returns:
        True if the list changed
    """
    existing = find_condition(conditions, condition_type)

    if (
        existing is not None
        and existing.get("status") == status
        and existing.get("reason") == reason
        and existing.get("message") == message
        and existing.get("observedGeneration") == observed_generation
    ):
        return False

    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    new_condition = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "observedGeneration": observed_generation,
        "lastTransitionTime": now,
    }

    if existing is not None:
        # Only update lastTransitionTime if status changed
        if existing.get("status") == status:
            new_condition["lastTransitionTime"] = existing.get("lastTransitionTime", now)
        conditions[conditions.index(existing)] = new_condition
    else:
        conditions.append(new_condition)

    return True


class ConditionManager:
    """Accumulates condition changes for one reconciliation attempt.

    Works on a copy of the conditions snapshot taken when the attempt
    started; ``commit`` writes the result to a merge patch only if anything
    differs from that snapshot.
    """

    def __init__(self, status: dict[str, Any] | None, generation: int):
        self.snapshot: list[dict[str, Any]] = copy.deepcopy((status or {}).get("conditions") or [])
        self.conditions: list[dict[str, Any]] = copy.deepcopy(self.snapshot)
        self.generation = generation
        self._changed: set[str] = set()

    @property
    def changed(self) -> bool:
        return bool(self._changed)

    def get(self, condition_type: str) -> dict[str, Any] | None:
        return find_condition(self.conditions, condition_type)

    def set(self, condition_type: str, status: bool, reason: str, message: str) -> bool:
        changed = set_condition(
            self.conditions,
            condition_type,
            STATUS_TRUE if status else STATUS_FALSE,
            reason,
            message,
            self.generation,
        )
        if changed:
            self._changed.add(condition_type)
        return changed

    def mark_ready(self, message: str = "All certificate resources are ready") -> bool:
        changed = self.set(COND_READY, True, REASON_ALL_RESOURCES_READY, message)
        changed = self.set(COND_PROGRESSING, False, REASON_COMPLETE, "Reconciliation complete") or changed
        changed = self.set(COND_DEGRADED, False, REASON_HEALTHY, "No errors") or changed
        return changed

    def mark_progressing(self, message: str) -> bool:
        changed = self.set(COND_READY, False, REASON_WAITING_FOR_RESOURCES, message)
        changed = self.set(COND_PROGRESSING, True, REASON_RESOURCES_PENDING, message) or changed
        changed = self.set(COND_DEGRADED, False, REASON_HEALTHY, "No errors") or changed
        return changed

    def mark_degraded(self, reason: str, message: str) -> bool:
        changed = self.set(COND_READY, False, reason, message)
        changed = self.set(COND_PROGRESSING, False, reason, message) or changed
        changed = self.set(COND_DEGRADED, True, reason, message) or changed
        return changed

    def commit(self, patch: Any) -> bool:
        """Write changed conditions into ``patch.status``.

        Args:
            patch: kopf.Patch (or any object with a ``status`` mapping)

        Returns:
            True if a status write was queued
        """
        if not self._changed or self.conditions == self.snapshot:
            return False

        status: MutableMapping[str, Any] = patch.status
        status["conditions"] = copy.deepcopy(self.conditions)
        status["observedGeneration"] = self.generation

        for condition_type in sorted(self._changed):
            cond = self.get(condition_type) or {}
            metrics.condition_updates_total.labels(condition=condition_type, status=cond.get("status", "")).inc()

        self.snapshot = copy.deepcopy(self.conditions)
        self._changed.clear()
        return True
