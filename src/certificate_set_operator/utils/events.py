"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any, Callable

import kopf

from ..constants import EVENT_REASON_RECONCILE_FAILED, EVENT_REASON_RECONCILE_STARTED

EventSink = Callable[[str, str, str], None]


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource body (kopf needs apiVersion, kind and metadata)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def make_event_sink(body: dict[str, Any]) -> EventSink:
    """Bind ``emit_event`` to one object so callers need only reason and message."""

    def sink(reason: str, message: str, type_: str = "Normal") -> None:
        emit_event(body, reason, message, type_=type_)

    return sink


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")
