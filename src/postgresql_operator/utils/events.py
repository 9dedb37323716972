"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_CHILD_CREATED,
    EVENT_REASON_CHILD_UPDATED,
    EVENT_REASON_IMMUTABLE_FIELD,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_RECONCILE_SUCCEEDED,
    EVENT_REASON_VALIDATE_FAILED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: The object the event refers to (apiVersion, kind, metadata)
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


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_succeeded(body: dict[str, Any]) -> None:
    """Emit reconcile succeeded event."""
    emit_event(body, EVENT_REASON_RECONCILE_SUCCEEDED, "Reconciliation succeeded")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_validate_failed(body: dict[str, Any], message: str) -> None:
    """Emit validation failed event."""
    emit_event(body, EVENT_REASON_VALIDATE_FAILED, message, type_="Warning")


def emit_child_created(body: dict[str, Any], kind: str, name: str) -> None:
    """Emit managed resource created event."""
    emit_event(body, EVENT_REASON_CHILD_CREATED, f"{kind} {name} created")


def emit_child_updated(body: dict[str, Any], kind: str, name: str) -> None:
    """Emit managed resource updated event."""
    emit_event(body, EVENT_REASON_CHILD_UPDATED, f"{kind} {name} updated")


def emit_immutable_field_changed(body: dict[str, Any], message: str) -> None:
    """Emit immutable field violation event."""
    emit_event(body, EVENT_REASON_IMMUTABLE_FIELD, message, type_="Warning")
