# src/haven_forum/services/handlers.py
"""Wiring of content-event handlers onto a dispatcher."""

from __future__ import annotations

from haven_forum.events import EventDispatcher
from haven_forum.reference import ReferenceData
from haven_forum.services.audit import AuditTrail
from haven_forum.services.counters import CounterMaintainer
from haven_forum.services.notifications import NotificationFanout


def build_dispatcher(
    reference: ReferenceData | None = None,
    audit: AuditTrail | None = None,
    notifications: NotificationFanout | None = None,
) -> EventDispatcher:
    """Return a dispatcher with the standard handlers registered.

    Counters run before fan-out so notification handlers observe the
    updated counts within the same transaction.
    """
    dispatcher = EventDispatcher()
    CounterMaintainer(reference).register(dispatcher)
    (audit or AuditTrail()).register(dispatcher)
    (notifications or NotificationFanout()).register(dispatcher)
    return dispatcher
