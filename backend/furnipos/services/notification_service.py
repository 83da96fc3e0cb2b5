# Overview: Best-effort notification fan-out to UI rooms.

"""
Notification dispatch.

Workflows never emit directly. They return Notification values next to
their result; the route calls dispatch() only after the workflow
committed. Delivery is best effort:

- each notification is written to the notification_events outbox
  (polled by clients through /api/notifications)
- registered in-process subscribers are called per room

Any failure here is logged and swallowed. It never reaches the caller and
never rolls back the business transaction.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Iterable

from flask import current_app

from ..errors import BadRequestError
from ..extensions import db
from ..models import NotificationEvent
from furnipos.time_utils import utcnow


logger = logging.getLogger(__name__)


ROOM_SALES = "room:sales"
ROOM_WORKSHOP = "room:workshop"
ROOM_STOCK = "room:stock"
ROOM_BOSS = "room:boss"
ROOM_SERVICE = "room:service"

ALL_ROOMS = (ROOM_SALES, ROOM_WORKSHOP, ROOM_STOCK, ROOM_BOSS, ROOM_SERVICE)


@dataclass(frozen=True)
class Notification:
    """One event addressed to one or more rooms."""
    rooms: tuple
    event: str
    payload: dict = field(default_factory=dict)


def notify(rooms, event: str, payload: dict | None = None) -> Notification:
    if isinstance(rooms, str):
        rooms = (rooms,)
    return Notification(rooms=tuple(rooms), event=event, payload=payload or {})


_subscribers: dict[str, list[Callable]] = defaultdict(list)


def subscribe(room: str, callback: Callable[[str, str, dict], None]) -> None:
    """Register callback(room, event, payload) for a room."""
    _subscribers[room].append(callback)


def unsubscribe(room: str, callback: Callable) -> None:
    if callback in _subscribers.get(room, []):
        _subscribers[room].remove(callback)


def clear_subscribers() -> None:
    _subscribers.clear()


def _persist(notifications: list[Notification]) -> None:
    for notification in notifications:
        for room in notification.rooms:
            db.session.add(NotificationEvent(
                room=room,
                event=notification.event,
                payload=notification.payload,
            ))
    db.session.commit()


def dispatch(notifications: Iterable[Notification] | None) -> None:
    """
    Deliver notifications produced by a committed workflow.

    Never raises.
    """
    notifications = [n for n in (notifications or []) if n is not None]
    if not notifications:
        return

    if current_app.config.get("NOTIFICATION_OUTBOX_ENABLED", True):
        try:
            _persist(notifications)
        except Exception:
            db.session.rollback()
            logger.exception("Failed to persist %d notification(s)", len(notifications))

    for notification in notifications:
        for room in notification.rooms:
            for callback in list(_subscribers.get(room, [])):
                try:
                    callback(room, notification.event, notification.payload)
                except Exception:
                    logger.exception(
                        "Notification subscriber failed room=%s event=%s",
                        room,
                        notification.event,
                    )


def list_events(room: str, after_id: int = 0, limit: int = 100) -> list[NotificationEvent]:
    """Outbox rows for a room with id > after_id, oldest first."""
    if room not in ALL_ROOMS:
        raise BadRequestError(f"Unknown room: {room}")
    limit = max(1, min(int(limit), 500))
    return (
        db.session.query(NotificationEvent)
        .filter(NotificationEvent.room == room, NotificationEvent.id > after_id)
        .order_by(NotificationEvent.id.asc())
        .limit(limit)
        .all()
    )


def prune_events(older_than_days: int) -> int:
    """Delete outbox rows created more than older_than_days ago."""
    if older_than_days < 1:
        raise BadRequestError("days must be at least 1")
    cutoff = utcnow() - timedelta(days=older_than_days)
    deleted = (
        db.session.query(NotificationEvent)
        .filter(NotificationEvent.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    logger.info("Pruned %d notification event(s) older than %d day(s)", deleted, older_than_days)
    return deleted
