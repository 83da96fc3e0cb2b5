from __future__ import annotations

from ..extensions import db
from furnipos.time_utils import to_utc_z


class NotificationEvent(db.Model):
    """
    Outbox row for a dispatched notification.

    Written after the originating workflow committed. Polling clients read
    rows per room with an increasing id cursor.
    """
    __tablename__ = "notification_events"
    __table_args__ = (
        db.Index("ix_notification_events_room_id", "room", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    room = db.Column(db.String(32), nullable=False)
    event = db.Column(db.String(64), nullable=False)
    payload = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "room": self.room,
            "event": self.event,
            "payload": self.payload,
            "created_at": to_utc_z(self.created_at),
        }
