# Overview: Service-layer operations for cashier shifts.

"""
Shift Service

A cashier opens a shift with the day's exchange rate and the cash counted
in the drawer, and closes it once none of their sales is left OPEN.

- one OPEN shift per user
- closing is blocked while the closing user still has OPEN sales
- closing someone else's shift needs shift:view_all
"""

from __future__ import annotations

from ..errors import BadRequestError, ForbiddenError, NotFoundError
from ..extensions import db
from ..models import Sale, Shift
from ..permissions import Permissions, has_user_permission
from ..validation import non_negative_int, optional_int, MAX_AMOUNT_UZS, MAX_AMOUNT_USD_CENTS
from furnipos.time_utils import utcnow
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .currency_service import parse_rate
from .notification_service import notify, ROOM_BOSS
from .sales_service import SALE_STATUS_OPEN


SHIFT_OPEN = "OPEN"
SHIFT_CLOSED = "CLOSED"
SHIFT_STATUSES = (SHIFT_OPEN, SHIFT_CLOSED)


class ShiftError(BadRequestError):
    """Raised for invalid shift operations."""


def _get_open_shift(user_id: int) -> Shift | None:
    return (
        db.session.query(Shift)
        .filter_by(user_id=user_id, status=SHIFT_OPEN)
        .order_by(Shift.opened_at.desc(), Shift.id.desc())
        .first()
    )


def get_current_shift(actor) -> Shift | None:
    return _get_open_shift(actor.id)


def open_shift(actor, data: dict):
    """
    Open a shift for the actor.

    Returns (shift, notifications).
    """
    try:
        exchange_rate = parse_rate(data.get("exchange_rate"))
    except BadRequestError:
        raise ShiftError("exchange_rate must be greater than 0")
    opening_uzs = non_negative_int(
        data.get("opening_balance_uzs") or 0, "opening_balance_uzs", MAX_AMOUNT_UZS
    )
    opening_usd_cents = non_negative_int(
        data.get("opening_balance_usd_cents") or 0, "opening_balance_usd_cents", MAX_AMOUNT_USD_CENTS
    )

    def _op():
        begin_immediate()
        if _get_open_shift(actor.id):
            raise ShiftError("You already have an open shift")

        shift = Shift(
            user_id=actor.id,
            status=SHIFT_OPEN,
            exchange_rate=exchange_rate,
            opening_balance_uzs=opening_uzs,
            opening_balance_usd_cents=opening_usd_cents,
            opened_at=utcnow(),
        )
        db.session.add(shift)
        db.session.commit()
        return shift

    shift = run_with_retry(_op)
    return shift, [notify(ROOM_BOSS, "shift:opened", {"user_id": actor.id, "shift_id": shift.id})]


def close_shift(actor, shift_id: int):
    """
    Close a shift.

    Returns (shift, notifications).
    """
    can_view_all = has_user_permission(actor.role, Permissions.SHIFT_VIEW_ALL, actor.custom_permissions)

    def _op():
        begin_immediate()
        shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id)).first()
        if not shift:
            raise NotFoundError("Shift not found")
        if shift.user_id != actor.id and not can_view_all:
            raise ForbiddenError("Cannot close another user's shift")
        if shift.status != SHIFT_OPEN:
            raise ShiftError("Shift is already closed")

        open_sales = (
            db.session.query(Sale)
            .filter(Sale.cashier_id == actor.id, Sale.status == SALE_STATUS_OPEN)
            .count()
        )
        if open_sales:
            raise ShiftError(
                f"{open_sales} open sales; close them first",
                details={"open_sales": open_sales},
            )

        shift.status = SHIFT_CLOSED
        shift.closed_at = utcnow()
        db.session.commit()
        return shift

    shift = run_with_retry(_op)
    return shift, [notify(ROOM_BOSS, "shift:closed", {"user_id": actor.id, "shift_id": shift.id})]


def list_shifts(filters: dict | None = None) -> list[Shift]:
    """Shifts newest first, optionally by user and status."""
    filters = filters or {}
    query = db.session.query(Shift)

    user_id = optional_int(filters.get("user_id") or None, "user_id")
    if user_id is not None:
        query = query.filter(Shift.user_id == user_id)

    status = filters.get("status")
    if status:
        if status not in SHIFT_STATUSES:
            raise ShiftError(f"Unknown status: {status}")
        query = query.filter(Shift.status == status)

    limit = max(1, min(optional_int(filters.get("limit") or None, "limit") or 100, 500))
    return query.order_by(Shift.id.desc()).limit(limit).all()
