# Overview: Service-layer operations for employees and salary advances.

"""
Employees and advances.

An advance is cash handed to an employee against future salary. It is paid
out of a named register: one Advance row plus one negative ADVANCE_PAYMENT
CashRegisterOp, written in the same transaction.
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import NotFoundError
from ..extensions import db
from ..models import Advance, User
from ..validation import positive_int, MAX_AMOUNT_UZS
from .concurrency import begin_immediate, run_with_retry
from .notification_service import notify, ROOM_BOSS
from . import register_service


ADVANCE_HISTORY_LIMIT = 50


def list_employees() -> list[dict]:
    """Active users by full name, with their advance count."""
    counts = dict(
        db.session.query(Advance.user_id, func.count(Advance.id))
        .group_by(Advance.user_id)
        .all()
    )
    users = (
        db.session.query(User)
        .filter(User.is_active.is_(True))
        .order_by(User.full_name.asc())
        .all()
    )
    return [
        {
            "id": user.id,
            "username": user.username,
            "full_name": user.full_name,
            "phone": user.phone,
            "role": user.role,
            "advance_count": counts.get(user.id, 0),
        }
        for user in users
    ]


def list_advances(user_id: int) -> list[Advance]:
    if not db.session.get(User, user_id):
        raise NotFoundError("User not found")
    return (
        db.session.query(Advance)
        .filter(Advance.user_id == user_id)
        .order_by(Advance.id.desc())
        .limit(ADVANCE_HISTORY_LIMIT)
        .all()
    )


def add_advance(actor, user_id: int, data: dict):
    """
    Pay an advance to user_id out of data["cash_register"].

    Returns (advance, notifications).
    """
    amount_uzs = positive_int(data.get("amount_uzs"), "amount_uzs", MAX_AMOUNT_UZS)
    cash_register = register_service.validate_register_type(data.get("cash_register"))
    notes = (data.get("notes") or "").strip() or None

    def _op():
        begin_immediate()
        employee = db.session.get(User, user_id)
        if not employee or not employee.is_active:
            raise NotFoundError("User not found")

        advance = Advance(
            user_id=employee.id,
            amount_uzs=amount_uzs,
            cash_register=cash_register,
            notes=notes,
            given_by_user_id=actor.id,
        )
        db.session.add(advance)
        db.session.flush()

        description = f"Advance: {employee.full_name}"
        if notes:
            description = f"{description} ({notes})"
        op = register_service.append_register_op(
            register_type=cash_register,
            operation_type=register_service.OP_ADVANCE_PAYMENT,
            amount_uzs=amount_uzs,
            amount_usd_cents=0,
            user_id=actor.id,
            description=description,
        )
        advance.register_op_id = op.id
        db.session.commit()
        return advance, op

    advance, op = run_with_retry(_op)

    events = [
        notify(ROOM_BOSS, "cashRegister:updated", {
            "register_type": op.register_type,
            "operation_type": op.operation_type,
            "amount_uzs": op.amount_uzs,
            "amount_usd_cents": op.amount_usd_cents,
            "balance_uzs": op.balance_after_uzs,
            "balance_usd_cents": op.balance_after_usd_cents,
            "advance_id": advance.id,
        })
    ]
    return advance, events
