from __future__ import annotations

from ..extensions import db
from furnipos.time_utils import to_utc_z


class Shift(db.Model):
    """
    A cashier's working shift.

    LIFECYCLE:
    - OPEN: opened with the day's rate and the cash counted in the drawer
    - CLOSED: closed once the cashier has no OPEN sales left

    A user has at most one OPEN shift at a time.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Status: OPEN, CLOSED
    status = db.Column(db.String(16), nullable=False, default="OPEN", index=True)

    exchange_rate = db.Column(db.Numeric(14, 2), nullable=False)
    opening_balance_uzs = db.Column(db.Integer, nullable=False, default=0)
    opening_balance_usd_cents = db.Column(db.Integer, nullable=False, default=0)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("shifts", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "exchange_rate": float(self.exchange_rate) if self.exchange_rate is not None else None,
            "opening_balance_uzs": self.opening_balance_uzs,
            "opening_balance_usd_cents": self.opening_balance_usd_cents,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
        }


class Advance(db.Model):
    """
    Salary advance handed to an employee out of a cash register.

    Paired with exactly one negative ADVANCE_PAYMENT CashRegisterOp.
    """
    __tablename__ = "advances"
    __table_args__ = (
        db.Index("ix_advances_user_given", "user_id", "given_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    amount_uzs = db.Column(db.Integer, nullable=False)
    cash_register = db.Column(db.String(16), nullable=False)  # SALES, SERVICE
    notes = db.Column(db.Text, nullable=True)

    given_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    register_op_id = db.Column(db.Integer, db.ForeignKey("cash_register_ops.id"), nullable=True)
    given_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("advances", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount_uzs": self.amount_uzs,
            "cash_register": self.cash_register,
            "notes": self.notes,
            "given_by_user_id": self.given_by_user_id,
            "register_op_id": self.register_op_id,
            "given_at": to_utc_z(self.given_at),
        }
