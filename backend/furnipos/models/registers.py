from __future__ import annotations

from ..extensions import db
from furnipos.time_utils import to_utc_z


class Payment(db.Model):
    """
    Money received against a sale and/or a customer's standing debt.

    Every payment appends exactly one CashRegisterOp in the same transaction.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_register_created", "cash_register", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    amount_uzs = db.Column(db.Integer, nullable=False, default=0)
    amount_usd_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_type = db.Column(db.String(16), nullable=False)  # CASH_UZS, CASH_USD, CARD, TRANSFER, DEBT
    cash_register = db.Column(db.String(16), nullable=False)  # SALES, SERVICE
    source = db.Column(db.String(16), nullable=False, default="NEW_SALE")  # NEW_SALE, OLD_DEBT

    notes = db.Column(db.Text, nullable=True)
    received_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "customer_id": self.customer_id,
            "amount_uzs": self.amount_uzs,
            "amount_usd_cents": self.amount_usd_cents,
            "payment_type": self.payment_type,
            "cash_register": self.cash_register,
            "source": self.source,
            "notes": self.notes,
            "received_by_user_id": self.received_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class CashRegisterBalance(db.Model):
    """
    Running balance counter, one row per register type.

    Adjusted only with a single UPDATE ... SET balance = balance + delta so
    concurrent operations never lose an increment.
    """
    __tablename__ = "cash_register_balances"

    register_type = db.Column(db.String(16), primary_key=True)
    balance_uzs = db.Column(db.Integer, nullable=False, default=0)
    balance_usd_cents = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "register_type": self.register_type,
            "balance_uzs": self.balance_uzs,
            "balance_usd_cents": self.balance_usd_cents,
            "updated_at": to_utc_z(self.updated_at),
        }


class CashRegisterOp(db.Model):
    """
    Append-only cash register ledger row.

    Amounts are signed: income positive, expenses negative. balance_after_*
    is the register balance immediately after this operation was applied.
    """
    __tablename__ = "cash_register_ops"
    __table_args__ = (
        db.Index("ix_cash_register_ops_register_created", "register_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    register_type = db.Column(db.String(16), nullable=False)
    operation_type = db.Column(db.String(32), nullable=False, index=True)

    amount_uzs = db.Column(db.Integer, nullable=False, default=0)
    amount_usd_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_after_uzs = db.Column(db.Integer, nullable=False)
    balance_after_usd_cents = db.Column(db.Integer, nullable=False)

    description = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "register_type": self.register_type,
            "operation_type": self.operation_type,
            "amount_uzs": self.amount_uzs,
            "amount_usd_cents": self.amount_usd_cents,
            "balance_after_uzs": self.balance_after_uzs,
            "balance_after_usd_cents": self.balance_after_usd_cents,
            "description": self.description,
            "user_id": self.user_id,
            "payment_id": self.payment_id,
            "expense_id": self.expense_id,
            "created_at": to_utc_z(self.created_at),
        }


class ExpenseCategory(db.Model):
    __tablename__ = "expense_categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Expense(db.Model):
    """Money paid out of a register."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_register_created", "cash_register", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("expense_categories.id"), nullable=False, index=True)
    amount_uzs = db.Column(db.Integer, nullable=False, default=0)
    amount_usd_cents = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.String(255), nullable=False)
    cash_register = db.Column(db.String(16), nullable=False)
    payment_type = db.Column(db.String(16), nullable=False, default="CASH_UZS")
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    category = db.relationship("ExpenseCategory", backref=db.backref("expenses", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "amount_uzs": self.amount_uzs,
            "amount_usd_cents": self.amount_usd_cents,
            "description": self.description,
            "cash_register": self.cash_register,
            "payment_type": self.payment_type,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
