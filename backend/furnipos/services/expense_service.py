# Overview: Service-layer operations for expenses; encapsulates business logic and database work.

"""
Expenses

Money paid out of a register. Every expense appends one negative EXPENSE
CashRegisterOp in the same transaction. record_expense() is also used by
the purchase workflow, inside the purchase's transaction.
"""

from ..errors import BadRequestError, ConflictError, NotFoundError
from ..extensions import db
from ..models import Expense, ExpenseCategory
from ..permissions import Permissions, has_user_permission
from furnipos.time_utils import parse_iso_date
from ..validation import optional_int, non_negative_int, MAX_AMOUNT_UZS, MAX_AMOUNT_USD_CENTS
from .concurrency import begin_immediate, run_with_retry
from .notification_service import notify, ROOM_BOSS
from .payment_service import PAYMENT_TYPES
from . import register_service


STOCK_INTAKE_CATEGORY = "Stock intake"


class ExpenseError(BadRequestError):
    pass


def list_expense_categories(include_inactive: bool = False) -> list[ExpenseCategory]:
    query = db.session.query(ExpenseCategory)
    if not include_inactive:
        query = query.filter(ExpenseCategory.is_active.is_(True))
    return query.order_by(ExpenseCategory.name).all()


def create_expense_category(name: str) -> ExpenseCategory:
    name = (name or "").strip()
    if not name:
        raise ExpenseError("name is required")
    if db.session.query(ExpenseCategory).filter_by(name=name).first():
        raise ConflictError("Expense category already exists")
    category = ExpenseCategory(name=name, is_active=True)
    db.session.add(category)
    db.session.commit()
    return category


def get_or_create_expense_category(name: str) -> ExpenseCategory:
    """Flush only; used inside a caller's transaction."""
    category = db.session.query(ExpenseCategory).filter_by(name=name).first()
    if category is None:
        category = ExpenseCategory(name=name, is_active=True)
        db.session.add(category)
        db.session.flush()
    return category


def record_expense(
    user_id: int,
    category_id: int,
    amount_uzs: int,
    amount_usd_cents: int,
    description: str,
    cash_register: str,
    payment_type: str = "CASH_UZS",
) -> Expense:
    """Create the Expense row and its EXPENSE ledger op. Does not commit."""
    expense = Expense(
        category_id=category_id,
        amount_uzs=amount_uzs,
        amount_usd_cents=amount_usd_cents,
        description=description,
        cash_register=cash_register,
        payment_type=payment_type,
        user_id=user_id,
    )
    db.session.add(expense)
    db.session.flush()

    register_service.append_register_op(
        register_type=cash_register,
        operation_type=register_service.OP_EXPENSE,
        amount_uzs=amount_uzs,
        amount_usd_cents=amount_usd_cents,
        user_id=user_id,
        description=description,
        expense_id=expense.id,
    )
    return expense


def create_expense(actor, data: dict):
    """
    Manual expense.

    Returns (expense, notifications).
    """
    amount_uzs = non_negative_int(data.get("amount_uzs") or 0, "amount_uzs", MAX_AMOUNT_UZS)
    amount_usd_cents = non_negative_int(
        data.get("amount_usd_cents") or 0, "amount_usd_cents", MAX_AMOUNT_USD_CENTS
    )
    if amount_uzs == 0 and amount_usd_cents == 0:
        raise ExpenseError("Expense amount must be greater than 0")

    description = (data.get("description") or "").strip()
    if not description:
        raise ExpenseError("description is required")

    payment_type = data.get("payment_type") or "CASH_UZS"
    if payment_type not in PAYMENT_TYPES:
        raise ExpenseError(f"Unknown payment_type: {payment_type}")

    category_id = optional_int(data.get("category_id"), "category_id")
    if category_id is None:
        raise ExpenseError("category_id is required")

    cash_register = register_service.register_for_actor(actor, data.get("cash_register"))

    def _op():
        begin_immediate()
        category = db.session.get(ExpenseCategory, category_id)
        if not category or not category.is_active:
            raise NotFoundError("Expense category not found")

        expense = record_expense(
            user_id=actor.id,
            category_id=category.id,
            amount_uzs=amount_uzs,
            amount_usd_cents=amount_usd_cents,
            description=description,
            cash_register=cash_register,
            payment_type=payment_type,
        )
        db.session.commit()
        return expense

    expense = run_with_retry(_op)
    balance = register_service.get_register_balance(cash_register)
    events = [notify(ROOM_BOSS, "cashRegister:updated", {**balance, "expense_id": expense.id})]
    return expense, events


def list_expenses(actor, filters: dict | None = None) -> list[Expense]:
    """
    Expenses newest first.

    Without expense:view_all an actor only sees their own expenses.
    """
    filters = filters or {}
    query = db.session.query(Expense)

    if not has_user_permission(actor.role, Permissions.EXPENSE_VIEW_ALL, actor.custom_permissions):
        query = query.filter(Expense.user_id == actor.id)

    if filters.get("cash_register"):
        query = query.filter(
            Expense.cash_register == register_service.validate_register_type(filters["cash_register"])
        )
    category_id = optional_int(filters.get("category_id") or None, "category_id")
    if category_id is not None:
        query = query.filter(Expense.category_id == category_id)

    try:
        date_from = parse_iso_date(filters.get("date_from"))
        date_to = parse_iso_date(filters.get("date_to"))
    except ValueError:
        raise ExpenseError("Dates must be YYYY-MM-DD")
    if date_from:
        query = query.filter(db.func.date(Expense.created_at) >= date_from.isoformat())
    if date_to:
        query = query.filter(db.func.date(Expense.created_at) <= date_to.isoformat())

    limit = max(1, min(optional_int(filters.get("limit") or None, "limit") or 100, 500))
    return query.order_by(Expense.id.desc()).limit(limit).all()
