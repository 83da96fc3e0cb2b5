# Overview: Service-layer operations for cash registers; encapsulates business logic and database work.

"""
Cash Register Ledger

Two independent registers, SALES and SERVICE. Every money movement appends
one CashRegisterOp row. Amounts are signed (income > 0, expense < 0).

Each register has a CashRegisterBalance counter row. Appending an op
adjusts the counter with a single UPDATE ... SET balance = balance + delta
and copies the resulting balance onto the op as balance_after_*. The last
op's balance_after_* therefore always equals the sum of all ops so far.

Nothing here commits; callers own the transaction.
"""

from sqlalchemy import select, update

from ..errors import BadRequestError
from ..extensions import db
from ..models import CashRegisterBalance, CashRegisterOp
from ..permissions import Role


REGISTER_SALES = "SALES"
REGISTER_SERVICE = "SERVICE"
REGISTER_TYPES = (REGISTER_SALES, REGISTER_SERVICE)

OP_SALE_INCOME = "SALE_INCOME"
OP_DEBT_PAYMENT = "DEBT_PAYMENT"
OP_ADVANCE_PAYMENT = "ADVANCE_PAYMENT"
OP_EXPENSE = "EXPENSE"
OPERATION_TYPES = (OP_SALE_INCOME, OP_DEBT_PAYMENT, OP_ADVANCE_PAYMENT, OP_EXPENSE)


class RegisterError(BadRequestError):
    pass


def validate_register_type(register_type: str) -> str:
    if register_type not in REGISTER_TYPES:
        raise RegisterError(f"Unknown cash register: {register_type}")
    return register_type


def register_for_actor(actor, requested: str | None = None) -> str:
    """
    Register a money movement by this actor belongs to.

    Service cashiers always use SERVICE, Sales cashiers always SALES.
    Owners default to SALES and may name a register explicitly.
    """
    if actor.role == Role.CASHIER_SERVICE:
        return REGISTER_SERVICE
    if actor.role == Role.OWNER and requested:
        return validate_register_type(requested)
    return REGISTER_SALES


def ensure_register_balances() -> None:
    """Create missing counter rows (flush only)."""
    existing = {
        row[0] for row in db.session.execute(select(CashRegisterBalance.register_type)).all()
    }
    for register_type in REGISTER_TYPES:
        if register_type not in existing:
            db.session.add(CashRegisterBalance(
                register_type=register_type,
                balance_uzs=0,
                balance_usd_cents=0,
            ))
    db.session.flush()


def _adjust_balance(register_type: str, delta_uzs: int, delta_usd_cents: int) -> tuple[int, int]:
    """Atomically add deltas to the counter row and return the new balance."""
    result = db.session.execute(
        update(CashRegisterBalance)
        .where(CashRegisterBalance.register_type == register_type)
        .values(
            balance_uzs=CashRegisterBalance.balance_uzs + delta_uzs,
            balance_usd_cents=CashRegisterBalance.balance_usd_cents + delta_usd_cents,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        ensure_register_balances()
        return _adjust_balance(register_type, delta_uzs, delta_usd_cents)

    balance_uzs, balance_usd_cents = db.session.execute(
        select(CashRegisterBalance.balance_uzs, CashRegisterBalance.balance_usd_cents)
        .where(CashRegisterBalance.register_type == register_type)
    ).one()
    return balance_uzs, balance_usd_cents


def append_register_op(
    register_type: str,
    operation_type: str,
    amount_uzs: int,
    amount_usd_cents: int,
    user_id: int,
    description: str | None = None,
    payment_id: int | None = None,
    expense_id: int | None = None,
) -> CashRegisterOp:
    """
    Append one signed ledger row and move the running balance.

    Expense and advance amounts are stored negative whatever sign the caller passes.
    """
    validate_register_type(register_type)
    if operation_type not in OPERATION_TYPES:
        raise RegisterError(f"Unknown operation type: {operation_type}")

    if operation_type in (OP_EXPENSE, OP_ADVANCE_PAYMENT):
        amount_uzs = -abs(amount_uzs)
        amount_usd_cents = -abs(amount_usd_cents)

    balance_uzs, balance_usd_cents = _adjust_balance(register_type, amount_uzs, amount_usd_cents)

    op = CashRegisterOp(
        register_type=register_type,
        operation_type=operation_type,
        amount_uzs=amount_uzs,
        amount_usd_cents=amount_usd_cents,
        balance_after_uzs=balance_uzs,
        balance_after_usd_cents=balance_usd_cents,
        description=description,
        user_id=user_id,
        payment_id=payment_id,
        expense_id=expense_id,
    )
    db.session.add(op)
    db.session.flush()
    return op


def get_register_balances() -> list[dict]:
    rows = {
        row.register_type: row
        for row in db.session.query(CashRegisterBalance).all()
    }
    balances = []
    for register_type in REGISTER_TYPES:
        row = rows.get(register_type)
        balances.append({
            "register_type": register_type,
            "balance_uzs": row.balance_uzs if row else 0,
            "balance_usd_cents": row.balance_usd_cents if row else 0,
        })
    return balances


def get_register_balance(register_type: str) -> dict:
    validate_register_type(register_type)
    for balance in get_register_balances():
        if balance["register_type"] == register_type:
            return balance


def list_register_ops(register_type: str | None = None, limit: int = 50) -> list[CashRegisterOp]:
    query = db.session.query(CashRegisterOp)
    if register_type:
        query = query.filter(CashRegisterOp.register_type == validate_register_type(register_type))
    limit = max(1, min(int(limit), 500))
    return query.order_by(CashRegisterOp.id.desc()).limit(limit).all()
