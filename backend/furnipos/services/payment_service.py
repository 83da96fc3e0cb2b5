# Overview: Service-layer operations for payments; encapsulates business logic and database work.

"""
Payment Service

A payment records money received against a sale, a customer's standing
debt, or both. Each payment appends exactly one CashRegisterOp in the same
transaction; the register comes from the actor's role (see
register_service.register_for_actor).

SOURCE -> OPERATION TYPE:
- NEW_SALE -> SALE_INCOME
- OLD_DEBT -> DEBT_PAYMENT

A DEBT payment is a sale taken on credit: no cash changes hands, so its op
carries a zero amount and leaves the running balance where it was.
"""

from ..errors import BadRequestError, NotFoundError
from ..extensions import db
from ..models import Payment, Sale, Customer
from ..validation import non_negative_int, optional_int, MAX_AMOUNT_UZS, MAX_AMOUNT_USD_CENTS
from .concurrency import begin_immediate, run_with_retry
from .notification_service import notify, ROOM_BOSS
from . import register_service


PAYMENT_TYPE_DEBT = "DEBT"
PAYMENT_TYPES = ("CASH_UZS", "CASH_USD", "CARD", "TRANSFER", PAYMENT_TYPE_DEBT)
PAYMENT_SOURCES = ("NEW_SALE", "OLD_DEBT")

_OPERATION_FOR_SOURCE = {
    "NEW_SALE": register_service.OP_SALE_INCOME,
    "OLD_DEBT": register_service.OP_DEBT_PAYMENT,
}


class PaymentError(BadRequestError):
    """Raised for invalid payment operations."""


def _validate(data: dict) -> dict:
    amount_uzs = non_negative_int(data.get("amount_uzs") or 0, "amount_uzs", MAX_AMOUNT_UZS)
    amount_usd_cents = non_negative_int(
        data.get("amount_usd_cents") or 0, "amount_usd_cents", MAX_AMOUNT_USD_CENTS
    )
    if amount_uzs == 0 and amount_usd_cents == 0:
        raise PaymentError("Payment amount must be greater than 0")

    payment_type = data.get("payment_type") or "CASH_UZS"
    if payment_type not in PAYMENT_TYPES:
        raise PaymentError(f"Unknown payment_type: {payment_type}")

    source = data.get("source") or "NEW_SALE"
    if source not in PAYMENT_SOURCES:
        raise PaymentError(f"Unknown source: {source}")
    if source == "OLD_DEBT" and payment_type == PAYMENT_TYPE_DEBT:
        raise PaymentError("A debt cannot be repaid on credit")

    sale_id = optional_int(data.get("sale_id"), "sale_id")
    customer_id = optional_int(data.get("customer_id"), "customer_id")
    if sale_id is None and customer_id is None:
        raise PaymentError("sale_id or customer_id is required")

    return {
        "amount_uzs": amount_uzs,
        "amount_usd_cents": amount_usd_cents,
        "payment_type": payment_type,
        "source": source,
        "sale_id": sale_id,
        "customer_id": customer_id,
        "notes": data.get("notes"),
        "cash_register": data.get("cash_register"),
    }


def create_payment(actor, data: dict):
    """
    Record a payment and its ledger row in one transaction.

    Returns (payment, notifications).
    """
    clean = _validate(data)
    register_type = register_service.register_for_actor(actor, clean["cash_register"])
    operation_type = _OPERATION_FOR_SOURCE[clean["source"]]

    def _op():
        begin_immediate()

        customer_id = clean["customer_id"]
        if clean["sale_id"] is not None:
            sale = db.session.get(Sale, clean["sale_id"])
            if not sale:
                raise NotFoundError("Sale not found")
            if sale.status == "CANCELLED":
                raise PaymentError("Cannot take payment for a cancelled sale")
            if customer_id is None:
                customer_id = sale.customer_id

        if customer_id is not None and not db.session.get(Customer, customer_id):
            raise NotFoundError("Customer not found")

        payment = Payment(
            sale_id=clean["sale_id"],
            customer_id=customer_id,
            amount_uzs=clean["amount_uzs"],
            amount_usd_cents=clean["amount_usd_cents"],
            payment_type=clean["payment_type"],
            cash_register=register_type,
            source=clean["source"],
            notes=clean["notes"],
            received_by_user_id=actor.id,
        )
        db.session.add(payment)
        db.session.flush()

        on_credit = payment.payment_type == PAYMENT_TYPE_DEBT
        op = register_service.append_register_op(
            register_type=register_type,
            operation_type=operation_type,
            amount_uzs=0 if on_credit else payment.amount_uzs,
            amount_usd_cents=0 if on_credit else payment.amount_usd_cents,
            user_id=actor.id,
            description=f"Payment #{payment.id} (on credit)" if on_credit else f"Payment #{payment.id}",
            payment_id=payment.id,
        )

        db.session.commit()
        return payment, op

    payment, op = run_with_retry(_op)

    events = [
        notify(ROOM_BOSS, "cashRegister:updated", {
            "register_type": op.register_type,
            "operation_type": op.operation_type,
            "amount_uzs": op.amount_uzs,
            "amount_usd_cents": op.amount_usd_cents,
            "balance_uzs": op.balance_after_uzs,
            "balance_usd_cents": op.balance_after_usd_cents,
            "payment_id": payment.id,
        })
    ]
    return payment, events


def list_payments_for_customer(customer_id: int) -> list[Payment]:
    if not db.session.get(Customer, customer_id):
        raise NotFoundError("Customer not found")
    return (
        db.session.query(Payment)
        .filter(Payment.customer_id == customer_id)
        .order_by(Payment.id.desc())
        .all()
    )


def list_payments_for_sale(sale_id: int) -> list[Payment]:
    return (
        db.session.query(Payment)
        .filter(Payment.sale_id == sale_id)
        .order_by(Payment.id.asc())
        .all()
    )
