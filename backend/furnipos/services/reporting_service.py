# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..errors import BadRequestError
from ..extensions import db
from ..models import Expense, Payment, Product, Sale, StockItem
from furnipos.time_utils import parse_iso_date
from .register_service import get_register_balances, REGISTER_TYPES
from .sales_service import SALE_STATUS_COMPLETED, SALE_TYPES


class ReportError(BadRequestError):
    """Raised when report generation fails."""


def _parse_range(date_from: str | None, date_to: str | None) -> tuple[date | None, date | None]:
    try:
        start = parse_iso_date(date_from)
        end = parse_iso_date(date_to)
    except ValueError:
        raise ReportError("Dates must be YYYY-MM-DD")
    if start and end and start > end:
        raise ReportError("date_from must be on or before date_to")
    return start, end


def _in_range(query, column, start: date | None, end: date | None):
    if start:
        query = query.filter(func.date(column) >= start.isoformat())
    if end:
        query = query.filter(func.date(column) <= end.isoformat())
    return query


def sales_summary(date_from: str | None = None, date_to: str | None = None) -> dict:
    """
    Completed sales by type, money in by register, money out by register.

    Completed sales are bucketed by completed_at; payments and expenses by
    created_at.
    """
    start, end = _parse_range(date_from, date_to)

    sales_query = db.session.query(
        Sale.sale_type,
        func.count(Sale.id).label("sales_count"),
        func.coalesce(func.sum(Sale.total_uzs), 0).label("total_uzs"),
        func.coalesce(func.sum(Sale.total_usd_cents), 0).label("total_usd_cents"),
    ).filter(Sale.status == SALE_STATUS_COMPLETED)
    sales_query = _in_range(sales_query, Sale.completed_at, start, end)
    sales_rows = {row.sale_type: row for row in sales_query.group_by(Sale.sale_type).all()}

    payments_query = db.session.query(
        Payment.cash_register,
        func.count(Payment.id).label("count"),
        func.coalesce(func.sum(Payment.amount_uzs), 0).label("amount_uzs"),
        func.coalesce(func.sum(Payment.amount_usd_cents), 0).label("amount_usd_cents"),
    )
    payments_query = _in_range(payments_query, Payment.created_at, start, end)
    payment_rows = {row.cash_register: row for row in payments_query.group_by(Payment.cash_register).all()}

    expenses_query = db.session.query(
        Expense.cash_register,
        func.count(Expense.id).label("count"),
        func.coalesce(func.sum(Expense.amount_uzs), 0).label("amount_uzs"),
        func.coalesce(func.sum(Expense.amount_usd_cents), 0).label("amount_usd_cents"),
    )
    expenses_query = _in_range(expenses_query, Expense.created_at, start, end)
    expense_rows = {row.cash_register: row for row in expenses_query.group_by(Expense.cash_register).all()}

    def _money(row, count_key):
        if row is None:
            return {count_key: 0, "amount_uzs": 0, "amount_usd_cents": 0}
        return {
            count_key: int(getattr(row, "count")),
            "amount_uzs": int(row.amount_uzs),
            "amount_usd_cents": int(row.amount_usd_cents),
        }

    sales = []
    for sale_type in SALE_TYPES:
        row = sales_rows.get(sale_type)
        sales.append({
            "sale_type": sale_type,
            "sales_count": int(row.sales_count) if row else 0,
            "total_uzs": int(row.total_uzs) if row else 0,
            "total_usd_cents": int(row.total_usd_cents) if row else 0,
        })

    return {
        "date_from": start.isoformat() if start else None,
        "date_to": end.isoformat() if end else None,
        "sales": sales,
        "payments": [
            {"cash_register": register, **_money(payment_rows.get(register), "payments_count")}
            for register in REGISTER_TYPES
        ],
        "expenses": [
            {"cash_register": register, **_money(expense_rows.get(register), "expenses_count")}
            for register in REGISTER_TYPES
        ],
        "balances": get_register_balances(),
    }


def inventory_valuation(warehouse_id: int | None = None) -> dict:
    """On-hand quantity x cost price per product."""
    query = db.session.query(
        Product.id,
        Product.sku,
        Product.name,
        Product.cost_price_uzs,
        Product.cost_price_usd_cents,
        func.coalesce(func.sum(StockItem.quantity), 0).label("quantity"),
    ).join(StockItem, StockItem.product_id == Product.id).filter(Product.is_active.is_(True))
    if warehouse_id is not None:
        query = query.filter(StockItem.warehouse_id == warehouse_id)

    rows = query.group_by(Product.id).order_by(Product.name.asc()).all()

    total_uzs = 0
    total_usd_cents = 0
    result_rows = []
    for row in rows:
        quantity = int(row.quantity)
        value_uzs = quantity * row.cost_price_uzs
        value_usd_cents = quantity * row.cost_price_usd_cents
        total_uzs += value_uzs
        total_usd_cents += value_usd_cents
        result_rows.append({
            "product_id": row.id,
            "sku": row.sku,
            "name": row.name,
            "quantity": quantity,
            "value_uzs": value_uzs,
            "value_usd_cents": value_usd_cents,
        })

    return {
        "warehouse_id": warehouse_id,
        "total_value_uzs": total_uzs,
        "total_value_usd_cents": total_usd_cents,
        "rows": result_rows,
    }
