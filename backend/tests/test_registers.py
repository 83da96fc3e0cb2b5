"""
Payment and cash register ledger tests.

Verifies:
- Every payment appends exactly one register op on the actor's register
- Balances are running totals stored on each op
- Expenses are negative ops
- Payment validation (amounts, references, cancelled sales)
"""

import pytest

from furnipos.extensions import db
from furnipos.models import CashRegisterOp, ExpenseCategory, Payment


@pytest.fixture
def rent_category(db_session):
    category = ExpenseCategory(name="Rent")
    db_session.add(category)
    db_session.commit()
    return category


def _ops(register_type=None):
    query = db.session.query(CashRegisterOp)
    if register_type:
        query = query.filter_by(register_type=register_type)
    return query.order_by(CashRegisterOp.id).all()


class TestPayments:
    def test_sales_cashier_pays_into_sales_register(self, client, sales_headers, customer):
        resp = client.post("/api/payments", json={
            "customer_id": customer.id,
            "amount_uzs": 100000,
            "source": "OLD_DEBT",
        }, headers=sales_headers)

        assert resp.status_code == 201, resp.json
        assert resp.json["payment"]["cash_register"] == "SALES"

        ops = _ops()
        assert len(ops) == 1
        assert ops[0].register_type == "SALES"
        assert ops[0].operation_type == "DEBT_PAYMENT"
        assert ops[0].payment_id == resp.json["payment"]["id"]

    def test_service_cashier_pays_into_service_register(self, client, service_headers, customer):
        resp = client.post("/api/payments", json={
            "customer_id": customer.id,
            "amount_uzs": 5000,
            "source": "OLD_DEBT",
        }, headers=service_headers)

        assert resp.status_code == 201
        assert resp.json["payment"]["cash_register"] == "SERVICE"
        assert _ops()[0].operation_type == "DEBT_PAYMENT"

    def test_cashier_cannot_pick_register(self, client, sales_headers, customer):
        resp = client.post("/api/payments", json={
            "customer_id": customer.id,
            "amount_uzs": 5000,
            "cash_register": "SERVICE",
        }, headers=sales_headers)

        assert resp.json["payment"]["cash_register"] == "SALES"

    def test_owner_may_pick_register(self, client, owner_headers, customer):
        resp = client.post("/api/payments", json={
            "customer_id": customer.id,
            "amount_uzs": 5000,
            "cash_register": "SERVICE",
        }, headers=owner_headers)

        assert resp.json["payment"]["cash_register"] == "SERVICE"
        assert _ops()[0].operation_type == "SALE_INCOME"

    def test_payment_inherits_sale_customer(self, client, sales_headers, rate, customer, stocked_product, warehouse):
        sale = client.post("/api/sales", json={
            "customer_id": customer.id,
            "warehouse_id": warehouse.id,
            "items": [{"product_id": stocked_product.id, "quantity": 1, "price_uzs": 50000}],
        }, headers=sales_headers).json["sale"]

        resp = client.post("/api/payments", json={"sale_id": sale["id"], "amount_uzs": 50000}, headers=sales_headers)

        assert resp.json["payment"]["customer_id"] == customer.id
        payments = client.get(f"/api/customers/{customer.id}/payments", headers=sales_headers).json["payments"]
        assert [p["amount_uzs"] for p in payments] == [50000]

    @pytest.mark.parametrize(
        "payload",
        [
            {"amount_uzs": 1000},
            {"customer_id": 1, "amount_uzs": 0},
            {"customer_id": 1, "amount_uzs": -5},
            {"customer_id": 1, "amount_uzs": 10.5},
            {"customer_id": 1, "amount_uzs": 10**13},
            {"customer_id": "abc", "amount_uzs": 1000},
            {"customer_id": 1, "amount_uzs": 1000, "source": "ADVANCE"},
            {"customer_id": 1, "amount_uzs": 1000, "source": "OLD_DEBT", "payment_type": "DEBT"},
            {"customer_id": 1, "amount_uzs": 1000, "payment_type": "BITCOIN"},
            {"customer_id": 1, "amount_uzs": 1000, "source": "GIFT"},
        ],
    )
    def test_invalid_payloads_are_400(self, client, sales_headers, customer, payload):
        resp = client.post("/api/payments", json=payload, headers=sales_headers)
        assert resp.status_code == 400
        assert _ops() == []

    def test_unknown_sale_is_404(self, client, sales_headers):
        resp = client.post("/api/payments", json={"sale_id": 77, "amount_uzs": 1000}, headers=sales_headers)
        assert resp.status_code == 404
        assert db.session.query(Payment).count() == 0

    def test_cancelled_sale_refuses_payment(self, client, sales_headers, rate, stocked_product, warehouse):
        sale = client.post("/api/sales", json={
            "warehouse_id": warehouse.id,
            "items": [{"product_id": stocked_product.id, "quantity": 1, "price_uzs": 50000}],
        }, headers=sales_headers).json["sale"]
        client.post(f"/api/sales/{sale['id']}/cancel", headers=sales_headers)

        resp = client.post("/api/payments", json={"sale_id": sale["id"], "amount_uzs": 50000}, headers=sales_headers)

        assert resp.status_code == 400
        assert _ops() == []


class TestRunningBalance:
    def test_payments_minus_expense(self, client, sales_headers, owner_headers, customer, rent_category):
        for amount in (60000, 40000):
            client.post("/api/payments", json={"customer_id": customer.id, "amount_uzs": amount}, headers=sales_headers)

        resp = client.post("/api/expenses", json={
            "category_id": rent_category.id,
            "amount_uzs": 30000,
            "description": "March rent",
        }, headers=sales_headers)
        assert resp.status_code == 201, resp.json

        ops = _ops("SALES")
        assert [op.amount_uzs for op in ops] == [60000, 40000, -30000]
        assert [op.balance_after_uzs for op in ops] == [60000, 100000, 70000]

        registers = client.get("/api/registers", headers=owner_headers).json["registers"]
        balances = {r["register_type"]: r["balance_uzs"] for r in registers}
        assert balances == {"SALES": 70000, "SERVICE": 0}

    def test_debt_payment_leaves_balance_unchanged(self, client, sales_headers, customer):
        client.post("/api/payments", json={"customer_id": customer.id, "amount_uzs": 20000}, headers=sales_headers)

        resp = client.post("/api/payments", json={
            "customer_id": customer.id,
            "amount_uzs": 80000,
            "payment_type": "DEBT",
        }, headers=sales_headers)

        assert resp.status_code == 201, resp.json
        assert resp.json["payment"]["amount_uzs"] == 80000

        ops = _ops("SALES")
        assert len(ops) == 2
        assert ops[1].payment_id == resp.json["payment"]["id"]
        assert ops[1].amount_uzs == 0
        assert ops[1].balance_after_uzs == 20000

        balance = client.get("/api/registers", headers=sales_headers).json["registers"]
        assert {r["register_type"]: r["balance_uzs"] for r in balance}["SALES"] == 20000

    def test_registers_are_independent(self, client, sales_headers, service_headers, customer):
        client.post("/api/payments", json={"customer_id": customer.id, "amount_uzs": 1000}, headers=sales_headers)
        client.post("/api/payments", json={"customer_id": customer.id, "amount_uzs": 250}, headers=service_headers)

        assert _ops("SALES")[-1].balance_after_uzs == 1000
        assert _ops("SERVICE")[-1].balance_after_uzs == 250

    def test_ops_listing_newest_first(self, client, owner_headers, customer):
        for amount in (1, 2, 3):
            client.post("/api/payments", json={"customer_id": customer.id, "amount_uzs": amount}, headers=owner_headers)

        ops = client.get("/api/registers/ops?register_type=SALES", headers=owner_headers).json["operations"]

        assert [op["amount_uzs"] for op in ops] == [3, 2, 1]
        assert ops[0]["balance_after_uzs"] == 6


class TestExpenses:
    def test_expense_requires_description(self, client, sales_headers, rent_category):
        resp = client.post("/api/expenses", json={
            "category_id": rent_category.id,
            "amount_uzs": 1000,
        }, headers=sales_headers)
        assert resp.status_code == 400
        assert _ops() == []

    def test_cashier_sees_only_own_expenses(
        self, client, sales_headers, service_headers, owner_headers, rent_category
    ):
        for headers in (sales_headers, service_headers):
            client.post("/api/expenses", json={
                "category_id": rent_category.id,
                "amount_uzs": 1000,
                "description": "Tea",
            }, headers=headers)

        own = client.get("/api/expenses", headers=sales_headers).json["expenses"]
        everything = client.get("/api/expenses", headers=owner_headers).json["expenses"]

        assert len(own) == 1
        assert own[0]["cash_register"] == "SALES"
        assert len(everything) == 2

    @pytest.mark.parametrize("query", ["limit=abc", "category_id=x1", "limit=2.5"])
    def test_malformed_expense_filters_are_400(self, client, owner_headers, query):
        resp = client.get(f"/api/expenses?{query}", headers=owner_headers)
        assert resp.status_code == 400
        assert "error" in resp.json

    def test_expense_over_ceiling_is_400(self, client, owner_headers, rent_category):
        resp = client.post("/api/expenses", json={
            "category_id": rent_category.id,
            "amount_uzs": 10**13,
            "description": "Typo",
        }, headers=owner_headers)
        assert resp.status_code == 400
        assert _ops() == []

    def test_only_owner_creates_categories(self, client, sales_headers, owner_headers):
        denied = client.post("/api/expense-categories", json={"name": "Fuel"}, headers=sales_headers)
        created = client.post("/api/expense-categories", json={"name": "Fuel"}, headers=owner_headers)
        duplicate = client.post("/api/expense-categories", json={"name": "Fuel"}, headers=owner_headers)

        assert denied.status_code == 403
        assert created.status_code == 201
        assert duplicate.status_code == 409
