"""
Stock consistency tests.

Verifies:
- Transfers are all-or-nothing and cannot overdraw the source
- Write-offs are Owner-only and cannot drive stock negative
- Inventory checks snapshot without touching stock and apply exactly once
- Purchases increment stock and book exactly one expense
"""

from furnipos.extensions import db
from furnipos.models import CashRegisterOp, Expense, ExpenseCategory, StockMovement, Transfer

from conftest import put_stock, stock_of


# =============================================================================
# TRANSFERS
# =============================================================================


class TestTransfers:
    def test_moves_quantity(self, client, owner_headers, product, warehouse, second_warehouse):
        put_stock(product, warehouse, 5)

        resp = client.post("/api/warehouses/transfers", json={
            "product_id": product.id,
            "from_warehouse_id": warehouse.id,
            "to_warehouse_id": second_warehouse.id,
            "quantity": 5,
        }, headers=owner_headers)

        assert resp.status_code == 201, resp.json
        assert stock_of(product, warehouse) == 0
        assert stock_of(product, second_warehouse) == 5
        assert resp.json["transfer"]["quantity"] == 5

    def test_overdraw_changes_nothing(self, client, owner_headers, product, warehouse, second_warehouse):
        put_stock(product, warehouse, 5)

        resp = client.post("/api/warehouses/transfers", json={
            "product_id": product.id,
            "from_warehouse_id": warehouse.id,
            "to_warehouse_id": second_warehouse.id,
            "quantity": 6,
        }, headers=owner_headers)

        assert resp.status_code == 400
        assert resp.json["error"] == "Insufficient stock"
        assert stock_of(product, warehouse) == 5
        assert stock_of(product, second_warehouse) == 0
        assert db.session.query(Transfer).count() == 0

    def test_same_warehouse_is_400(self, client, owner_headers, stocked_product, warehouse):
        resp = client.post("/api/warehouses/transfers", json={
            "product_id": stocked_product.id,
            "from_warehouse_id": warehouse.id,
            "to_warehouse_id": warehouse.id,
            "quantity": 1,
        }, headers=owner_headers)
        assert resp.status_code == 400

    def test_cashier_cannot_transfer(self, client, sales_headers):
        resp = client.post("/api/warehouses/transfers", json={}, headers=sales_headers)
        assert resp.status_code == 403


# =============================================================================
# WRITE-OFF / RETURN / SET
# =============================================================================


class TestAdjustments:
    def test_write_off(self, client, owner_headers, stocked_product, warehouse):
        resp = client.post("/api/warehouses/write-off", json={
            "product_id": stocked_product.id,
            "warehouse_id": warehouse.id,
            "quantity": 4,
            "reason": "Water damage",
        }, headers=owner_headers)

        assert resp.status_code == 201
        assert resp.json["movement"]["quantity_after"] == 6
        assert stock_of(stocked_product, warehouse) == 6

    def test_write_off_cannot_go_negative(self, client, owner_headers, stocked_product, warehouse):
        resp = client.post("/api/warehouses/write-off", json={
            "product_id": stocked_product.id,
            "warehouse_id": warehouse.id,
            "quantity": 11,
        }, headers=owner_headers)

        assert resp.status_code == 400
        assert stock_of(stocked_product, warehouse) == 10
        assert db.session.query(StockMovement).count() == 0

    def test_return_is_not_bounded_by_stock_on_hand(self, client, owner_headers, stocked_product, warehouse):
        resp = client.post("/api/warehouses/return", json={
            "product_id": stocked_product.id,
            "warehouse_id": warehouse.id,
            "quantity": 1000,
        }, headers=owner_headers)

        assert resp.status_code == 201
        assert stock_of(stocked_product, warehouse) == 1010

    def test_oversized_return_is_400(self, client, owner_headers, stocked_product, warehouse):
        resp = client.post("/api/warehouses/return", json={
            "product_id": stocked_product.id,
            "warehouse_id": warehouse.id,
            "quantity": 10**20,
        }, headers=owner_headers)

        assert resp.status_code == 400
        assert stock_of(stocked_product, warehouse) == 10

    def test_set_stock(self, client, owner_headers, stocked_product, warehouse):
        resp = client.post("/api/warehouses/set-stock", json={
            "product_id": stocked_product.id,
            "warehouse_id": warehouse.id,
            "quantity": 3,
        }, headers=owner_headers)

        assert resp.status_code == 200
        assert stock_of(stocked_product, warehouse) == 3

    def test_negative_quantities_rejected(self, client, owner_headers, stocked_product, warehouse):
        resp = client.post("/api/warehouses/set-stock", json={
            "product_id": stocked_product.id,
            "warehouse_id": warehouse.id,
            "quantity": -1,
        }, headers=owner_headers)
        assert resp.status_code == 400

    def test_low_stock_listing(self, client, owner_headers, stocked_product, warehouse):
        stocked_product.min_stock_alert = 10
        db.session.commit()

        rows = client.get("/api/warehouses/stock?low_stock=true", headers=owner_headers).json["stock"]

        assert [row["product_id"] for row in rows] == [stocked_product.id]
        assert rows[0]["is_low"] is True


# =============================================================================
# INVENTORY CHECKS
# =============================================================================


class TestInventoryChecks:
    def _create(self, client, headers, product, warehouse, actual_qty):
        resp = client.post("/api/warehouses/inventory-checks", json={
            "warehouse_id": warehouse.id,
            "items": [{"product_id": product.id, "actual_qty": actual_qty}],
        }, headers=headers)
        assert resp.status_code == 201, resp.json
        return resp.json["inventory_check"]

    def test_draft_snapshots_difference(self, client, owner_headers, stocked_product, warehouse):
        check = self._create(client, owner_headers, stocked_product, warehouse, 8)

        assert check["status"] == "DRAFT"
        assert check["lines"][0]["expected_qty"] == 10
        assert check["lines"][0]["difference"] == -2
        assert stock_of(stocked_product, warehouse) == 10

    def test_apply_sets_counted_values(self, client, owner_headers, stocked_product, warehouse):
        check = self._create(client, owner_headers, stocked_product, warehouse, 8)

        resp = client.post(f"/api/warehouses/inventory-checks/{check['id']}/apply", headers=owner_headers)

        assert resp.status_code == 200
        assert resp.json["inventory_check"]["status"] == "COMPLETED"
        assert stock_of(stocked_product, warehouse) == 8

    def test_second_apply_is_rejected(self, client, owner_headers, stocked_product, warehouse):
        check = self._create(client, owner_headers, stocked_product, warehouse, 8)
        client.post(f"/api/warehouses/inventory-checks/{check['id']}/apply", headers=owner_headers)
        put_stock(stocked_product, warehouse, 12)

        resp = client.post(f"/api/warehouses/inventory-checks/{check['id']}/apply", headers=owner_headers)

        assert resp.status_code == 400
        assert resp.json["error"] == "Inventory check already completed"
        assert stock_of(stocked_product, warehouse) == 12

    def test_missing_check_is_404(self, client, owner_headers):
        assert client.post("/api/warehouses/inventory-checks/99/apply", headers=owner_headers).status_code == 404

    def test_duplicate_product_rejected(self, client, owner_headers, stocked_product, warehouse):
        resp = client.post("/api/warehouses/inventory-checks", json={
            "warehouse_id": warehouse.id,
            "items": [
                {"product_id": stocked_product.id, "actual_qty": 1},
                {"product_id": stocked_product.id, "actual_qty": 2},
            ],
        }, headers=owner_headers)
        assert resp.status_code == 400


# =============================================================================
# PURCHASES
# =============================================================================


class TestPurchases:
    def _purchase(self, client, headers, product, warehouse, price_uzs=20000):
        return client.post("/api/warehouses/purchases", json={
            "warehouse_id": warehouse.id,
            "items": [{"product_id": product.id, "quantity": 5, "price_uzs": price_uzs}],
        }, headers=headers)

    def test_increments_stock_and_books_expense(self, client, sales_headers, rate, product, warehouse):
        resp = self._purchase(client, sales_headers, product, warehouse)

        assert resp.status_code == 201, resp.json
        purchase = resp.json["purchase"]
        assert purchase["total_uzs"] == 100000
        assert purchase["document_number"] == "P-000001"
        assert stock_of(product, warehouse) == 5

        expense = db.session.get(Expense, purchase["expense_id"])
        assert expense.amount_uzs == 100000
        assert expense.category.name == "Stock intake"

        ops = db.session.query(CashRegisterOp).filter_by(operation_type="EXPENSE").all()
        assert len(ops) == 1
        assert ops[0].amount_uzs == -100000
        assert ops[0].expense_id == expense.id

    def test_stock_intake_category_is_reused(self, client, owner_headers, rate, product, warehouse):
        self._purchase(client, owner_headers, product, warehouse)
        self._purchase(client, owner_headers, product, warehouse)

        assert db.session.query(ExpenseCategory).filter_by(name="Stock intake").count() == 1
        assert db.session.query(Expense).count() == 2
        assert stock_of(product, warehouse) == 10

    def test_zero_total_books_no_expense(self, client, owner_headers, rate, product, warehouse):
        resp = self._purchase(client, owner_headers, product, warehouse, price_uzs=0)

        assert resp.status_code == 201
        assert resp.json["purchase"]["expense_id"] is None
        assert db.session.query(CashRegisterOp).count() == 0
        assert stock_of(product, warehouse) == 5

    def test_requires_exchange_rate(self, client, owner_headers, product, warehouse):
        resp = self._purchase(client, owner_headers, product, warehouse)
        assert resp.status_code == 400
        assert stock_of(product, warehouse) == 0

    def test_unknown_product_rolls_back(self, client, owner_headers, rate, product, warehouse):
        resp = client.post("/api/warehouses/purchases", json={
            "warehouse_id": warehouse.id,
            "items": [
                {"product_id": product.id, "quantity": 5, "price_uzs": 20000},
                {"product_id": 999, "quantity": 1, "price_uzs": 1000},
            ],
        }, headers=owner_headers)

        assert resp.status_code == 404
        assert stock_of(product, warehouse) == 0
        assert db.session.query(Expense).count() == 0
