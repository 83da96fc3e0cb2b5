"""
Catalog, exchange rate, report and system endpoint tests.
"""

import pytest

from furnipos.extensions import db
from furnipos.models import ExchangeRate, NotificationEvent, Product
from furnipos.permissions import Role
from furnipos.services.auth_service import create_user

from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProducts:
    def test_sku_is_auto_numbered(self, client, owner_headers):
        first = client.post("/api/products", json={"name": "Chipboard 16mm", "sell_price_uzs": 38000}, headers=owner_headers)
        second = client.post("/api/products", json={"name": "Edge tape 2mm"}, headers=owner_headers)

        assert first.status_code == 201, first.json
        assert first.json["product"]["sku"] == "000001"
        assert second.json["product"]["sku"] == "000002"

    def test_explicit_sku_conflict_is_409(self, client, owner_headers, product):
        resp = client.post("/api/products", json={"name": "Copy", "sku": product.sku}, headers=owner_headers)
        assert resp.status_code == 409

    def test_unknown_field_rejected(self, client, owner_headers):
        resp = client.post("/api/products", json={"name": "X", "colour": "red"}, headers=owner_headers)
        assert resp.status_code == 400

    def test_search(self, client, sales_headers, product):
        found = client.get("/api/products?search=mdf", headers=sales_headers).json["products"]
        missing = client.get("/api/products?search=glass", headers=sales_headers).json["products"]

        assert [p["id"] for p in found] == [product.id]
        assert missing == []

    def test_soft_delete_hides_from_list(self, client, owner_headers, product):
        assert client.delete(f"/api/products/{product.id}", headers=owner_headers).status_code == 200

        listed = client.get("/api/products", headers=owner_headers).json["products"]
        assert listed == []
        assert db.session.get(Product, product.id).is_active is False

    def test_revalue(self, client, owner_headers, product):
        resp = client.post(f"/api/products/{product.id}/revalue", json={
            "cost_price_uzs": 32000,
            "cost_price_usd_cents": 250,
        }, headers=owner_headers)

        assert resp.status_code == 200
        assert resp.json["product"]["cost_price_uzs"] == 32000


class TestLockedProducts:
    @pytest.fixture
    def editor_headers(self, client, db_session):
        create_user(
            username="editor",
            password=PASSWORD,
            full_name="Catalog Editor",
            role=Role.CASHIER_SALES,
            custom_permissions=["product:read", "product:update"],
        )
        return auth_headers(get_auth_token(client, "editor", PASSWORD))

    def test_non_owner_cannot_edit_locked(self, client, editor_headers, product):
        product.is_locked = True
        db.session.commit()

        resp = client.patch(f"/api/products/{product.id}", json={"name": "Renamed"}, headers=editor_headers)

        assert resp.status_code == 403
        assert db.session.get(Product, product.id).name == "MDF Board 18mm"

    def test_non_owner_cannot_lock(self, client, editor_headers, product):
        resp = client.patch(f"/api/products/{product.id}", json={"is_locked": True}, headers=editor_headers)
        assert resp.status_code == 403

    def test_non_owner_edits_unlocked(self, client, editor_headers, product):
        resp = client.patch(f"/api/products/{product.id}", json={"sell_price_uzs": 52000}, headers=editor_headers)
        assert resp.status_code == 200
        assert resp.json["product"]["sell_price_uzs"] == 52000

    def test_owner_edits_locked(self, client, owner_headers, product):
        product.is_locked = True
        db.session.commit()

        resp = client.patch(f"/api/products/{product.id}", json={"name": "MDF Board 18mm Premium"}, headers=owner_headers)
        assert resp.status_code == 200


class TestCategoriesAndWarehouses:
    def test_owner_creates_category(self, client, owner_headers, sales_headers):
        created = client.post("/api/categories", json={"name": "Boards"}, headers=owner_headers)
        denied = client.post("/api/categories", json={"name": "Fittings"}, headers=sales_headers)

        assert created.status_code == 201
        assert denied.status_code == 403
        names = [c["name"] for c in client.get("/api/categories", headers=sales_headers).json["categories"]]
        assert names == ["Boards"]

    def test_owner_creates_warehouse(self, client, owner_headers, sales_headers):
        assert client.post("/api/warehouses", json={"name": "Yunusobod"}, headers=owner_headers).status_code == 201
        assert client.post("/api/warehouses", json={"name": "Other"}, headers=sales_headers).status_code == 403
        assert client.post("/api/warehouses", json={"name": "Yunusobod"}, headers=owner_headers).status_code == 409


# =============================================================================
# CUSTOMERS / SUPPLIERS
# =============================================================================


class TestCustomers:
    def test_crud(self, client, sales_headers, owner_headers):
        created = client.post("/api/customers", json={"full_name": "Sardor Aliev", "phone": "+998935550101"}, headers=sales_headers)
        assert created.status_code == 201
        customer_id = created.json["customer"]["id"]

        updated = client.patch(f"/api/customers/{customer_id}", json={"notes": "Prefers delivery"}, headers=sales_headers)
        assert updated.json["customer"]["notes"] == "Prefers delivery"

        # Cashiers lack customer:delete
        assert client.delete(f"/api/customers/{customer_id}", headers=sales_headers).status_code == 403
        assert client.delete(f"/api/customers/{customer_id}", headers=owner_headers).status_code == 200
        assert client.get(f"/api/customers/{customer_id}", headers=owner_headers).status_code == 404

    def test_search_and_pagination(self, client, sales_headers, customer):
        resp = client.get("/api/customers?search=malika&limit=10", headers=sales_headers)

        assert resp.json["total"] == 1
        assert resp.json["limit"] == 10
        assert resp.json["customers"][0]["id"] == customer.id

    def test_full_name_required(self, client, sales_headers):
        assert client.post("/api/customers", json={"phone": "1"}, headers=sales_headers).status_code == 400


class TestSuppliers:
    def test_sales_cashier_creates_supplier(self, client, sales_headers, service_headers):
        created = client.post("/api/suppliers", json={"name": "Kronospan Tashkent"}, headers=sales_headers)
        denied = client.post("/api/suppliers", json={"name": "Egger"}, headers=service_headers)

        assert created.status_code == 201
        assert denied.status_code == 403
        assert len(client.get("/api/suppliers", headers=sales_headers).json["suppliers"]) == 1


# =============================================================================
# EXCHANGE RATES
# =============================================================================


class TestCurrency:
    def test_set_and_read_today(self, client, sales_headers):
        resp = client.post("/api/currency/rate", json={"rate": "12700.50"}, headers=sales_headers)

        assert resp.status_code == 200
        today = client.get("/api/currency/today").json["rate"]
        assert today["rate"] == 12700.5

    def test_second_set_updates_same_day(self, client, owner_headers):
        client.post("/api/currency/rate", json={"rate": 12600}, headers=owner_headers)
        client.post("/api/currency/rate", json={"rate": 12650}, headers=owner_headers)

        assert db.session.query(ExchangeRate).count() == 1
        history = client.get("/api/currency/history", headers=owner_headers).json["rates"]
        assert [r["rate"] for r in history] == [12650.0]

    @pytest.mark.parametrize("value", [0, -1, "abc", None])
    def test_rate_must_be_positive(self, client, owner_headers, value):
        resp = client.post("/api/currency/rate", json={"rate": value}, headers=owner_headers)
        assert resp.status_code == 400

    def test_rate_change_is_broadcast(self, client, owner_headers):
        client.post("/api/currency/rate", json={"rate": 12650}, headers=owner_headers)

        rooms = sorted(e.room for e in db.session.query(NotificationEvent).filter_by(event="currency:rateChanged"))
        assert rooms == ["room:boss", "room:sales", "room:service"]


# =============================================================================
# REPORTS
# =============================================================================


class TestReports:
    def test_sales_summary(self, client, owner_headers, rate, stocked_product, warehouse, customer):
        sale = client.post("/api/sales", json={
            "warehouse_id": warehouse.id,
            "items": [{"product_id": stocked_product.id, "quantity": 3, "price_uzs": 50000}],
        }, headers=owner_headers).json["sale"]
        client.post(f"/api/sales/{sale['id']}/complete", headers=owner_headers)
        client.post("/api/sales", json={
            "warehouse_id": warehouse.id,
            "items": [{"product_id": stocked_product.id, "quantity": 1, "price_uzs": 50000}],
        }, headers=owner_headers)
        client.post("/api/payments", json={"sale_id": sale["id"], "amount_uzs": 150000}, headers=owner_headers)

        report = client.get("/api/reports/sales-summary", headers=owner_headers).json

        by_type = {row["sale_type"]: row for row in report["sales"]}
        assert by_type["PRODUCT"]["sales_count"] == 1
        assert by_type["PRODUCT"]["total_uzs"] == 150000
        assert by_type["SERVICE"]["sales_count"] == 0
        payments = {row["cash_register"]: row for row in report["payments"]}
        assert payments["SALES"]["amount_uzs"] == 150000

    def test_bad_range_is_400(self, client, owner_headers):
        resp = client.get("/api/reports/sales-summary?date_from=2026-05-02&date_to=2026-05-01", headers=owner_headers)
        assert resp.status_code == 400

    def test_inventory_valuation(self, client, owner_headers, stocked_product, warehouse):
        report = client.get(f"/api/reports/inventory-valuation?warehouse_id={warehouse.id}", headers=owner_headers).json

        assert report["total_value_uzs"] == 10 * 30000
        assert report["rows"][0]["quantity"] == 10


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystem:
    def test_health_without_rate_is_degraded(self, client, owner):
        resp = client.get("/api/health")

        assert resp.status_code == 200
        assert resp.json["status"] == "degraded"
        assert resp.json["checks"]["exchange_rate"]["warning"] == "No exchange rate set"

    def test_health_ok(self, client, owner, rate):
        resp = client.get("/api/health")

        assert resp.json["status"] == "healthy"
        assert len(resp.json["checks"]["cash_registers"]["details"]) == 2

    def test_version(self, client):
        assert client.get("/api/version").json["api_version"] == "1.0.0"

    def test_cors_for_dev_origin(self, client):
        resp = client.get("/api/version", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
