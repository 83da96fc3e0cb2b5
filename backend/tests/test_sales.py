"""
Sale workflow tests.

Verifies:
- Totals are price x quantity summed per currency
- Non-owners cannot sell below the product floor; the Owner can
- Completion decrements stock exactly once and rejects negative stock
- Low-stock alerts fire at or below a non-zero threshold only
- Workshop routing spawns exactly one task
"""

import pytest

from furnipos.extensions import db
from furnipos.models import Sale, WorkshopTask
from furnipos.permissions import Role
from furnipos.services import notification_service
from furnipos.services.auth_service import create_user

from conftest import PASSWORD, auth_headers, get_auth_token, put_stock, stock_of


def _product_sale(product, warehouse, quantity=3, price_uzs=50000, **extra):
    payload = {
        "sale_type": "PRODUCT",
        "warehouse_id": warehouse.id,
        "items": [{
            "product_id": product.id,
            "quantity": quantity,
            "price_uzs": price_uzs,
            "price_usd_cents": 400,
        }],
    }
    payload.update(extra)
    return payload


@pytest.fixture
def captured():
    """Record every notification delivered to any room."""
    received = []

    def _collect(room, event, payload):
        received.append((room, event, payload))

    for room in notification_service.ALL_ROOMS:
        notification_service.subscribe(room, _collect)
    return received


# =============================================================================
# CREATE
# =============================================================================


class TestCreateSale:
    def test_totals_are_line_sums(self, client, sales_headers, rate, stocked_product, warehouse):
        resp = client.post("/api/sales", json=_product_sale(stocked_product, warehouse), headers=sales_headers)

        assert resp.status_code == 201, resp.json
        sale = resp.json["sale"]
        assert sale["status"] == "OPEN"
        assert sale["total_uzs"] == 150000
        assert sale["total_usd_cents"] == 1200
        assert sale["exchange_rate"] == 12650.0
        assert sale["document_number"] == "S-000001"
        assert sale["lines"][0]["total_uzs"] == 150000

    def test_mixed_lines_sum_independently(self, client, owner_headers, rate, stocked_product, warehouse):
        resp = client.post("/api/sales", json={
            "sale_type": "PRODUCT",
            "warehouse_id": warehouse.id,
            "items": [
                {"product_id": stocked_product.id, "quantity": 2, "price_uzs": 50000, "price_usd_cents": 400},
                {"service_name": "Cutting", "quantity": 4, "price_uzs": 5000, "assigned_to_id": None},
            ],
        }, headers=owner_headers)

        assert resp.status_code == 201
        assert resp.json["sale"]["total_uzs"] == 120000
        assert resp.json["sale"]["total_usd_cents"] == 800

    @pytest.mark.parametrize(
        "quantity,price_uzs",
        [(10**20, 50000), (999_999, 999_999_999_999)],
    )
    def test_oversized_quantity_or_total_is_400(
        self, client, owner_headers, rate, stocked_product, warehouse, quantity, price_uzs
    ):
        resp = client.post(
            "/api/sales",
            json=_product_sale(stocked_product, warehouse, quantity=quantity, price_uzs=price_uzs),
            headers=owner_headers,
        )

        assert resp.status_code == 400
        assert db.session.query(Sale).count() == 0

    def test_document_numbers_increase(self, client, sales_headers, rate, stocked_product, warehouse):
        first = client.post("/api/sales", json=_product_sale(stocked_product, warehouse), headers=sales_headers)
        second = client.post("/api/sales", json=_product_sale(stocked_product, warehouse), headers=sales_headers)
        assert first.json["sale"]["document_number"] == "S-000001"
        assert second.json["sale"]["document_number"] == "S-000002"

    def test_requires_exchange_rate(self, client, sales_headers, stocked_product, warehouse):
        resp = client.post("/api/sales", json=_product_sale(stocked_product, warehouse), headers=sales_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "No exchange rate set"
        assert db.session.query(Sale).count() == 0

    def test_requires_lines(self, client, sales_headers, rate):
        resp = client.post("/api/sales", json={"sale_type": "PRODUCT", "items": []}, headers=sales_headers)
        assert resp.status_code == 400

    def test_unknown_product_is_404(self, client, sales_headers, rate, warehouse):
        resp = client.post("/api/sales", json={
            "warehouse_id": warehouse.id,
            "items": [{"product_id": 999, "quantity": 1, "price_uzs": 1000}],
        }, headers=sales_headers)
        assert resp.status_code == 404

    def test_emits_sale_created(self, client, sales_headers, rate, stocked_product, warehouse, captured):
        client.post("/api/sales", json=_product_sale(stocked_product, warehouse), headers=sales_headers)

        created = [(room, event) for room, event, _ in captured if event == "sale:created"]
        assert sorted(created) == [("room:boss", "sale:created"), ("room:sales", "sale:created")]
        assert not [event for _, event, _ in captured if event == "workshop:newTask"]


class TestPriceFloor:
    def test_cashier_below_floor_is_403(self, client, sales_headers, rate, stocked_product, warehouse):
        resp = client.post(
            "/api/sales",
            json=_product_sale(stocked_product, warehouse, price_uzs=40000),
            headers=sales_headers,
        )

        assert resp.status_code == 403
        assert "MDF Board 18mm" in resp.json["error"]
        assert "45000" in resp.json["error"]
        assert db.session.query(Sale).count() == 0

    def test_cashier_at_floor_is_allowed(self, client, sales_headers, rate, stocked_product, warehouse):
        resp = client.post(
            "/api/sales",
            json=_product_sale(stocked_product, warehouse, price_uzs=45000),
            headers=sales_headers,
        )
        assert resp.status_code == 201

    def test_owner_may_sell_below_floor(self, client, owner_headers, rate, stocked_product, warehouse):
        resp = client.post(
            "/api/sales",
            json=_product_sale(stocked_product, warehouse, price_uzs=40000),
            headers=owner_headers,
        )
        assert resp.status_code == 201
        assert resp.json["sale"]["total_uzs"] == 120000

    def test_price_below_min_permission_lifts_floor(self, client, db_session, rate, stocked_product, warehouse):
        create_user(
            username="senior",
            password=PASSWORD,
            full_name="Senior Cashier",
            role=Role.CASHIER_SALES,
            custom_permissions=["sale:product", "product:price_below_min"],
        )
        headers = auth_headers(get_auth_token(client, "senior", PASSWORD))

        resp = client.post(
            "/api/sales",
            json=_product_sale(stocked_product, warehouse, price_uzs=40000),
            headers=headers,
        )

        assert resp.status_code == 201, resp.json
        assert resp.json["sale"]["total_uzs"] == 120000


class TestWorkshopRouting:
    def test_unassigned_service_line_spawns_task(
        self, client, service_headers, rate, captured
    ):
        resp = client.post("/api/sales", json={
            "sale_type": "SERVICE",
            "items": [{"service_name": "Edge banding", "quantity": 10, "price_uzs": 3000}],
        }, headers=service_headers)

        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["goes_to_workshop"] is True
        assert sale["workshop_status"] == "PENDING"
        assert len(sale["workshop_tasks"]) == 1
        assert [room for room, event, _ in captured if event == "workshop:newTask"] == ["room:workshop"]

    def test_assigned_service_line_does_not_route(self, client, service_headers, rate, master_user):
        resp = client.post("/api/sales", json={
            "sale_type": "SERVICE",
            "items": [{
                "service_name": "Edge banding",
                "quantity": 1,
                "price_uzs": 3000,
                "assigned_to_id": master_user.id,
            }],
        }, headers=service_headers)

        assert resp.status_code == 201
        assert resp.json["sale"]["goes_to_workshop"] is False
        assert db.session.query(WorkshopTask).count() == 0

    def test_flag_routes_with_assignee(self, client, sales_headers, rate, stocked_product, warehouse, master_user):
        resp = client.post(
            "/api/sales",
            json=_product_sale(stocked_product, warehouse, goes_to_workshop=True, assigned_to_id=master_user.id),
            headers=sales_headers,
        )

        assert resp.status_code == 201
        tasks = resp.json["sale"]["workshop_tasks"]
        assert len(tasks) == 1
        assert tasks[0]["assigned_to_id"] == master_user.id


# =============================================================================
# COMPLETE / CANCEL
# =============================================================================


def _create(client, headers, product, warehouse, quantity=3):
    resp = client.post("/api/sales", json=_product_sale(product, warehouse, quantity=quantity), headers=headers)
    assert resp.status_code == 201, resp.json
    return resp.json["sale"]["id"]


class TestCompleteSale:
    def test_decrements_stock(self, client, sales_headers, rate, stocked_product, warehouse):
        sale_id = _create(client, sales_headers, stocked_product, warehouse)

        resp = client.post(f"/api/sales/{sale_id}/complete", headers=sales_headers)

        assert resp.status_code == 200
        assert resp.json["sale"]["status"] == "COMPLETED"
        assert resp.json["sale"]["completed_at"] is not None
        assert stock_of(stocked_product, warehouse) == 7

    def test_second_completion_is_rejected(self, client, sales_headers, rate, stocked_product, warehouse):
        sale_id = _create(client, sales_headers, stocked_product, warehouse)
        client.post(f"/api/sales/{sale_id}/complete", headers=sales_headers)

        resp = client.post(f"/api/sales/{sale_id}/complete", headers=sales_headers)

        assert resp.status_code == 400
        assert resp.json["error"] == "Sale already finalized"
        assert stock_of(stocked_product, warehouse) == 7

    def test_insufficient_stock_rejects_whole_completion(
        self, client, sales_headers, rate, product, warehouse
    ):
        put_stock(product, warehouse, 2)
        sale_id = _create(client, sales_headers, product, warehouse)

        resp = client.post(f"/api/sales/{sale_id}/complete", headers=sales_headers)

        assert resp.status_code == 400
        assert resp.json["details"]["lines"][0]["available"] == 2
        assert stock_of(product, warehouse) == 2
        assert db.session.get(Sale, sale_id).status == "OPEN"

    def test_two_lines_of_one_product_are_checked_together(
        self, client, sales_headers, rate, product, warehouse
    ):
        put_stock(product, warehouse, 5)
        line = {"product_id": product.id, "quantity": 3, "price_uzs": 50000}
        resp = client.post("/api/sales", json={
            "warehouse_id": warehouse.id,
            "items": [line, dict(line)],
        }, headers=sales_headers)

        complete = client.post(f"/api/sales/{resp.json['sale']['id']}/complete", headers=sales_headers)

        assert complete.status_code == 400
        assert stock_of(product, warehouse) == 5

    def test_missing_sale_is_404(self, client, sales_headers):
        assert client.post("/api/sales/404/complete", headers=sales_headers).status_code == 404

    def test_low_stock_alert_at_threshold(
        self, client, sales_headers, rate, stocked_product, warehouse, captured
    ):
        stocked_product.min_stock_alert = 8
        db.session.commit()
        sale_id = _create(client, sales_headers, stocked_product, warehouse)

        client.post(f"/api/sales/{sale_id}/complete", headers=sales_headers)

        low = [payload for room, event, payload in captured if event == "stock:low"]
        assert len(low) == 1
        assert low[0]["quantity"] == 7
        assert low[0]["product_id"] == stocked_product.id

    def test_zero_threshold_never_alerts(
        self, client, sales_headers, rate, stocked_product, warehouse, captured
    ):
        sale_id = _create(client, sales_headers, stocked_product, warehouse, quantity=10)

        client.post(f"/api/sales/{sale_id}/complete", headers=sales_headers)

        assert stock_of(stocked_product, warehouse) == 0
        assert not [event for _, event, _ in captured if event == "stock:low"]

    def test_completed_event_carries_both_totals(
        self, client, sales_headers, rate, stocked_product, warehouse, captured
    ):
        sale_id = _create(client, sales_headers, stocked_product, warehouse)
        client.post(f"/api/sales/{sale_id}/complete", headers=sales_headers)

        completed = [payload for room, event, payload in captured if event == "sale:completed"]
        assert completed[0]["total"] == {"uzs": 150000, "usd_cents": 1200}


class TestCancelSale:
    def test_cancel_has_no_stock_effect(self, client, sales_headers, rate, stocked_product, warehouse):
        sale_id = _create(client, sales_headers, stocked_product, warehouse)

        resp = client.post(f"/api/sales/{sale_id}/cancel", headers=sales_headers)

        assert resp.status_code == 200
        assert resp.json["sale"]["status"] == "CANCELLED"
        assert stock_of(stocked_product, warehouse) == 10

    def test_cancelled_sale_cannot_complete_or_cancel(
        self, client, sales_headers, rate, stocked_product, warehouse
    ):
        sale_id = _create(client, sales_headers, stocked_product, warehouse)
        client.post(f"/api/sales/{sale_id}/cancel", headers=sales_headers)

        assert client.post(f"/api/sales/{sale_id}/complete", headers=sales_headers).status_code == 400
        assert client.post(f"/api/sales/{sale_id}/cancel", headers=sales_headers).status_code == 400
        assert stock_of(stocked_product, warehouse) == 10

    def test_completed_sale_cannot_be_cancelled(self, client, sales_headers, rate, stocked_product, warehouse):
        sale_id = _create(client, sales_headers, stocked_product, warehouse)
        client.post(f"/api/sales/{sale_id}/complete", headers=sales_headers)

        resp = client.post(f"/api/sales/{sale_id}/cancel", headers=sales_headers)

        assert resp.status_code == 400
        assert stock_of(stocked_product, warehouse) == 7


class TestListSales:
    def test_cashier_sees_only_own_register_type(
        self, client, sales_headers, service_headers, owner_headers, rate, stocked_product, warehouse
    ):
        _create(client, sales_headers, stocked_product, warehouse)
        client.post("/api/sales", json={
            "sale_type": "SERVICE",
            "items": [{"service_name": "Drilling", "quantity": 1, "price_uzs": 2000}],
        }, headers=service_headers)

        sales_view = client.get("/api/sales", headers=sales_headers).json
        service_view = client.get("/api/sales?sale_type=PRODUCT", headers=service_headers).json
        owner_view = client.get("/api/sales", headers=owner_headers).json

        assert [s["sale_type"] for s in sales_view["sales"]] == ["PRODUCT"]
        assert [s["sale_type"] for s in service_view["sales"]] == ["SERVICE"]
        assert owner_view["total"] == 2

    def test_status_filter(self, client, owner_headers, rate, stocked_product, warehouse):
        first = _create(client, owner_headers, stocked_product, warehouse)
        _create(client, owner_headers, stocked_product, warehouse)
        client.post(f"/api/sales/{first}/complete", headers=owner_headers)

        resp = client.get("/api/sales?status=COMPLETED", headers=owner_headers)

        assert [s["id"] for s in resp.json["sales"]] == [first]

    def test_bad_status_is_400(self, client, owner_headers):
        assert client.get("/api/sales?status=LOST", headers=owner_headers).status_code == 400

    def test_get_sale_includes_payments(self, client, sales_headers, rate, stocked_product, warehouse):
        sale_id = _create(client, sales_headers, stocked_product, warehouse)
        client.post("/api/payments", json={"sale_id": sale_id, "amount_uzs": 100000}, headers=sales_headers)

        sale = client.get(f"/api/sales/{sale_id}", headers=sales_headers).json["sale"]

        assert sale["paid_uzs"] == 100000
        assert len(sale["payments"]) == 1
