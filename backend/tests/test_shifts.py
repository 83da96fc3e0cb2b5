"""
Cashier shift tests.

Verifies:
- One OPEN shift per user
- Closing is blocked while the closing user has OPEN sales
- Shift events reach the boss room
"""

import pytest

from furnipos.extensions import db
from furnipos.models import NotificationEvent, Shift


def _open(client, headers, **overrides):
    payload = {"exchange_rate": 12650, "opening_balance_uzs": 500000}
    payload.update(overrides)
    return client.post("/api/shifts/open", json=payload, headers=headers)


class TestOpenShift:
    def test_open_and_read_current(self, client, sales_headers, sales_cashier):
        assert client.get("/api/shifts/current", headers=sales_headers).json["shift"] is None

        resp = _open(client, sales_headers)

        assert resp.status_code == 201, resp.json
        shift = resp.json["shift"]
        assert shift["status"] == "OPEN"
        assert shift["user_id"] == sales_cashier.id
        assert shift["exchange_rate"] == 12650.0
        assert shift["opening_balance_uzs"] == 500000
        assert shift["opening_balance_usd_cents"] == 0
        assert shift["closed_at"] is None

        current = client.get("/api/shifts/current", headers=sales_headers).json["shift"]
        assert current["id"] == shift["id"]

    def test_second_open_shift_is_400(self, client, sales_headers):
        _open(client, sales_headers)

        resp = _open(client, sales_headers)

        assert resp.status_code == 400
        assert db.session.query(Shift).count() == 1

    def test_shifts_are_per_user(self, client, sales_headers, service_headers):
        assert _open(client, sales_headers).status_code == 201
        assert _open(client, service_headers).status_code == 201

    @pytest.mark.parametrize(
        "overrides",
        [
            {"exchange_rate": 0},
            {"exchange_rate": -1},
            {"exchange_rate": "abc"},
            {"exchange_rate": None},
            {"opening_balance_uzs": -1},
            {"opening_balance_usd_cents": 1.5},
        ],
    )
    def test_invalid_open_is_400(self, client, sales_headers, overrides):
        resp = _open(client, sales_headers, **overrides)
        assert resp.status_code == 400
        assert db.session.query(Shift).count() == 0

    def test_open_notifies_boss(self, client, sales_headers, sales_cashier):
        shift_id = _open(client, sales_headers).json["shift"]["id"]

        events = db.session.query(NotificationEvent).filter_by(room="room:boss", event="shift:opened").all()

        assert len(events) == 1
        assert events[0].payload == {"user_id": sales_cashier.id, "shift_id": shift_id}

    def test_master_has_no_shift(self, client, master_headers):
        assert _open(client, master_headers).status_code == 403


class TestCloseShift:
    def test_close_sets_status_and_time(self, client, sales_headers):
        shift_id = _open(client, sales_headers).json["shift"]["id"]

        resp = client.post(f"/api/shifts/{shift_id}/close", headers=sales_headers)

        assert resp.status_code == 200, resp.json
        assert resp.json["shift"]["status"] == "CLOSED"
        assert resp.json["shift"]["closed_at"] is not None
        assert client.get("/api/shifts/current", headers=sales_headers).json["shift"] is None
        assert db.session.query(NotificationEvent).filter_by(event="shift:closed").count() == 1

    def test_missing_shift_is_404(self, client, sales_headers):
        assert client.post("/api/shifts/999/close", headers=sales_headers).status_code == 404

    def test_open_sales_block_close(self, client, sales_headers, rate, stocked_product, warehouse):
        shift_id = _open(client, sales_headers).json["shift"]["id"]
        for _ in range(2):
            client.post("/api/sales", json={
                "warehouse_id": warehouse.id,
                "items": [{"product_id": stocked_product.id, "quantity": 1, "price_uzs": 50000}],
            }, headers=sales_headers)

        resp = client.post(f"/api/shifts/{shift_id}/close", headers=sales_headers)

        assert resp.status_code == 400
        assert resp.json["error"].startswith("2 open sales")
        assert db.session.get(Shift, shift_id).status == "OPEN"

    def test_closed_shift_cannot_close_again(self, client, sales_headers):
        shift_id = _open(client, sales_headers).json["shift"]["id"]
        client.post(f"/api/shifts/{shift_id}/close", headers=sales_headers)

        resp = client.post(f"/api/shifts/{shift_id}/close", headers=sales_headers)

        assert resp.status_code == 400

    def test_cashier_cannot_close_someone_elses_shift(self, client, sales_headers, service_headers):
        shift_id = _open(client, sales_headers).json["shift"]["id"]

        resp = client.post(f"/api/shifts/{shift_id}/close", headers=service_headers)

        assert resp.status_code == 403
        assert db.session.get(Shift, shift_id).status == "OPEN"

    def test_owner_closes_any_shift(self, client, sales_headers, owner_headers):
        shift_id = _open(client, sales_headers).json["shift"]["id"]

        resp = client.post(f"/api/shifts/{shift_id}/close", headers=owner_headers)

        assert resp.status_code == 200


class TestListShifts:
    def test_owner_lists_all(self, client, owner_headers, sales_headers, service_headers, sales_cashier):
        _open(client, sales_headers)
        _open(client, service_headers)

        everything = client.get("/api/shifts", headers=owner_headers).json["shifts"]
        mine = client.get(f"/api/shifts?user_id={sales_cashier.id}", headers=owner_headers).json["shifts"]

        assert len(everything) == 2
        assert [shift["user_id"] for shift in mine] == [sales_cashier.id]

    def test_cashier_cannot_list_all(self, client, sales_headers):
        assert client.get("/api/shifts", headers=sales_headers).status_code == 403

    def test_bad_status_is_400(self, client, owner_headers):
        assert client.get("/api/shifts?status=PAUSED", headers=owner_headers).status_code == 400
