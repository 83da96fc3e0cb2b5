"""
Authorization gate tests.

Verifies:
- Protected endpoints return 401 without a token
- 401 is decided before 403 (an anonymous caller never sees 403)
- Each role is denied what it must not do (403)
- Deactivated users lose access immediately
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/admin/users"),
            ("POST", "/api/admin/users"),
            ("GET", "/api/admin/permissions"),
            ("POST", "/api/currency/rate"),
            ("GET", "/api/currency/history"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/customers"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/warehouses"),
            ("POST", "/api/warehouses/purchases"),
            ("POST", "/api/warehouses/transfers"),
            ("POST", "/api/warehouses/write-off"),
            ("POST", "/api/warehouses/set-stock"),
            ("POST", "/api/warehouses/inventory-checks"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("POST", "/api/sales/1/complete"),
            ("POST", "/api/payments"),
            ("GET", "/api/expenses"),
            ("POST", "/api/expense-categories"),
            ("GET", "/api/registers"),
            ("GET", "/api/registers/service"),
            ("GET", "/api/workshop/tasks"),
            ("POST", "/api/workshop/tasks/1/status"),
            ("POST", "/api/workshop/tasks/1/assign"),
            ("GET", "/api/notifications?room=room:boss"),
            ("GET", "/api/reports/sales-summary"),
            ("GET", "/api/shifts/current"),
            ("POST", "/api/shifts/open"),
            ("POST", "/api/shifts/1/close"),
            ("GET", "/api/employees"),
            ("POST", "/api/employees/1/advances"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_invalid_token_is_401(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"

    def test_owner_only_route_is_401_not_403_without_identity(self, client, owner):
        resp = client.post("/api/warehouses/write-off", json={})
        assert resp.status_code == 401


class TestPublicAccess:
    def test_health_is_public(self, client):
        assert client.get("/api/health").status_code in (200, 503)

    def test_today_rate_is_public(self, client):
        resp = client.get("/api/currency/today")
        assert resp.status_code == 200
        assert resp.json["rate"] is None

    def test_login_users_is_public(self, client, owner, master_user):
        resp = client.get("/api/auth/login-users")
        assert resp.status_code == 200
        usernames = {u["username"] for u in resp.json["users"]}
        assert usernames == {"owner", "master"}
        assert "custom_permissions" not in resp.json["users"][0]


# =============================================================================
# ROLE DENIALS (403)
# =============================================================================


class TestSalesCashierDenied:
    def test_cannot_list_users(self, client, sales_headers):
        assert client.get("/api/admin/users", headers=sales_headers).status_code == 403

    def test_cannot_write_off(self, client, sales_headers):
        resp = client.post("/api/warehouses/write-off", json={}, headers=sales_headers)
        assert resp.status_code == 403

    def test_cannot_set_stock(self, client, sales_headers):
        resp = client.post("/api/warehouses/set-stock", json={}, headers=sales_headers)
        assert resp.status_code == 403

    def test_cannot_create_product(self, client, sales_headers):
        resp = client.post("/api/products", json={"name": "X"}, headers=sales_headers)
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "product:create"

    def test_cannot_view_reports(self, client, sales_headers):
        assert client.get("/api/reports/sales-summary", headers=sales_headers).status_code == 403

    def test_cannot_create_service_sale(self, client, sales_headers, rate):
        resp = client.post("/api/sales", json={
            "sale_type": "SERVICE",
            "items": [{"service_name": "Edge banding", "quantity": 1, "price_uzs": 10000}],
        }, headers=sales_headers)
        assert resp.status_code == 403


class TestServiceRegisterGate:
    def test_service_cashier_sees_service_register(self, client, service_headers, customer):
        client.post("/api/payments", json={"customer_id": customer.id, "amount_uzs": 700}, headers=service_headers)

        resp = client.get("/api/registers/service", headers=service_headers)

        assert resp.status_code == 200
        assert resp.json["register"]["register_type"] == "SERVICE"
        assert resp.json["register"]["balance_uzs"] == 700
        assert [op["amount_uzs"] for op in resp.json["operations"]] == [700]

    def test_owner_passes(self, client, owner_headers):
        assert client.get("/api/registers/service", headers=owner_headers).status_code == 200

    @pytest.mark.parametrize("headers_fixture", ["sales_headers", "master_headers"])
    def test_other_roles_denied(self, client, request, headers_fixture):
        headers = request.getfixturevalue(headers_fixture)
        assert client.get("/api/registers/service", headers=headers).status_code == 403


class TestServiceCashierDenied:
    def test_cannot_purchase(self, client, service_headers):
        resp = client.post("/api/warehouses/purchases", json={}, headers=service_headers)
        assert resp.status_code == 403

    def test_cannot_create_product_sale(self, client, service_headers, rate, product):
        resp = client.post("/api/sales", json={
            "sale_type": "PRODUCT",
            "items": [{"product_id": product.id, "quantity": 1, "price_uzs": 50000}],
        }, headers=service_headers)
        assert resp.status_code == 403


class TestMasterDenied:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/customers"),
            ("GET", "/api/products"),
            ("GET", "/api/sales"),
            ("POST", "/api/payments"),
            ("POST", "/api/workshop/tasks/1/assign"),
        ],
    )
    def test_denied(self, client, master_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=master_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"

    def test_can_view_own_tasks(self, client, master_headers):
        assert client.get("/api/workshop/tasks", headers=master_headers).status_code == 200


class TestCustomPermissions:
    def test_override_replaces_defaults_at_the_gate(self, client, owner_headers, db_session):
        resp = client.post("/api/admin/users", json={
            "username": "viewer",
            "password": "viewer1",
            "full_name": "Read Only",
            "role": "CASHIER_SALES",
            "custom_permissions": ["customer:read"],
        }, headers=owner_headers)
        assert resp.status_code == 201
        assert resp.json["user"]["permission_source"] == "custom"

        token = client.post("/api/auth/login", json={"username": "viewer", "password": "viewer1"}).json["token"]
        headers = {"Authorization": f"Bearer {token}"}

        assert client.get("/api/customers", headers=headers).status_code == 200
        assert client.get("/api/sales", headers=headers).status_code == 403


class TestDeactivation:
    def test_deactivated_user_token_stops_working(self, client, owner_headers, sales_cashier, sales_headers):
        assert client.get("/api/auth/me", headers=sales_headers).status_code == 200

        resp = client.delete(f"/api/admin/users/{sales_cashier.id}", headers=owner_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["is_active"] is False

        assert client.get("/api/auth/me", headers=sales_headers).status_code == 401
        login = client.post("/api/auth/login", json={"username": "sales", "password": "Password123!"})
        assert login.status_code == 401
