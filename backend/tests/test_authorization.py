"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Sales representatives are denied admin-only operations (403)
- Administrators can perform privileged operations
- The health endpoint is public
"""

import pytest

from wholesale.permissions import (
    get_all_permission_codes,
    get_role_permissions,
    user_has_permission,
    validate_permission_code,
)


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/admin/users"),
            ("POST", "/api/admin/users"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/dispensaries"),
            ("GET", "/api/orders"),
            ("POST", "/api/orders"),
            ("POST", "/api/orders/preview"),
            ("GET", "/api/reports/orders"),
            ("GET", "/api/reports/orders.csv"),
            ("GET", "/api/reports/dashboard"),
            ("POST", "/api/insights/sales"),
            ("POST", "/api/insights/business"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


# =============================================================================
# SALES REPRESENTATIVE DENIED ADMIN OPERATIONS (403)
# =============================================================================


class TestSalesRepDenied:
    """Sales representatives sell; they do not administer."""

    def test_cannot_list_users(self, client, rep_headers):
        resp = client.get("/api/admin/users", headers=rep_headers)
        assert resp.status_code == 403

    def test_cannot_create_user(self, client, rep_headers):
        resp = client.post(
            "/api/admin/users",
            json={"username": "x", "password": "Password123!"},
            headers=rep_headers,
        )
        assert resp.status_code == 403

    def test_cannot_change_payment_status(self, client, rep_headers):
        resp = client.patch(
            "/api/orders/order001/payment-status",
            json={"payment_status": "Paid"},
            headers=rep_headers,
        )
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "UPDATE_PAYMENT_STATUS"

    def test_cannot_manage_dispensaries(self, client, rep_headers):
        resp = client.delete("/api/dispensaries/disp001", headers=rep_headers)
        assert resp.status_code == 403

    def test_cannot_use_business_insights(self, client, rep_headers):
        resp = client.post("/api/insights/business", json={}, headers=rep_headers)
        assert resp.status_code == 403

    def test_can_sell(self, client, rep_headers):
        assert client.get("/api/products", headers=rep_headers).status_code == 200
        assert client.get("/api/orders", headers=rep_headers).status_code == 200
        assert client.get("/api/reports/dashboard", headers=rep_headers).status_code == 200


# =============================================================================
# ADMIN ACCESS
# =============================================================================


class TestAdminAccess:
    """Administrators hold every capability."""

    def test_can_list_users(self, client, admin_headers, rep_user):
        resp = client.get("/api/admin/users", headers=admin_headers)
        assert resp.status_code == 200
        assert [u["username"] for u in resp.get_json()["users"]] == ["admin", "salesrep1"]

    def test_can_create_user(self, client, admin_headers):
        resp = client.post(
            "/api/admin/users",
            json={"username": "salesrep2", "password": "Password123!"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["user"]["role"] == "sales_representative"

    def test_weak_password_rejected(self, client, admin_headers):
        resp = client.post(
            "/api/admin/users",
            json={"username": "weak", "password": "short"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_unknown_role_rejected(self, client, admin_headers):
        resp = client.post(
            "/api/admin/users",
            json={"username": "boss", "password": "Password123!", "role": "owner"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_deactivation_revokes_sessions(self, client, admin_headers, rep_user, rep_headers):
        assert client.get("/api/auth/me", headers=rep_headers).status_code == 200

        resp = client.patch(f"/api/admin/users/{rep_user.id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["is_active"] is False

        assert client.get("/api/auth/me", headers=rep_headers).status_code == 401


# =============================================================================
# CAPABILITY MAP
# =============================================================================


class TestCapabilityMap:

    def test_admin_has_every_capability(self):
        assert get_role_permissions("administrator") == set(get_all_permission_codes())

    def test_sales_rep_capabilities(self):
        rep = get_role_permissions("sales_representative")
        assert {"VIEW_CATALOG", "CREATE_ORDER", "VIEW_DISPENSARIES"} <= rep
        assert not {"MANAGE_USERS", "MANAGE_PRODUCTS", "UPDATE_PAYMENT_STATUS", "USE_INSIGHTS"} & rep

    def test_unknown_role_has_nothing(self):
        assert get_role_permissions("intern") == frozenset()

    def test_inactive_user_has_nothing(self, admin_user, db_session):
        admin_user.is_active = False
        db_session.commit()
        assert user_has_permission(admin_user, "VIEW_CATALOG") is False

    def test_validate_permission_code(self):
        assert validate_permission_code("EXPORT_REPORTS") is True
        assert validate_permission_code("LAUNCH_ROCKETS") is False


# =============================================================================
# PUBLIC ENDPOINTS
# =============================================================================


class TestPublicEndpoints:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "ok"
        assert body["checks"]["database"]["status"] == "healthy"
