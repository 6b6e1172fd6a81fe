"""
API authorization tests.

Verifies:
- Unauthenticated requests return 401
- Forbid rules and missing grants answer 403 and are audited
- Ownership is enforced per record
- Role changes apply to the very next request
"""

import pytest

from accountsforge.extensions import db
from accountsforge.models import SecurityEvent
from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/profiles"),
            ("GET", "/api/profiles/me"),
            ("PUT", "/api/profiles/someone/role"),
            ("DELETE", "/api/identities/someone"),
            ("GET", "/api/expenses"),
            ("POST", "/api/revenues"),
            ("POST", "/api/claims/1/pay"),
            ("POST", "/api/expenses/1/approve"),
            ("GET", "/api/commissions"),
            ("GET", "/api/notifications"),
            ("GET", "/api/reports/profit-loss"),
            ("GET", "/api/settings"),
            ("PUT", "/api/settings/currency"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["kind"] == "authentication_required"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401


# =============================================================================
# AUTH FLOW
# =============================================================================


class TestAuthFlow:

    def test_register_login_me_logout(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "email": "New.User@Test.local",
            "password": PASSWORD,
            "full_name": "New User",
            "role": "admin",
        })
        assert resp.status_code == 201
        assert resp.json["identity"]["email"] == "new.user@test.local"

        resp = client.post("/api/auth/login", json={"email": "new.user@test.local", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json["profile"]["role"] == "employee"
        headers = auth_headers(resp.json["token"])

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json["role"] == "employee"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_login_failure(self, client, employee):
        resp = client.post("/api/auth/login", json={"email": "alice@test.local", "password": "Wrong123!"})
        assert resp.status_code == 401
        assert db.session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").count() == 1

    def test_login_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"email": "alice@test.local"})
        assert resp.status_code == 400

    def test_weak_password_rejected(self, client, db_session):
        resp = client.post("/api/auth/register", json={"email": "weak@test.local", "password": "weak"})
        assert resp.status_code == 400
        assert resp.json["kind"] == "validation_failed"


# =============================================================================
# ROLE-BASED DENIALS (403)
# =============================================================================


class TestRoleDenials:

    def test_employee_cannot_record_revenue(self, client, employee_headers):
        resp = client.post(
            "/api/revenues",
            json={"amount": "100.00", "customer_name": "Acme"},
            headers=employee_headers,
        )
        assert resp.status_code == 403
        assert resp.json["kind"] == "forbidden"
        assert db.session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").count() == 1

    def test_malformed_revenue_is_a_validation_error(self, client, employee_headers):
        resp = client.post("/api/revenues", json={"amount": "-5"}, headers=employee_headers)
        assert resp.status_code == 400

    def test_employee_cannot_approve_own_expense(self, client, employee_headers):
        created = client.post(
            "/api/expenses",
            json={"amount": "42.00", "description": "Taxi"},
            headers=employee_headers,
        )
        assert created.status_code == 201
        expense_id = created.json["expense"]["id"]

        resp = client.post(f"/api/expenses/{expense_id}/approve", headers=employee_headers)
        assert resp.status_code == 403

        resp = client.patch(f"/api/expenses/{expense_id}", json={"status": "approved"}, headers=employee_headers)
        assert resp.status_code == 403

    def test_employee_cannot_change_own_role(self, client, employee, employee_headers):
        resp = client.patch("/api/profiles/me", json={"role": "admin"}, headers=employee_headers)
        assert resp.status_code == 403

        resp = client.put(f"/api/profiles/{employee.user_id}/role", json={"role": "admin"}, headers=employee_headers)
        assert resp.status_code == 403

    def test_settings_write_is_admin_only(self, client, employee_headers, admin_headers):
        resp = client.put("/api/settings/currency", json={"value": "EUR"}, headers=employee_headers)
        assert resp.status_code == 403

        resp = client.put("/api/settings/currency", json={"value": "EUR"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["setting"]["value"] == "EUR"

    def test_only_admin_deletes_identities(self, client, employee, other_employee_headers):
        resp = client.delete(f"/api/identities/{employee.user_id}", headers=other_employee_headers)
        assert resp.status_code == 403


# =============================================================================
# OWNERSHIP
# =============================================================================


class TestOwnership:

    def test_foreign_expense_is_forbidden(self, client, employee_headers, other_employee_headers):
        created = client.post(
            "/api/expenses",
            json={"amount": "10.00", "description": "Lunch"},
            headers=employee_headers,
        )
        expense_id = created.json["expense"]["id"]

        assert client.get(f"/api/expenses/{expense_id}", headers=other_employee_headers).status_code == 403
        assert client.patch(
            f"/api/expenses/{expense_id}", json={"description": "mine now"}, headers=other_employee_headers,
        ).status_code == 403
        assert client.delete(f"/api/expenses/{expense_id}", headers=other_employee_headers).status_code == 403

        listed = client.get("/api/expenses", headers=other_employee_headers)
        assert listed.json["count"] == 0

    def test_missing_record_is_not_found(self, client, employee_headers):
        assert client.get("/api/expenses/9999", headers=employee_headers).status_code == 404


# =============================================================================
# END-TO-END SCENARIOS
# =============================================================================


class TestScenarios:

    def test_sale_approval_creates_commission(self, client, admin_headers, salesman_headers):
        created = client.post(
            "/api/revenues",
            json={"amount": "2000.00", "customer_name": "Acme", "commission_rate": "10.00"},
            headers=salesman_headers,
        )
        assert created.status_code == 201
        revenue_id = created.json["revenue"]["id"]

        resp = client.post(f"/api/revenues/{revenue_id}/approve", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["applied"] is True
        assert resp.json["revenue"]["status"] == "approved"
        assert resp.json["commission"]["commission_amount"] == "200.00"

        again = client.post(f"/api/revenues/{revenue_id}/approve", headers=admin_headers)
        assert again.status_code == 200
        assert again.json["applied"] is False

        commissions = client.get("/api/commissions", headers=salesman_headers)
        assert commissions.json["count"] == 1

        notifications = client.get("/api/notifications", headers=salesman_headers)
        assert notifications.status_code == 200
        assert any("Commission: $200.00" in n["message"] for n in notifications.json["notifications"])

    def test_rejected_expense_cannot_be_approved(self, client, admin_headers, employee_headers):
        created = client.post(
            "/api/expenses",
            json={"amount": "99.00", "description": "Hotel"},
            headers=employee_headers,
        )
        expense_id = created.json["expense"]["id"]

        resp = client.post(
            f"/api/expenses/{expense_id}/reject",
            json={"rejection_reason": "No receipt"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["expense"]["rejection_reason"] == "No receipt"

        resp = client.post(f"/api/expenses/{expense_id}/approve", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json["kind"] == "workflow_violation"

    def test_claim_lifecycle(self, client, admin_headers, employee_headers):
        created = client.post(
            "/api/claims",
            json={"amount": "75.00", "claim_type": "expense_reimbursement", "description": "Parking"},
            headers=employee_headers,
        )
        claim_id = created.json["claim"]["id"]

        early = client.post(
            f"/api/claims/{claim_id}/pay",
            json={"payment_method": "bank_transfer", "payment_reference": "TX-1"},
            headers=admin_headers,
        )
        assert early.status_code == 409

        assert client.post(f"/api/claims/{claim_id}/approve", headers=admin_headers).status_code == 200
        paid = client.post(
            f"/api/claims/{claim_id}/pay",
            json={"payment_method": "bank_transfer", "payment_reference": "TX-1"},
            headers=admin_headers,
        )
        assert paid.status_code == 200
        assert paid.json["claim"]["status"] == "paid"

    def test_role_change_applies_on_next_request(self, client, employee, admin_headers, employee_headers):
        payload = {"amount": "500.00", "customer_name": "Acme"}
        assert client.post("/api/revenues", json=payload, headers=employee_headers).status_code == 403

        resp = client.put(
            f"/api/profiles/{employee.user_id}/role", json={"role": "salesman"}, headers=admin_headers,
        )
        assert resp.status_code == 200

        assert client.get("/api/auth/me", headers=employee_headers).json["role"] == "salesman"
        assert client.post("/api/revenues", json=payload, headers=employee_headers).status_code == 201

    def test_deleted_identity_loses_access(self, client, employee, admin_headers, employee_headers):
        resp = client.delete(f"/api/identities/{employee.user_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=employee_headers).status_code == 401
        assert get_auth_token(client, "alice@test.local") is None


# =============================================================================
# MALFORMED BODIES (400)
# =============================================================================


class TestMalformedBodies:

    @pytest.mark.parametrize("action", ["approve", "reject"])
    def test_non_object_transition_body(self, client, admin_headers, employee_headers, action):
        created = client.post(
            "/api/expenses",
            json={"amount": "10.00", "description": "Lunch"},
            headers=employee_headers,
        )
        expense_id = created.json["expense"]["id"]

        resp = client.post(f"/api/expenses/{expense_id}/{action}", json=["x"], headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["kind"] == "validation_failed"

    def test_non_object_pay_body(self, client, admin_headers, employee_headers):
        created = client.post(
            "/api/claims",
            json={"amount": "5.00", "claim_type": "other", "description": "Stamps"},
            headers=employee_headers,
        )
        claim_id = created.json["claim"]["id"]
        client.post(f"/api/claims/{claim_id}/approve", headers=admin_headers)

        resp = client.post(f"/api/claims/{claim_id}/pay", json="TX-1", headers=admin_headers)
        assert resp.status_code == 400

    def test_payout_reference_must_be_text(self, client, admin_headers, salesman_headers):
        created = client.post(
            "/api/revenues",
            json={"amount": "100.00", "customer_name": "Acme"},
            headers=salesman_headers,
        )
        approved = client.post(f"/api/revenues/{created.json['revenue']['id']}/approve", headers=admin_headers)
        commission_id = approved.json["commission"]["id"]

        resp = client.post(
            f"/api/commissions/{commission_id}/payout",
            json={"payout_reference": 12345},
            headers=admin_headers,
        )
        assert resp.status_code == 400

        resp = client.post(f"/api/commissions/{commission_id}/payout", json=["paid"], headers=admin_headers)
        assert resp.status_code == 400

    def test_non_object_settings_body(self, client, admin_headers):
        resp = client.put("/api/settings/currency", json=["EUR"], headers=admin_headers)
        assert resp.status_code == 400


def test_profit_loss_for_one_person(client, admin_headers, employee, employee_headers):
    created = client.post(
        "/api/expenses",
        json={"amount": "80.00", "description": "Train"},
        headers=employee_headers,
    )
    client.post(f"/api/expenses/{created.json['expense']['id']}/approve", headers=admin_headers)

    resp = client.get(f"/api/reports/profit-loss?user_id={employee.user_id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json["report"]["scope"] == "user"
    assert resp.json["report"]["total_expenses"] == "80.00"
    assert resp.json["report"]["net_profit"] == "-80.00"


# =============================================================================
# HEALTH
# =============================================================================


def test_health(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
    assert resp.json["checks"]["configuration"]["default_profile_role"] == "employee"
