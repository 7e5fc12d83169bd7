"""
backend/test_investments_api.py

Investment endpoint tests.

Tests verify:
1. The server re-validates amount bounds, payment method and login
2. Funding never exceeds the project target
3. Successful investments return the refreshed project
4. Cancellation releases funding and is limited to the owner
"""

from datetime import datetime, timedelta, timezone

from backend import routes_investments
from backend.db import get_db


def _invest(client, user, project_id, amount, payment_method="stripe"):
    body = {"projectId": project_id, "amount": amount}
    if payment_method is not None:
        body["paymentMethod"] = payment_method
    return client.post("/investments", json=body, headers=user["headers"])


def _funded(project_id):
    conn = get_db()
    try:
        return conn.execute("SELECT funded_amount FROM projects WHERE id = ?", (project_id,)).fetchone()[0]
    finally:
        conn.close()


# ============================================================================
# Test: Pre-flight validation on the server
# ============================================================================

def test_invest_success_returns_refreshed_project(client, make_user, make_project):
    user = make_user()
    project_id = make_project(target_amount=10_000, funded_amount=9_000, min_investment=100, roi_percent=10)

    resp = _invest(client, user, project_id, 1000)

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    investment = body["data"]["investment"]
    assert investment["amount"] == 1000
    assert investment["expectedReturn"] == 1100
    assert investment["paymentMethod"] == "stripe"
    assert investment["status"] == "completed"
    assert investment["projectTitle"] == "Test Project"
    assert body["data"]["project"]["fundedAmount"] == 10_000
    assert _funded(project_id) == 10_000


def test_invest_above_remaining_is_rejected(client, make_user, make_project):
    user = make_user()
    project_id = make_project(target_amount=10_000, funded_amount=9_000, min_investment=100)

    resp = _invest(client, user, project_id, 1000.01)

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["code"] == "exceeds_remaining"
    assert _funded(project_id) == 9_000


def test_invest_below_minimum_is_rejected(client, make_user, make_project):
    user = make_user()
    project_id = make_project(min_investment=100)

    resp = _invest(client, user, project_id, 99.99)

    assert resp.status_code == 400
    assert resp.json()["code"] == "below_minimum"
    assert resp.json()["message"] == "Minimum investment is $100.00"


def test_invest_at_minimum_is_accepted(client, make_user, make_project):
    user = make_user()
    project_id = make_project(min_investment=100)

    resp = _invest(client, user, project_id, 100)

    assert resp.status_code == 201


def test_invest_without_payment_method(client, make_user, make_project):
    user = make_user()
    project_id = make_project()

    resp = _invest(client, user, project_id, 500, payment_method=None)

    assert resp.status_code == 400
    assert resp.json()["code"] == "missing_payment_method"


def test_invest_requires_login(client, make_project):
    project_id = make_project()

    resp = client.post("/investments", json={"projectId": project_id, "amount": 500, "paymentMethod": "stripe"})

    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthenticated"
    assert _funded(project_id) == 0


def test_invest_in_closed_project(client, make_user, make_project):
    user = make_user()
    project_id = make_project(status="closed")

    resp = _invest(client, user, project_id, 500)

    assert resp.status_code == 400
    assert resp.json()["code"] == "project_not_active"


def test_invest_in_unknown_project(client, make_user):
    user = make_user()

    resp = _invest(client, user, 9999, 500)

    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


def test_sequential_investments_cannot_overfund(client, make_user, make_project):
    first, second = make_user(), make_user()
    project_id = make_project(target_amount=1_000, funded_amount=0, min_investment=100)

    assert _invest(client, first, project_id, 600).status_code == 201
    resp = _invest(client, second, project_id, 600)

    assert resp.status_code == 400
    assert resp.json()["code"] == "exceeds_remaining"
    assert _funded(project_id) == 600


# ============================================================================
# Test: Listing and cancellation
# ============================================================================

def test_my_investments_summary(client, make_user, make_project):
    user, other = make_user(), make_user()
    project_id = make_project(roi_percent=20)

    _invest(client, user, project_id, 1000)
    _invest(client, user, project_id, 500)
    _invest(client, other, project_id, 700)

    resp = client.get("/investments/my-investments", headers=user["headers"])

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert len(data["investments"]) == 2
    assert data["summary"]["totalInvested"] == 1500
    assert data["summary"]["expectedReturns"] == 1800
    assert data["summary"]["activeInvestments"] == 2


def test_cancel_releases_funding(client, make_user, make_project):
    user = make_user()
    project_id = make_project(funded_amount=2_000)
    investment_id = _invest(client, user, project_id, 1000).json()["data"]["investment"]["id"]
    assert _funded(project_id) == 3_000

    resp = client.post(
        f"/investments/{investment_id}/cancel",
        json={"reason": "Changed my mind"},
        headers=user["headers"],
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["investment"]["status"] == "cancelled"
    assert data["investment"]["cancelReason"] == "Changed my mind"
    assert data["project"]["fundedAmount"] == 2_000

    # A second cancel is refused
    again = client.post(f"/investments/{investment_id}/cancel", headers=user["headers"])
    assert again.status_code == 400


def test_cancel_other_users_investment_is_404(client, make_user, make_project):
    owner, stranger = make_user(), make_user()
    project_id = make_project()
    investment_id = _invest(client, owner, project_id, 500).json()["data"]["investment"]["id"]

    resp = client.post(f"/investments/{investment_id}/cancel", headers=stranger["headers"])

    assert resp.status_code == 404
    assert _funded(project_id) == 500


def test_cancel_after_window_is_refused(client, make_user, make_project):
    user = make_user()
    project_id = make_project()
    investment_id = _invest(client, user, project_id, 500).json()["data"]["investment"]["id"]

    old = (datetime.now(timezone.utc) - timedelta(hours=25)).isoformat()
    conn = get_db()
    conn.execute("UPDATE investments SET created_at = ? WHERE id = ?", (old, investment_id))
    conn.commit()
    conn.close()

    resp = client.post(f"/investments/{investment_id}/cancel", headers=user["headers"])

    assert resp.status_code == 400
    assert resp.json()["code"] == "cancel_window_expired"
    assert _funded(project_id) == 500


def test_overlapping_cancels_release_funding_once(client, make_user, make_project, monkeypatch):
    user = make_user()
    project_id = make_project(funded_amount=5_000)
    investment_id = _invest(client, user, project_id, 1000).json()["data"]["investment"]["id"]
    assert _funded(project_id) == 6_000

    inner = {}

    class OverlappingDatetime(datetime):
        @classmethod
        def now(cls, tz=None):
            # Issue a second cancel after the first one has passed its checks
            if "resp" not in inner:
                inner["resp"] = None
                inner["resp"] = client.post(f"/investments/{investment_id}/cancel", headers=user["headers"])
            return datetime.now(tz)

    monkeypatch.setattr(routes_investments, "datetime", OverlappingDatetime)

    outer = client.post(f"/investments/{investment_id}/cancel", headers=user["headers"])

    assert inner["resp"].status_code == 200
    assert outer.status_code == 400
    assert outer.json()["message"] == "Only completed investments can be cancelled"
    assert _funded(project_id) == 5_000
