"""
backend/test_subscription_api.py

Integration tests for subscription endpoints.

Tests verify:
1. /subscription/plans lists every tier
2. /subscription/current reflects the stored plan and status
3. Plan changes take effect immediately for search gating (no cache issues)
4. Expired subscriptions (stored or lapsed renewal date) are treated as free
"""

from datetime import datetime, timedelta, timezone

from backend.db import get_db
from backend.entitlements import update_subscription_status
from domains.investment.models.plans import PlanStatus


def test_plans_catalog_is_public(client):
    resp = client.get("/subscription/plans")

    assert resp.status_code == 200
    plans = resp.json()["data"]["plans"]
    assert list(plans) == ["free", "basic", "plus", "premium"]
    assert plans["free"]["price"] == 0
    assert plans["premium"]["name"] == "Premium"
    assert plans["premium"]["limits"]["projectsPerMonth"] == -1


def test_current_subscription_defaults_to_free(client, make_user):
    user = make_user()

    resp = client.get("/subscription/current", headers=user["headers"])

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["currentPlan"] == "free"
    assert data["planStatus"] == "active"
    assert data["renewalDate"] is None
    assert data["planDetails"]["name"] == "Free"
    assert data["planFeatures"]["searchFilters"]["roiRange"] is False


def test_upgrade_unlocks_filters_immediately(client, make_user, make_project):
    user = make_user()
    make_project(roi_percent=14)

    before = client.post("/projects/search", json={"minROI": 10}, headers=user["headers"])
    assert before.status_code == 403

    upgrade = client.post("/subscription/upgrade", json={"planKey": "plus"}, headers=user["headers"])
    assert upgrade.status_code == 200
    data = upgrade.json()["data"]
    assert data["currentPlan"] == "plus"
    assert data["renewalDate"] is not None
    assert data["planFeatures"]["searchFilters"]["amountRange"] is True

    after = client.post("/projects/search", json={"minROI": 10}, headers=user["headers"])
    assert after.status_code == 200
    assert after.json()["data"]["planFeatures"]["name"] == "Plus"


def test_upgrade_to_current_plan_is_rejected(client, make_user):
    user = make_user(plan="basic")

    resp = client.post("/subscription/upgrade", json={"planKey": "basic"}, headers=user["headers"])

    assert resp.status_code == 400
    assert resp.json()["message"] == "You already have this plan"


def test_upgrade_to_unknown_plan_is_422(client, make_user):
    user = make_user()

    resp = client.post("/subscription/upgrade", json={"planKey": "platinum"}, headers=user["headers"])

    assert resp.status_code == 422


def test_expired_plan_can_be_renewed(client, make_user):
    user = make_user(plan="plus", status="expired")

    current = client.get("/subscription/current", headers=user["headers"]).json()["data"]
    assert current["currentPlan"] == "plus"
    assert current["effectivePlan"] == "free"
    assert current["planFeatures"]["name"] == "Free"

    resp = client.post("/subscription/upgrade", json={"planKey": "plus"}, headers=user["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["effectivePlan"] == "plus"


def test_expiry_takes_effect_on_next_request(client, make_user):
    user = make_user(plan="premium")
    assert client.post("/projects/search", json={"sortBy": "roiPercent"}, headers=user["headers"]).status_code == 200

    conn = get_db()
    update_subscription_status(conn, user["id"], PlanStatus.expired)
    conn.close()

    resp = client.post("/projects/search", json={"sortBy": "roiPercent"}, headers=user["headers"])
    assert resp.status_code == 403
    assert resp.json()["requiredPlan"] == "Premium"



def test_lapsed_renewal_date_expires_plan(client, make_user):
    user = make_user(plan="plus")
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    conn = get_db()
    conn.execute("UPDATE users SET plan_renewal = ? WHERE id = ?", (past, user["id"]))
    conn.commit()
    conn.close()

    data = client.get("/subscription/current", headers=user["headers"]).json()["data"]

    assert data["currentPlan"] == "plus"
    assert data["planStatus"] == "expired"
    assert data["effectivePlan"] == "free"

    blocked = client.post("/projects/search", json={"minROI": 10}, headers=user["headers"])
    assert blocked.status_code == 403

    renewed = client.post("/subscription/upgrade", json={"planKey": "plus"}, headers=user["headers"])
    assert renewed.json()["data"]["planStatus"] == "active"
    assert renewed.json()["data"]["effectivePlan"] == "plus"


def test_future_renewal_date_keeps_plan(client, make_user):
    user = make_user(plan="plus")
    upgrade = client.post("/subscription/upgrade", json={"planKey": "premium"}, headers=user["headers"])
    assert upgrade.status_code == 200

    data = client.get("/subscription/current", headers=user["headers"]).json()["data"]

    assert data["planStatus"] == "active"
    assert data["effectivePlan"] == "premium"

def test_cancel_drops_to_free(client, make_user):
    user = make_user(plan="premium")

    resp = client.post("/subscription/cancel", headers=user["headers"])

    assert resp.status_code == 200
    assert resp.json()["data"]["currentPlan"] == "free"

    conn = get_db()
    row = conn.execute("SELECT plan_key, plan_renewal FROM users WHERE id = ?", (user["id"],)).fetchone()
    conn.close()
    assert row["plan_key"] == "free"
    assert row["plan_renewal"] is None


def test_cancel_on_free_plan_is_rejected(client, make_user):
    user = make_user()

    resp = client.post("/subscription/cancel", headers=user["headers"])

    assert resp.status_code == 400
