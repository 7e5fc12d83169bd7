# frontend/test_session.py
# Unit tests for SessionContext and frontend config

import pytest

from frontend.config import get_api_base_url, validate_api_url
from frontend.session import SessionContext
from domains.investment.gating import is_feature_enabled
from domains.investment.models.plans import PlanFeatures


def test_init_is_idempotent_and_keeps_existing_values():
    store = {"auth_token": "abc", "current_user": {"id": 1}}

    ctx = SessionContext(store)
    ctx.init()

    assert ctx.token == "abc"
    assert ctx.is_authenticated
    assert store["plan_features"] is None


def test_set_and_clear_auth():
    ctx = SessionContext()
    ctx.set_auth("tok", {"id": 3, "email": "a@b.c"})

    assert ctx.get_auth_header() == {"Authorization": "Bearer tok"}
    assert ctx.user["id"] == 3

    ctx.clear_auth()
    ctx.clear_auth()

    assert ctx.get_auth_header() == {}
    assert ctx.user is None
    assert not ctx.is_authenticated


def test_login_and_logout_invalidate_plan_features():
    ctx = SessionContext()
    ctx.cache_plan_features(PlanFeatures.model_validate({"searchFilters": {"roiRange": True}}))

    ctx.set_auth("tok", {"id": 1})
    assert ctx.plan_features is None

    ctx.cache_plan_features(PlanFeatures.model_validate({"searchFilters": {"roiRange": True}}))
    ctx.clear_auth()
    assert ctx.plan_features is None
    assert not is_feature_enabled(ctx.plan_features, "roiRange")


def test_local_default_api_url(monkeypatch):
    monkeypatch.delenv("BACKEND_URL", raising=False)
    monkeypatch.delenv("API_BASE_URL", raising=False)

    assert get_api_base_url("local") == "http://127.0.0.1:8000"
    with pytest.raises(RuntimeError):
        get_api_base_url("production")


def test_backend_url_takes_priority(monkeypatch):
    monkeypatch.setenv("BACKEND_URL", "https://api.crowdvest.example/")
    monkeypatch.setenv("API_BASE_URL", "https://legacy.example")

    assert get_api_base_url("production") == "https://api.crowdvest.example"


@pytest.mark.parametrize("url", ["http://api.crowdvest.example", "https://localhost:8000", ""])
def test_production_url_rules(url):
    with pytest.raises(ValueError):
        validate_api_url(url, "production")


def test_local_allows_plain_http():
    validate_api_url("http://127.0.0.1:8000", "local")
