"""
backend/test_plan_features.py

Plan catalog regression tests.

The client's upsell labels (domains/investment/gating.py) and the server's
plan catalog (features.PLANS) are maintained separately; these tests keep
them in step.
"""

from datetime import datetime, timezone

import pytest

from backend.entitlements import Subscription, get_effective_plan, is_lapsed
from backend.features import (
    PLANS,
    check_feature_access,
    get_plan,
    get_plan_features,
    lowest_plan_with,
    require_search_features,
)
from domains.investment.errors import PlanRestricted
from domains.investment.gating import is_feature_enabled, required_plan_for, required_plan_key
from domains.investment.models.plans import PLAN_ORDER, FilterFeature, PlanKey
from domains.investment.models.search import SearchQuery


@pytest.mark.parametrize("feature", list(FilterFeature))
def test_required_plan_matches_catalog(feature):
    assert required_plan_key(feature) == lowest_plan_with(feature)
    assert required_plan_for(feature) == lowest_plan_with(feature).label


def test_plans_are_cumulative():
    previous = frozenset()
    for key in PLAN_ORDER:
        assert previous <= PLANS[key].search_filters
        previous = PLANS[key].search_filters


@pytest.mark.parametrize("key", list(PlanKey))
def test_plan_features_payload_matches_catalog(key):
    features = get_plan_features(key.value)

    assert features.name == key.label
    for feature in FilterFeature:
        assert is_feature_enabled(features, feature) == check_feature_access(key.value, feature)


def test_unknown_plan_falls_back_to_free():
    assert get_plan("enterprise").key == PlanKey.free
    assert get_plan(None).key == PlanKey.free


def test_effective_plan_by_status():
    assert get_effective_plan(Subscription(1, "plus", "active")) == "plus"
    assert get_effective_plan(Subscription(1, "plus", "trial")) == "plus"
    assert get_effective_plan(Subscription(1, "plus", "expired")) == "free"


def test_renewal_date_lapse():
    now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    assert is_lapsed("2026-10-19T11:59:00+00:00", now)
    assert is_lapsed("2026-10-19T12:00:00", now)
    assert not is_lapsed("2026-11-18T12:00:00+00:00", now)
    assert not is_lapsed(None, now)


def test_require_search_features_names_first_restricted_filter():
    query = SearchQuery(minROI=5, min_amount=1000)

    with pytest.raises(PlanRestricted) as exc:
        require_search_features(query, "free")

    assert exc.value.feature == "ROI Range"
    assert exc.value.required_plan == "Basic"

    with pytest.raises(PlanRestricted) as exc:
        require_search_features(query, "basic")
    assert exc.value.feature == "Amount Range"

    require_search_features(query, "plus")


def test_basic_filters_never_restricted():
    require_search_features(SearchQuery(search="solar", category="Energy", status="active"), "free")
