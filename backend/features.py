"""
Plan catalog + search-filter entitlements for Crowdvest.

All plan enforcement is server-side. The frontend receives PlanFeatures with
each search response and only uses it to lock controls; it never decides
access on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from domains.investment.errors import PlanRestricted
from domains.investment.gating import feature_label, required_plan_for
from domains.investment.models.plans import FilterFeature, PlanFeatures, PlanKey, SearchFilterFlags
from domains.investment.models.search import DEFAULT_SORT_FIELD, DEFAULT_SORT_ORDER, SearchQuery

logger = logging.getLogger(__name__)

UNLIMITED = -1


# ---- Plan + feature map -------------------------------------------------


@dataclass(frozen=True)
class Plan:
    """Server-side plan definition (source of truth for limits and search filters)."""
    key: PlanKey
    price_monthly: float
    search_filters: frozenset
    projects_per_month: int
    simulations_per_month: int
    features: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.key.label


_FREE_FILTERS = frozenset({FilterFeature.basic_filters})
_BASIC_FILTERS = _FREE_FILTERS | {FilterFeature.roi_range}
_PLUS_FILTERS = _BASIC_FILTERS | {
    FilterFeature.amount_range,
    FilterFeature.duration_filter,
    FilterFeature.multiple_categories,
}
_PREMIUM_FILTERS = _PLUS_FILTERS | {FilterFeature.advanced_sort}

PLANS: Dict[PlanKey, Plan] = {
    PlanKey.free: Plan(
        PlanKey.free, 0.0, _FREE_FILTERS, projects_per_month=3, simulations_per_month=10,
        features=["Browse all projects", "Investment calculator", "Search by keyword, category and status"],
    ),
    PlanKey.basic: Plan(
        PlanKey.basic, 9.99, _BASIC_FILTERS, projects_per_month=10, simulations_per_month=50,
        features=["Everything in Free", "ROI range filter", "Email alerts for new projects"],
    ),
    PlanKey.plus: Plan(
        PlanKey.plus, 29.99, _PLUS_FILTERS, projects_per_month=50, simulations_per_month=UNLIMITED,
        features=["Everything in Basic", "Amount and duration filters", "Multi-category search"],
    ),
    PlanKey.premium: Plan(
        PlanKey.premium, 79.99, _PREMIUM_FILTERS, projects_per_month=UNLIMITED, simulations_per_month=UNLIMITED,
        features=["Everything in Plus", "Advanced sorting", "Priority access to new projects"],
    ),
}

# Query fields that need a gated feature, in the order they are checked
GATED_FIELDS = [
    (FilterFeature.multiple_categories, ("categories",)),
    (FilterFeature.roi_range, ("min_roi", "max_roi")),
    (FilterFeature.amount_range, ("min_amount", "max_amount")),
    (FilterFeature.duration_filter, ("min_duration", "max_duration")),
    (FilterFeature.advanced_sort, ("sort_by", "sort_order")),
]


def get_plan(plan_key: str) -> Plan:
    """Unknown plan keys fall back to free."""
    try:
        return PLANS[PlanKey(str(plan_key).lower())]
    except (KeyError, ValueError):
        return PLANS[PlanKey.free]


def get_plan_features(plan_key: str) -> PlanFeatures:
    """PlanFeatures payload sent to the client for the given effective plan."""
    plan = get_plan(plan_key)
    flags = {feature.value: feature in plan.search_filters for feature in FilterFeature}
    return PlanFeatures(name=plan.name, search_filters=SearchFilterFlags.model_validate(flags))


def check_feature_access(plan_key: str, feature: FilterFeature) -> bool:
    return feature in get_plan(plan_key).search_filters


def lowest_plan_with(feature: FilterFeature) -> PlanKey:
    for key in PLANS:
        if feature in PLANS[key].search_filters:
            return key
    raise ValueError(f"No plan includes {feature.value}")


def require_search_features(query: SearchQuery, plan_key: str) -> None:
    """
    Reject a search that uses filters the plan does not include.

    Raises:
        PlanRestricted: naming the first disallowed filter and the plan that unlocks it
    """
    for feature, fields in GATED_FIELDS:
        if feature == FilterFeature.advanced_sort:
            # Spelling out the default order is not advanced sorting
            used = (query.sort_by or DEFAULT_SORT_FIELD) != DEFAULT_SORT_FIELD or (
                query.sort_order or DEFAULT_SORT_ORDER
            ) != DEFAULT_SORT_ORDER
        else:
            used = any(getattr(query, name) not in (None, []) for name in fields)
        if used and not check_feature_access(plan_key, feature):
            logger.info(f"[SEARCH] Plan restriction: plan={plan_key}, feature={feature.value}")
            raise PlanRestricted(feature_label(feature), required_plan_for(feature))


def get_plan_config(plan_key: PlanKey) -> Dict[str, Any]:
    """Display config for a plan tier (used by /subscription/plans and /subscription/current)."""
    plan = PLANS[plan_key]
    return {
        "name": plan.name,
        "price": plan.price_monthly,
        "priceId": None,
        "features": list(plan.features),
        "limits": {
            "projectsPerMonth": plan.projects_per_month,
            "simulationsPerMonth": plan.simulations_per_month,
        },
    }
