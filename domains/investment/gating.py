"""
domains/investment/gating.py

Plan feature gate for project search.

The server decides which search filters a user may use and returns them as
PlanFeatures with every search response. The client only reads that map to
enable/disable controls. A missing or unreadable map means every gated
feature is off (fail-closed).

REQUIRED_PLAN is the upsell label shown next to a locked control. It must
agree with backend/features.py::PLANS (backend/test_plan_features.py pins
the two together) but is never used to grant access.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from domains.investment.models.plans import FilterFeature, PlanFeatures, PlanKey

FeatureLike = Union[FilterFeature, str]

REQUIRED_PLAN = {
    FilterFeature.basic_filters: PlanKey.free,
    FilterFeature.roi_range: PlanKey.basic,
    FilterFeature.amount_range: PlanKey.plus,
    FilterFeature.duration_filter: PlanKey.plus,
    FilterFeature.multiple_categories: PlanKey.plus,
    FilterFeature.advanced_sort: PlanKey.premium,
}

DEFAULT_REQUIRED_PLAN = PlanKey.plus

# Labels the search page uses for its locked controls
FEATURE_LABELS = {
    FilterFeature.basic_filters: "Basic Filters",
    FilterFeature.roi_range: "ROI Range",
    FilterFeature.amount_range: "Amount Range",
    FilterFeature.duration_filter: "Duration Filter",
    FilterFeature.multiple_categories: "Multiple Categories",
    FilterFeature.advanced_sort: "Advanced Sort",
}


def to_feature(feature: FeatureLike) -> Optional[FilterFeature]:
    """Resolve a FilterFeature from its enum, wire key ("roiRange") or UI label ("ROI Range")."""
    if isinstance(feature, FilterFeature):
        return feature
    if not isinstance(feature, str):
        return None
    try:
        return FilterFeature(feature)
    except ValueError:
        pass
    wanted = feature.strip().lower()
    for candidate, label in FEATURE_LABELS.items():
        if label.lower() == wanted or candidate.name == wanted:
            return candidate
    return None


def _flags_from(plan_features: Any) -> Optional[Mapping[str, Any]]:
    if plan_features is None:
        return None
    if isinstance(plan_features, PlanFeatures):
        return plan_features.search_filters.to_wire()
    if isinstance(plan_features, Mapping):
        flags = plan_features.get("searchFilters")
        if isinstance(flags, Mapping):
            return flags
    return None


def is_feature_enabled(plan_features: Optional[Union[PlanFeatures, Mapping[str, Any]]], feature: FeatureLike) -> bool:
    """
    True only if plan_features explicitly enables the feature.

    Never raises: an absent map (not fetched yet), an unknown feature name or
    malformed flags all read as disabled.
    """
    resolved = to_feature(feature)
    if resolved is None:
        return False
    flags = _flags_from(plan_features)
    if not flags:
        return False
    return flags.get(resolved.value) is True


def required_plan_key(feature: FeatureLike) -> PlanKey:
    resolved = to_feature(feature)
    if resolved is None:
        return DEFAULT_REQUIRED_PLAN
    return REQUIRED_PLAN.get(resolved, DEFAULT_REQUIRED_PLAN)


def required_plan_for(feature: FeatureLike) -> str:
    """Human label of the lowest plan that includes the feature, e.g. 'Basic'."""
    return required_plan_key(feature).label


def feature_label(feature: FeatureLike) -> str:
    resolved = to_feature(feature)
    if resolved is None:
        return str(feature)
    return FEATURE_LABELS[resolved]
