"""
domains/investment/query_builder.py

Builds the POST /projects/search body from raw user criteria.

Rules:
- page and limit are always present
- search / category / status are basic filters, sent when non-empty and not "all"
- every other filter is sent only when the plan enables it
- numeric bounds that do not parse as finite numbers are dropped, not rejected
- sort is sent only when enabled and different from the default (createdAt desc)
"""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Optional, Union

from domains.investment.gating import is_feature_enabled
from domains.investment.models.plans import FilterFeature, PlanFeatures
from domains.investment.models.project import ProjectStatus
from domains.investment.models.search import (
    DEFAULT_SORT_FIELD,
    DEFAULT_SORT_ORDER,
    SearchFilters,
    SearchQuery,
    SortField,
    SortOrder,
)

ALL = "all"


def parse_number(raw: Any) -> Optional[float]:
    """Parse user-entered text into a finite float, or None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def _text(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    value = str(raw).strip()
    if not value or value.lower() == ALL:
        return None
    return value


def _status(raw: Optional[str]) -> Optional[ProjectStatus]:
    value = _text(raw)
    if value is None:
        return None
    try:
        return ProjectStatus(value.lower())
    except ValueError:
        return None


def _sort(filters: SearchFilters) -> Dict[str, Any]:
    try:
        sort_by = SortField(filters.sort_by) if filters.sort_by else DEFAULT_SORT_FIELD
    except ValueError:
        sort_by = DEFAULT_SORT_FIELD
    try:
        sort_order = SortOrder(filters.sort_order.lower()) if filters.sort_order else DEFAULT_SORT_ORDER
    except ValueError:
        sort_order = DEFAULT_SORT_ORDER

    if sort_by == DEFAULT_SORT_FIELD and sort_order == DEFAULT_SORT_ORDER:
        return {}
    return {"sort_by": sort_by, "sort_order": sort_order}


def _range(low: Any, high: Any, as_int: bool = False) -> Dict[str, Any]:
    bounds = {}
    for key, raw in (("min", low), ("max", high)):
        value = parse_number(raw)
        if value is None:
            continue
        bounds[key] = int(value) if as_int else value
    return bounds


def build_search_query(
    filters: Union[SearchFilters, Mapping[str, Any], None],
    plan_features: Optional[Union[PlanFeatures, Mapping[str, Any]]],
    page: int = 1,
    limit: int = 20,
) -> SearchQuery:
    """
    Assemble a SearchQuery that only uses filters the plan allows.

    Args:
        filters: Raw criteria (SearchFilters or a dict using wire/python names)
        plan_features: Last PlanFeatures received from the server; None = not fetched
        page: 1-based page number
        limit: Page size

    Returns:
        SearchQuery; identical inputs always give an equal query
    """
    if filters is None:
        filters = SearchFilters()
    elif not isinstance(filters, SearchFilters):
        filters = SearchFilters.model_validate(dict(filters))

    fields: Dict[str, Any] = {"page": page, "limit": limit}

    search = (filters.search or "").strip()
    if search:
        fields["search"] = search
    category = _text(filters.category)
    if category:
        fields["category"] = category
    status = _status(filters.status)
    if status:
        fields["status"] = status

    if is_feature_enabled(plan_features, FilterFeature.multiple_categories):
        categories = sorted({c.strip() for c in filters.categories if c and c.strip()})
        if categories:
            fields["categories"] = categories

    if is_feature_enabled(plan_features, FilterFeature.roi_range):
        bounds = _range(filters.min_roi, filters.max_roi)
        if "min" in bounds:
            fields["min_roi"] = bounds["min"]
        if "max" in bounds:
            fields["max_roi"] = bounds["max"]

    if is_feature_enabled(plan_features, FilterFeature.amount_range):
        bounds = _range(filters.min_amount, filters.max_amount)
        if "min" in bounds:
            fields["min_amount"] = bounds["min"]
        if "max" in bounds:
            fields["max_amount"] = bounds["max"]

    if is_feature_enabled(plan_features, FilterFeature.duration_filter):
        bounds = _range(filters.min_duration, filters.max_duration, as_int=True)
        if "min" in bounds:
            fields["min_duration"] = bounds["min"]
        if "max" in bounds:
            fields["max_duration"] = bounds["max"]

    if is_feature_enabled(plan_features, FilterFeature.advanced_sort):
        fields.update(_sort(filters))

    return SearchQuery(**fields)
