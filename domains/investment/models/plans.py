from enum import Enum
from typing import Optional

from pydantic import Field

from domains.investment.models.base import CamelModel


class PlanKey(str, Enum):
    """Subscription tiers, ordered by increasing capability."""

    free = "free"
    basic = "basic"
    plus = "plus"
    premium = "premium"

    @property
    def rank(self) -> int:
        return PLAN_ORDER.index(self)

    @property
    def label(self) -> str:
        return self.value.capitalize()


PLAN_ORDER = [PlanKey.free, PlanKey.basic, PlanKey.plus, PlanKey.premium]


class PlanStatus(str, Enum):
    active = "active"
    trial = "trial"
    expired = "expired"


class FilterFeature(str, Enum):
    """Keys of PlanFeatures.searchFilters."""

    basic_filters = "basicFilters"
    roi_range = "roiRange"
    amount_range = "amountRange"
    multiple_categories = "multipleCategories"
    advanced_sort = "advancedSort"
    duration_filter = "durationFilter"


class SearchFilterFlags(CamelModel):
    basic_filters: bool = False
    roi_range: bool = False
    amount_range: bool = False
    multiple_categories: bool = False
    advanced_sort: bool = False
    duration_filter: bool = False


class PlanFeatures(CamelModel):
    """Server-supplied entitlements for the current user. Defaults are all-disabled."""

    name: Optional[str] = None
    search_filters: SearchFilterFlags = Field(default_factory=SearchFilterFlags)
