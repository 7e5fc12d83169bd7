from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from domains.investment.models.base import CamelModel
from domains.investment.models.project import ProjectStatus


class SortField(str, Enum):
    created_at = "createdAt"
    roi_percent = "roiPercent"
    target_amount = "targetAmount"
    funded_amount = "fundedAmount"
    duration_months = "durationMonths"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


DEFAULT_SORT_FIELD = SortField.created_at
DEFAULT_SORT_ORDER = SortOrder.desc


class SearchFilters(CamelModel):
    """
    Raw search criteria as typed by the user.
    Numeric bounds stay untyped here; the query builder decides what is usable.
    """

    search: Optional[str] = None
    category: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    status: Optional[str] = None
    min_roi: Any = Field(None, alias="minROI")
    max_roi: Any = Field(None, alias="maxROI")
    min_amount: Any = None
    max_amount: Any = None
    min_duration: Any = None
    max_duration: Any = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None


class SearchQuery(CamelModel):
    """Request body for POST /projects/search."""

    search: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = None
    categories: Optional[List[str]] = None
    status: Optional[ProjectStatus] = None
    min_roi: Optional[float] = Field(None, alias="minROI")
    max_roi: Optional[float] = Field(None, alias="maxROI")
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None
    sort_by: Optional[SortField] = None
    sort_order: Optional[SortOrder] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)

    def to_payload(self) -> Dict[str, Any]:
        """Minimal wire dict: unset fields are omitted."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
