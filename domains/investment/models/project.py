from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from domains.investment.models.base import CamelModel


class ProjectStatus(str, Enum):
    active = "active"
    completed = "completed"
    closed = "closed"


class PaymentMethod(str, Enum):
    stripe = "stripe"
    paypal = "paypal"
    bank_transfer = "bank_transfer"
    wallet = "wallet"


class InvestmentStatus(str, Enum):
    completed = "completed"
    cancelled = "cancelled"


class Project(CamelModel):
    """
    A funding project as returned by the API.
    The client treats it as read-only apart from refreshing funded_amount after an investment.
    """

    id: int
    title: str
    description: Optional[str] = None
    category: str
    min_investment: float = Field(..., ge=0)
    roi_percent: float = Field(..., ge=0)
    target_amount: float = Field(..., gt=0)
    funded_amount: float = Field(0.0, ge=0)
    duration_months: int = Field(..., ge=1)
    status: ProjectStatus = ProjectStatus.active
    created_at: Optional[datetime] = None

    @property
    def remaining_amount(self) -> float:
        return self.target_amount - self.funded_amount

    @property
    def funding_progress(self) -> float:
        """Funded share of the target as a percentage (0-100)."""
        return min(100.0, self.funded_amount / self.target_amount * 100.0)


class ProjectCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    category: str = Field(..., min_length=1, max_length=100)
    min_investment: float = Field(..., ge=0)
    roi_percent: float = Field(..., ge=0, le=1000)
    target_amount: float = Field(..., gt=0)
    duration_months: int = Field(..., ge=1, le=120)
    status: ProjectStatus = ProjectStatus.active


class InvestmentRequest(CamelModel):
    """Payload for POST /investments. Built per submission, never stored client-side."""

    project_id: int
    amount: float
    payment_method: Optional[PaymentMethod] = None


class Investment(CamelModel):
    id: int
    project_id: int
    project_title: Optional[str] = None
    amount: float
    payment_method: PaymentMethod
    status: InvestmentStatus = InvestmentStatus.completed
    expected_return: float
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
