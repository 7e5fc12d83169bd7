"""
backend/schemas.py

Request schemas that only the HTTP layer needs, plus the response envelope.
Shared value objects (Project, SearchQuery, SimulationResult, ...) live in
domains/investment/models.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from domains.investment.models.base import CamelModel
from domains.investment.models.plans import PlanKey


def ok(data: Any) -> Dict[str, Any]:
    """Success envelope: {"success": true, "data": ...}."""
    return {"success": True, "data": data}


def error_body(message: str, code: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Error envelope: {"success": false, "message": ..., "code": ...}."""
    return {"success": False, "message": message, "code": code, **extra}


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("name", mode="before")
    @classmethod
    def trim_name(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class SimulationRequest(CamelModel):
    """
    Raw calculator input. Types are loose on purpose so out-of-range values
    reach the calculator and come back as a field-specific 400.
    """
    amount: float
    roi_percent: float
    duration_months: float


class CancelInvestmentRequest(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)


class UpgradeRequest(CamelModel):
    plan_key: PlanKey
