"""
domains/investment/errors.py

Error taxonomy shared by the backend and the frontend client.

Every error carries a stable ``code`` so it survives an HTTP round trip:
the backend renders ``{"success": false, "message": ..., "code": ...}`` and the
client rebuilds the same exception class from ``code``.
"""

from __future__ import annotations

from typing import Dict, Optional, Type


class ValidationError(ValueError):
    """Raised when calculator input is malformed or out of range."""

    code = "validation_error"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class InvestmentError(Exception):
    """Base class for pre-flight investment failures."""

    code = "investment_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BelowMinimum(InvestmentError):
    code = "below_minimum"


class ExceedsRemaining(InvestmentError):
    code = "exceeds_remaining"


class MissingPaymentMethod(InvestmentError):
    code = "missing_payment_method"


class Unauthenticated(InvestmentError):
    """No signed-in user. Callers should send the user to the login page."""

    code = "unauthenticated"
    status_code = 401


class ProjectNotActive(InvestmentError):
    """Server-only: the project no longer accepts investments."""

    code = "project_not_active"


class PlanRestricted(Exception):
    """Raised when a request uses a search filter the user's plan does not include."""

    code = "plan_restricted"
    status_code = 403

    def __init__(self, feature: str, required_plan: str):
        self.feature = feature
        self.required_plan = required_plan
        self.message = f"{feature} filter requires {required_plan} plan or higher"
        super().__init__(self.message)


class ServerError(Exception):
    """Any non-2xx response (or transport failure) that has no more specific mapping."""

    code = "server_error"

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        if code:
            self.code = code


INVESTMENT_ERRORS: Dict[str, Type[InvestmentError]] = {
    cls.code: cls
    for cls in (BelowMinimum, ExceedsRemaining, MissingPaymentMethod, Unauthenticated, ProjectNotActive)
}


def investment_error_for(code: Optional[str]) -> Optional[Type[InvestmentError]]:
    """Return the InvestmentError subclass registered for ``code``, if any."""
    if not code:
        return None
    return INVESTMENT_ERRORS.get(code)
