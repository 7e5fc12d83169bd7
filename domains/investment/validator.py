"""
domains/investment/validator.py

Pre-flight checks for an investment order.

The client runs these for instant feedback; the backend runs the same checks
against a freshly loaded project and is the final authority.
"""

from __future__ import annotations

import math
from numbers import Number
from typing import Any, Optional

from domains.investment.errors import (
    BelowMinimum,
    ExceedsRemaining,
    MissingPaymentMethod,
    Unauthenticated,
)
from domains.investment.formatting import format_currency
from domains.investment.models.project import Project


def validate_investment(
    amount: Any,
    project: Project,
    payment_method: Optional[str] = None,
    user: Optional[Any] = None,
) -> float:
    """
    Validate an investment amount against the project's funding state.

    Args:
        amount: Requested amount
        project: Project being funded
        payment_method: Selected payment method (None/"" means not selected)
        user: Signed-in user context; anything falsy means signed out

    Returns:
        The amount, unchanged

    Raises:
        Unauthenticated: No signed-in user
        BelowMinimum: amount < project.min_investment (or not a number)
        ExceedsRemaining: amount > target_amount - funded_amount
        MissingPaymentMethod: No payment method selected
    """
    if not user:
        raise Unauthenticated("Please login to invest")

    if (
        not isinstance(amount, Number)
        or isinstance(amount, bool)
        or not math.isfinite(amount)
        or amount < project.min_investment
    ):
        raise BelowMinimum(f"Minimum investment is {format_currency(project.min_investment)}")

    remaining = project.remaining_amount
    if amount > remaining:
        raise ExceedsRemaining(
            f"Investment amount exceeds remaining target. Maximum: {format_currency(remaining)}"
        )

    if not payment_method:
        raise MissingPaymentMethod("Please select a payment method")

    return amount
