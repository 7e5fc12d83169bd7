"""
domains/investment/calculator.py

Return calculator for the investment simulator.

Model (kept identical on server and client so both show the same figures):
- Simple, non-compounding ROI: total_return = amount * (1 + roi/100)
- Straight-line accrual across the duration for the monthly breakdown
- Simple annualisation: roi * 12 / months
- Daily profit assumes a fixed 30-day month

Arithmetic runs in Decimal and is converted to float at the model boundary,
so the last breakdown entry equals total_return exactly.
"""

from __future__ import annotations

import calendar
import math
from datetime import date
from decimal import Decimal
from numbers import Number
from typing import Optional

from domains.investment.errors import ValidationError
from domains.investment.models.simulation import (
    MonthlyPoint,
    SimulationInput,
    SimulationResult,
    SimulationStatistics,
)

DAYS_PER_MONTH = 30
MONTHS_PER_YEAR = 12


def _to_decimal(value) -> Decimal:
    # str() keeps the shortest repr of a float, so 0.1 stays 0.1
    return Decimal(str(value))


def _finite_number(value) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool) and math.isfinite(value)


def add_months(start: date, months: int) -> date:
    """
    Calendar month arithmetic with the day clamped to the end of the target month.
    Jan 31 + 1 month -> Feb 28 (or 29 in a leap year).
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def validate_simulation_input(amount, roi_percent, duration_months) -> SimulationInput:
    """Check calculator preconditions; raises ValidationError naming the bad field."""
    if not _finite_number(amount) or amount <= 0:
        raise ValidationError("amount", "Please enter a valid investment amount")
    if not _finite_number(roi_percent) or roi_percent < 0:
        raise ValidationError("roiPercent", "Please enter a valid ROI percentage")
    if not _finite_number(duration_months) or duration_months != int(duration_months):
        raise ValidationError("durationMonths", "Duration must be a whole number of months")
    if duration_months < 1:
        raise ValidationError("durationMonths", "Please enter a valid duration")

    return SimulationInput(
        amount=float(amount),
        roi_percent=float(roi_percent),
        duration_months=int(duration_months),
    )


def compute_simulation(
    amount,
    roi_percent,
    duration_months,
    today: Optional[date] = None,
) -> SimulationResult:
    """
    Project the return of an investment.

    Args:
        amount: Amount invested (> 0)
        roi_percent: Expected ROI over the whole duration, in percent (>= 0)
        duration_months: Whole number of months (>= 1)
        today: Start date for expected_return_date (defaults to date.today())

    Returns:
        SimulationResult

    Raises:
        ValidationError: If any input is out of range
    """
    params = validate_simulation_input(amount, roi_percent, duration_months)
    months = params.duration_months

    principal = _to_decimal(params.amount)
    roi = _to_decimal(params.roi_percent)

    total_return = principal * (1 + roi / 100)
    profit = total_return - principal

    breakdown = []
    for month in range(1, months + 1):
        accrued = profit * month / months
        breakdown.append(
            MonthlyPoint(
                month=month,
                value=float(principal + accrued),
                profit=float(accrued),
            )
        )

    monthly_profit = profit / months
    statistics = SimulationStatistics(
        monthly_profit=float(monthly_profit),
        daily_profit=float(monthly_profit / DAYS_PER_MONTH),
        annualized_return=float(roi * MONTHS_PER_YEAR / months),
    )

    start = today or date.today()
    return SimulationResult(
        initial_investment=params.amount,
        total_return=float(total_return),
        profit=float(profit),
        profit_percentage=params.roi_percent,
        expected_return_date=add_months(start, months),
        monthly_breakdown=breakdown,
        statistics=statistics,
    )


def expected_return(amount: float, roi_percent: float) -> float:
    """Amount paid back at maturity under the simple ROI model (used by the invest form)."""
    return float(_to_decimal(amount) * (1 + _to_decimal(roi_percent) / 100))
