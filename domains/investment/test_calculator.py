"""
domains/investment/test_calculator.py

Tests for the investment return calculator.

Run: python -m pytest domains/investment/test_calculator.py -v
"""

from datetime import date

import pytest

from domains.investment.calculator import add_months, compute_simulation, expected_return
from domains.investment.errors import ValidationError

START = date(2026, 1, 15)


# ============================================================================
# Core identities
# ============================================================================

@pytest.mark.parametrize("amount", [0.01, 1, 999.99, 10000, 2_500_000.5])
def test_zero_roi_returns_principal(amount):
    """With 0% ROI there is no profit and the principal comes back unchanged."""
    result = compute_simulation(amount, 0, 7, today=START)

    assert result.profit == 0
    assert result.total_return == amount
    assert all(point.value == amount for point in result.monthly_breakdown)


@pytest.mark.parametrize(
    "amount, roi, months",
    [(10000, 15, 12), (0.1, 7.3, 11), (1234.56, 33.3, 7), (99.99, 0.5, 120)],
)
def test_last_month_closes_on_total_return(amount, roi, months):
    result = compute_simulation(amount, roi, months, today=START)

    assert len(result.monthly_breakdown) == months
    assert result.monthly_breakdown[-1].month == months
    assert result.monthly_breakdown[-1].value == result.total_return
    assert result.monthly_breakdown[-1].profit == result.profit


def test_annualized_return():
    assert compute_simulation(1000, 12, 12, today=START).statistics.annualized_return == 12
    assert compute_simulation(1000, 12, 6, today=START).statistics.annualized_return == 24
    assert compute_simulation(1000, 12, 24, today=START).statistics.annualized_return == 6


def test_profit_does_not_depend_on_duration():
    """Simple ROI: duration only spreads the profit, it never changes its size."""
    short = compute_simulation(8000, 10, 3, today=START)
    long = compute_simulation(8000, 10, 36, today=START)

    assert short.profit == long.profit == 800
    assert short.profit_percentage == long.profit_percentage == 10


# ============================================================================
# End-to-end scenarios
# ============================================================================

def test_moderate_preset_scenario():
    result = compute_simulation(10000, 15, 12, today=START)

    assert result.initial_investment == 10000
    assert result.profit == 1500
    assert result.total_return == 11500
    assert result.statistics.monthly_profit == 125
    assert result.statistics.daily_profit == pytest.approx(4.17, abs=0.005)
    assert result.statistics.annualized_return == 15
    assert result.expected_return_date == date(2027, 1, 15)


def test_six_month_scenario_is_linear():
    result = compute_simulation(5000, 12, 6, today=START)

    assert result.profit == 600
    assert result.statistics.annualized_return == 24

    third = result.monthly_breakdown[2]
    assert third.month == 3
    assert third.value == 5300
    assert third.profit == 300

    values = [point.value for point in result.monthly_breakdown]
    assert values == [5100, 5200, 5300, 5400, 5500, 5600]


def test_daily_profit_uses_thirty_day_month():
    result = compute_simulation(3000, 30, 3, today=START)

    assert result.statistics.monthly_profit == 300
    assert result.statistics.daily_profit == 10


# ============================================================================
# Calendar arithmetic
# ============================================================================

@pytest.mark.parametrize(
    "start, months, expected",
    [
        (date(2026, 1, 31), 1, date(2026, 2, 28)),
        (date(2028, 1, 31), 1, date(2028, 2, 29)),
        (date(2026, 3, 31), 1, date(2026, 4, 30)),
        (date(2026, 11, 30), 3, date(2027, 2, 28)),
        (date(2026, 10, 19), 12, date(2027, 10, 19)),
        (date(2026, 12, 15), 1, date(2027, 1, 15)),
    ],
)
def test_add_months_clamps_day(start, months, expected):
    assert add_months(start, months) == expected


def test_expected_return_date_defaults_to_today():
    result = compute_simulation(100, 5, 2)
    assert result.expected_return_date == add_months(date.today(), 2)


# ============================================================================
# Validation
# ============================================================================

@pytest.mark.parametrize(
    "amount, roi, months, field",
    [
        (0, 10, 12, "amount"),
        (-50, 10, 12, "amount"),
        (float("nan"), 10, 12, "amount"),
        (float("inf"), 10, 12, "amount"),
        ("1000", 10, 12, "amount"),
        (1000, -1, 12, "roiPercent"),
        (1000, None, 12, "roiPercent"),
        (1000, 10, 0, "durationMonths"),
        (1000, 10, 6.5, "durationMonths"),
        (1000, 10, True, "durationMonths"),
    ],
)
def test_invalid_input_names_the_field(amount, roi, months, field):
    with pytest.raises(ValidationError) as exc_info:
        compute_simulation(amount, roi, months, today=START)
    assert exc_info.value.field == field


def test_integral_float_duration_is_accepted():
    result = compute_simulation(1000, 10, 12.0, today=START)
    assert len(result.monthly_breakdown) == 12


# ============================================================================
# Wire format
# ============================================================================

def test_response_round_trip_keeps_figures():
    from domains.investment.models.simulation import SimulationInput, SimulationResult

    result = compute_simulation(5000, 12, 6, today=START)
    payload = result.to_response(SimulationInput(amount=5000, roi_percent=12, duration_months=6))

    assert payload["input"] == {"amount": 5000.0, "roiPercent": 12.0, "durationMonths": 6}
    assert payload["results"]["expectedReturnDate"] == "2026-07-15"
    assert payload["statistics"]["annualizedReturn"] == 24
    assert SimulationResult.from_response(payload) == result


def test_expected_return_helper_matches_calculator():
    assert expected_return(10000, 15) == compute_simulation(10000, 15, 12, today=START).total_return
