"""
domains/investment/test_validator.py

Boundary tests for the investment pre-flight validator.
"""

import pytest

from domains.investment.errors import (
    BelowMinimum,
    ExceedsRemaining,
    InvestmentError,
    MissingPaymentMethod,
    Unauthenticated,
)
from domains.investment.models.project import Project
from domains.investment.validator import validate_investment

USER = {"id": 1, "email": "investor@example.com"}


@pytest.fixture
def project():
    return Project(
        id=7,
        title="Solar Farm Expansion",
        category="Energy",
        min_investment=500,
        roi_percent=12,
        target_amount=100_000,
        funded_amount=99_000,
        duration_months=12,
    )


def test_minimum_is_accepted(project):
    assert validate_investment(500, project, "stripe", USER) == 500


def test_exact_remaining_is_accepted(project):
    assert validate_investment(1000, project, "paypal", USER) == 1000


def test_amount_returned_unchanged(project):
    amount = 750.25
    assert validate_investment(amount, project, "wallet", USER) is amount


def test_below_minimum(project):
    with pytest.raises(BelowMinimum) as exc_info:
        validate_investment(499.99, project, "stripe", USER)
    assert "$500.00" in exc_info.value.message


def test_exceeds_remaining(project):
    with pytest.raises(ExceedsRemaining) as exc_info:
        validate_investment(1000.01, project, "stripe", USER)
    assert "Maximum: $1,000.00" in exc_info.value.message


@pytest.mark.parametrize("method", [None, ""])
def test_missing_payment_method(project, method):
    with pytest.raises(MissingPaymentMethod):
        validate_investment(600, project, method, USER)


@pytest.mark.parametrize("user", [None, {}])
def test_signed_out_user(project, user):
    with pytest.raises(Unauthenticated):
        validate_investment(600, project, "stripe", user)


def test_auth_is_checked_before_amount(project):
    """Signed-out users are sent to login even if the amount is also wrong."""
    with pytest.raises(Unauthenticated):
        validate_investment(1, project, None, None)


@pytest.mark.parametrize("amount", ["600", None, float("nan"), True])
def test_non_numeric_amount_is_below_minimum(project, amount):
    with pytest.raises(BelowMinimum):
        validate_investment(amount, project, "stripe", USER)


def test_errors_share_a_base_class(project):
    with pytest.raises(InvestmentError) as exc_info:
        validate_investment(2000, project, "stripe", USER)
    assert exc_info.value.code == "exceeds_remaining"
    assert exc_info.value.status_code == 400
