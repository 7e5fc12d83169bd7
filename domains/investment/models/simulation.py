from datetime import date
from typing import Any, Dict, List

from pydantic import Field

from domains.investment.models.base import CamelModel


class SimulationInput(CamelModel):
    amount: float
    roi_percent: float
    duration_months: int


class MonthlyPoint(CamelModel):
    month: int
    value: float
    profit: float


class SimulationStatistics(CamelModel):
    monthly_profit: float
    daily_profit: float
    annualized_return: float


class SimulationResult(CamelModel):
    """
    Output of the return calculator.

    The wire format groups the headline figures under "results", the way the
    calculator page has always consumed them:
        {"input": {...}, "results": {...}, "monthlyBreakdown": [...], "statistics": {...}}
    """

    initial_investment: float
    total_return: float
    profit: float
    profit_percentage: float
    expected_return_date: date
    monthly_breakdown: List[MonthlyPoint] = Field(default_factory=list)
    statistics: SimulationStatistics

    def to_response(self, simulation_input: SimulationInput) -> Dict[str, Any]:
        wire = self.to_wire()
        return {
            "input": simulation_input.to_wire(),
            "results": {
                "initialInvestment": wire["initialInvestment"],
                "totalReturn": wire["totalReturn"],
                "profit": wire["profit"],
                "profitPercentage": wire["profitPercentage"],
                "expectedReturnDate": wire["expectedReturnDate"],
            },
            "monthlyBreakdown": wire["monthlyBreakdown"],
            "statistics": wire["statistics"],
        }

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "SimulationResult":
        results = data.get("results") or {}
        return cls.model_validate({
            **results,
            "monthlyBreakdown": data.get("monthlyBreakdown") or [],
            "statistics": data.get("statistics") or {},
        })
