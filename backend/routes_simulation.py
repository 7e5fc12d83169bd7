"""
backend/routes_simulation.py

POST /simulation - authoritative run of the return calculator.
The client computes the same figures locally for instant feedback.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

try:
    from backend.auth_context import AuthContext, optional_auth_context
    from backend.schemas import SimulationRequest, ok
except ModuleNotFoundError:
    from auth_context import AuthContext, optional_auth_context
    from schemas import SimulationRequest, ok

from domains.investment.calculator import compute_simulation, validate_simulation_input

logger = logging.getLogger(__name__)

router = APIRouter(tags=["simulation"])


@router.post("/simulation")
def simulate(req: SimulationRequest, ctx: Optional[AuthContext] = Depends(optional_auth_context)):
    """
    Raises:
        ValidationError (400): amount <= 0, roiPercent < 0, durationMonths < 1 or fractional
    """
    params = validate_simulation_input(req.amount, req.roi_percent, req.duration_months)
    result = compute_simulation(params.amount, params.roi_percent, params.duration_months)

    logger.debug(
        f"[SIMULATION] user_id={ctx.user_id if ctx else None}, amount={params.amount}, "
        f"roi={params.roi_percent}, months={params.duration_months}"
    )
    return ok(result.to_response(params))
