"""
backend/routes_subscription.py

Plan catalog and the current user's subscription.

Plan changes are applied directly (no payment provider). Clients must refetch
plan features after any change here; search responses always carry the
current PlanFeatures.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

try:
    from backend.auth_context import AuthContext, build_auth_context, require_auth_context
    from backend.db import get_db
    from backend.entitlements import update_subscription_plan
    from backend.features import PLANS, get_plan_config
    from backend.schemas import UpgradeRequest, ok
except ModuleNotFoundError:
    from auth_context import AuthContext, build_auth_context, require_auth_context
    from db import get_db
    from entitlements import update_subscription_plan
    from features import PLANS, get_plan_config
    from schemas import UpgradeRequest, ok

from domains.investment.models.plans import PlanKey, PlanStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["subscription"])


def subscription_payload(ctx: AuthContext) -> Dict[str, Any]:
    return {
        "currentPlan": ctx.plan_key,
        "planStatus": ctx.plan_status,
        "renewalDate": ctx.plan_renewal,
        "effectivePlan": ctx.effective_plan,
        "planDetails": get_plan_config(PlanKey(ctx.effective_plan)),
        "planFeatures": ctx.plan_features.to_wire(),
    }


@router.get("/plans")
def get_available_plans():
    """Public plan catalog (no auth needed)."""
    return ok({"plans": {key.value: get_plan_config(key) for key in PLANS}})


@router.get("/current")
def current_subscription(ctx: AuthContext = Depends(require_auth_context)):
    return ok(subscription_payload(ctx))


@router.post("/upgrade")
def upgrade_plan(req: UpgradeRequest, ctx: AuthContext = Depends(require_auth_context)):
    if req.plan_key.value == ctx.plan_key and ctx.plan_status == PlanStatus.active.value:
        raise HTTPException(status_code=400, detail="You already have this plan")

    conn = get_db()
    try:
        update_subscription_plan(conn, ctx.user_id, req.plan_key)
    finally:
        conn.close()

    previous = PlanKey(ctx.plan_key)
    direction = "renewal" if req.plan_key == previous else ("upgrade" if req.plan_key.rank > previous.rank else "downgrade")
    logger.info(f"[SUBSCRIPTION] {direction}: user_id={ctx.user_id}, {ctx.plan_key} -> {req.plan_key.value}")
    return ok(subscription_payload(build_auth_context(ctx.user_id)))


@router.post("/cancel")
def cancel_subscription(ctx: AuthContext = Depends(require_auth_context)):
    """Cancel the paid plan; the user drops to free immediately."""
    if ctx.plan_key == PlanKey.free.value:
        raise HTTPException(status_code=400, detail="No paid subscription to cancel")

    conn = get_db()
    try:
        update_subscription_plan(conn, ctx.user_id, PlanKey.free)
    finally:
        conn.close()

    logger.info(f"[SUBSCRIPTION] Cancelled: user_id={ctx.user_id}, was={ctx.plan_key}")
    return ok(subscription_payload(build_auth_context(ctx.user_id)))
