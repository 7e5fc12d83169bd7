"""
backend/entitlements.py

Subscription state per user and the effective plan derived from it.

Key principles:
- plan_status gates paid features (expired = downgrade to free)
- trial behaves like active
- a paid period whose renewal date has passed lapses to expired
- No payment provider SDK; plan changes are applied directly

Source of truth: plan_key / plan_status / plan_renewal columns on users
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from domains.investment.models.plans import PlanKey, PlanStatus

logger = logging.getLogger(__name__)

BILLING_PERIOD_DAYS = 30


@dataclass
class Subscription:
    user_id: int
    plan_key: str
    plan_status: str
    plan_renewal: Optional[str] = None

    @property
    def is_active(self) -> bool:
        """Check if subscription grants paid features."""
        return self.plan_status in (PlanStatus.active.value, PlanStatus.trial.value)


def is_lapsed(plan_renewal: Optional[str], now: Optional[datetime] = None) -> bool:
    """A billing period without a renewal date never lapses."""
    if not plan_renewal:
        return False
    renewal = datetime.fromisoformat(plan_renewal)
    if renewal.tzinfo is None:
        renewal = renewal.replace(tzinfo=timezone.utc)
    return renewal <= (now or datetime.now(timezone.utc))


def get_subscription(conn: sqlite3.Connection, user_id: int) -> Subscription:
    """
    Fetch the subscription for a user.
    A paid period whose renewal date has passed is marked expired here.
    Missing users get a default free subscription so callers never see None.
    """
    row = conn.execute(
        "SELECT id, plan_key, plan_status, plan_renewal FROM users WHERE id = ?",
        (user_id,),
    ).fetchone()
    if row:
        subscription = Subscription(
            user_id=row["id"],
            plan_key=row["plan_key"] or PlanKey.free.value,
            plan_status=row["plan_status"] or PlanStatus.active.value,
            plan_renewal=row["plan_renewal"],
        )
        if subscription.is_active and is_lapsed(subscription.plan_renewal):
            update_subscription_status(conn, user_id, PlanStatus.expired)
            logger.info(f"[SUBSCRIPTION] Renewal date passed: user_id={user_id}, plan={subscription.plan_key}")
            subscription.plan_status = PlanStatus.expired.value
        return subscription
    return Subscription(user_id=user_id, plan_key=PlanKey.free.value, plan_status=PlanStatus.active.value)


def get_effective_plan(subscription: Subscription) -> str:
    """
    Rules:
    - active or trial: the subscribed plan
    - expired (or unknown status): free
    """
    if subscription.is_active:
        return subscription.plan_key
    return PlanKey.free.value


def update_subscription_plan(conn: sqlite3.Connection, user_id: int, plan_key: PlanKey) -> Subscription:
    """Switch a user to plan_key with a fresh billing period (free has no renewal date)."""
    renewal = None
    if plan_key != PlanKey.free:
        renewal = (datetime.now(timezone.utc) + timedelta(days=BILLING_PERIOD_DAYS)).isoformat()
    conn.execute(
        "UPDATE users SET plan_key = ?, plan_status = ?, plan_renewal = ? WHERE id = ?",
        (plan_key.value, PlanStatus.active.value, renewal, user_id),
    )
    conn.commit()
    logger.info(f"[SUBSCRIPTION] user_id={user_id} -> plan={plan_key.value}")
    return get_subscription(conn, user_id)


def update_subscription_status(conn: sqlite3.Connection, user_id: int, status: PlanStatus) -> None:
    conn.execute("UPDATE users SET plan_status = ? WHERE id = ?", (status.value, user_id))
    conn.commit()
