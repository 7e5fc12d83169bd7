"""
backend/routes_investments.py

Investment endpoints. The server re-runs the same validator the client uses,
against a freshly loaded project, and is the final authority.

Error contract (rendered by main.py exception handlers):
- 401 unauthenticated
- 400 below_minimum / exceeds_remaining / missing_payment_method / project_not_active
- 404 project or investment not found
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

try:
    from backend.auth_context import AuthContext, require_auth_context
    from backend.config import CANCEL_WINDOW_HOURS
    from backend.db import get_db, now_iso, row_to_investment
    from backend.project_queries import get_project
    from backend.schemas import CancelInvestmentRequest, ok
except ModuleNotFoundError:
    from auth_context import AuthContext, require_auth_context
    from config import CANCEL_WINDOW_HOURS
    from db import get_db, now_iso, row_to_investment
    from project_queries import get_project
    from schemas import CancelInvestmentRequest, ok

from domains.investment.calculator import expected_return
from domains.investment.errors import ExceedsRemaining, InvestmentError, ProjectNotActive
from domains.investment.models.project import InvestmentRequest, InvestmentStatus, ProjectStatus
from domains.investment.validator import validate_investment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/investments", tags=["investments"])

# Absorbs float noise when an investment takes exactly the remaining amount
FUNDING_EPSILON = 1e-6

INVESTMENT_SELECT = """
    SELECT i.*, p.title AS project_title
    FROM investments i
    JOIN projects p ON p.id = i.project_id
"""


class CancelWindowExpired(InvestmentError):
    code = "cancel_window_expired"


@router.post("", status_code=201)
def create_investment(req: InvestmentRequest, ctx: AuthContext = Depends(require_auth_context)):
    conn = get_db()
    try:
        project = get_project(conn, req.project_id)
        if project is None:
            raise HTTPException(status_code=404, detail="Project not found")
        if project.status != ProjectStatus.active:
            raise ProjectNotActive("This project is no longer accepting investments")

        payment_method = req.payment_method.value if req.payment_method else None
        amount = validate_investment(req.amount, project, payment_method, ctx)

        # Conditional update: a concurrent investment may have taken the remaining amount
        cur = conn.execute(
            """
            UPDATE projects
            SET funded_amount = MIN(target_amount, funded_amount + ?)
            WHERE id = ? AND status = 'active' AND funded_amount + ? <= target_amount + ?
            """,
            (amount, project.id, amount, FUNDING_EPSILON),
        )
        if cur.rowcount == 0:
            conn.rollback()
            raise ExceedsRemaining("Investment amount exceeds remaining target")

        cur = conn.execute(
            """
            INSERT INTO investments (user_id, project_id, amount, payment_method, status, expected_return, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                ctx.user_id,
                project.id,
                amount,
                payment_method,
                InvestmentStatus.completed.value,
                expected_return(amount, project.roi_percent),
                now_iso(),
            ),
        )
        investment_id = cur.lastrowid
        conn.commit()

        investment = row_to_investment(
            conn.execute(INVESTMENT_SELECT + " WHERE i.id = ?", (investment_id,)).fetchone()
        )
        refreshed = get_project(conn, project.id)
    finally:
        conn.close()

    logger.info(
        f"[INVEST] user_id={ctx.user_id}, project_id={project.id}, amount={amount}, "
        f"funded={refreshed.funded_amount}/{refreshed.target_amount}"
    )
    return ok({"investment": investment.to_wire(), "project": refreshed.to_wire()})


@router.get("/my-investments")
def my_investments(ctx: AuthContext = Depends(require_auth_context)):
    conn = get_db()
    try:
        rows = conn.execute(
            INVESTMENT_SELECT + " WHERE i.user_id = ? ORDER BY i.created_at DESC, i.id DESC",
            (ctx.user_id,),
        ).fetchall()
    finally:
        conn.close()

    investments = [row_to_investment(row) for row in rows]
    completed = [i for i in investments if i.status == InvestmentStatus.completed]
    summary = {
        "totalInvested": sum(i.amount for i in completed),
        "expectedReturns": sum(i.expected_return for i in completed),
        "activeInvestments": len(completed),
        "totalInvestments": len(investments),
    }
    return ok({"investments": [i.to_wire() for i in investments], "summary": summary})


@router.post("/{investment_id}/cancel")
def cancel_investment(
    investment_id: int,
    req: Optional[CancelInvestmentRequest] = None,
    ctx: AuthContext = Depends(require_auth_context),
):
    """Cancel an own investment within the cancel window and release its funding."""
    conn = get_db()
    try:
        row = conn.execute(
            INVESTMENT_SELECT + " WHERE i.id = ? AND i.user_id = ?",
            (investment_id, ctx.user_id),
        ).fetchone()
        if not row:
            # 404 (not 403) so other users' ids cannot be enumerated
            raise HTTPException(status_code=404, detail="Investment not found")

        investment = row_to_investment(row)
        if investment.status != InvestmentStatus.completed:
            raise InvestmentError("Only completed investments can be cancelled")

        created_at = investment.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - created_at > timedelta(hours=CANCEL_WINDOW_HOURS):
            raise CancelWindowExpired(
                f"Investments can only be cancelled within {CANCEL_WINDOW_HOURS} hours"
            )

        # Conditional update: a concurrent cancel may already have released this funding
        cur = conn.execute(
            """
            UPDATE investments SET status = ?, cancelled_at = ?, cancel_reason = ?
            WHERE id = ? AND user_id = ? AND status = ?
            """,
            (
                InvestmentStatus.cancelled.value,
                now_iso(),
                req.reason if req else None,
                investment_id,
                ctx.user_id,
                InvestmentStatus.completed.value,
            ),
        )
        if cur.rowcount == 0:
            conn.rollback()
            raise InvestmentError("Only completed investments can be cancelled")

        conn.execute(
            "UPDATE projects SET funded_amount = MAX(0, funded_amount - ?) WHERE id = ?",
            (investment.amount, investment.project_id),
        )
        conn.commit()

        cancelled = row_to_investment(
            conn.execute(INVESTMENT_SELECT + " WHERE i.id = ?", (investment_id,)).fetchone()
        )
        project = get_project(conn, investment.project_id)
    finally:
        conn.close()

    logger.info(f"[INVEST] Cancelled investment_id={investment_id} by user_id={ctx.user_id}")
    return ok({"investment": cancelled.to_wire(), "project": project.to_wire()})
