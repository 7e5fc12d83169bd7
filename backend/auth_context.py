"""
backend/auth_context.py

Shared authentication context primitives for FastAPI dependency injection.

Contains:
- AuthContext: Immutable per-request user context with subscription state
- require_auth_context / optional_auth_context / require_admin: FastAPI dependencies
- create_access_token / verify_token: JWT helpers
- hash_password / verify_password: salted PBKDF2 password hashing

This module MUST NOT import backend.main to avoid circular dependencies.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict

try:
    from backend.config import ACCESS_TOKEN_MINUTES, ALGORITHM, SECRET_KEY
    from backend.db import get_db
    from backend.entitlements import get_effective_plan, get_subscription
    from backend.features import get_plan_features
except ModuleNotFoundError:
    from config import ACCESS_TOKEN_MINUTES, ALGORITHM, SECRET_KEY
    from db import get_db
    from entitlements import get_effective_plan, get_subscription
    from features import get_plan_features

from domains.investment.models.plans import PlanFeatures

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is a 401 (not FastAPI's default 403)
security = HTTPBearer(auto_error=False)

PBKDF2_ITERATIONS = 200_000


# ---------------------------------------------------------
# Passwords
# ---------------------------------------------------------
def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        salt, expected = password_hash.split("$", 1)
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return hmac.compare_digest(digest.hex(), expected)


# ---------------------------------------------------------
# JWT
# ---------------------------------------------------------
def create_access_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    expires = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or ACCESS_TOKEN_MINUTES)
    return jwt.encode({"sub": str(user_id), "exp": expires}, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Verify JWT access token and return decoded payload.

    Raises:
        HTTPException(401): If token is expired or invalid
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


# ---------------------------------------------------------
# AuthContext
# ---------------------------------------------------------
class AuthContext(BaseModel):
    """
    Immutable user context derived from the JWT and the users table.
    This is the ONLY source of truth for user_id and plan in protected endpoints.
    Never trust user ids or plan keys from request bodies.
    """
    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    name: str
    role: str
    plan_key: str
    plan_status: str
    plan_renewal: Optional[str] = None
    effective_plan: str
    plan_features: PlanFeatures

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def build_auth_context(user_id: int) -> AuthContext:
    conn = get_db()
    try:
        row = conn.execute(
            "SELECT id, email, name, role, is_active FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        if not row:
            logger.info(f"[AUTH] User not found: user_id={user_id}")
            raise HTTPException(status_code=401, detail="User not found")
        if not row["is_active"]:
            logger.info(f"[AUTH] Inactive user attempted access: user_id={user_id}")
            raise HTTPException(status_code=403, detail="Account inactive")
        subscription = get_subscription(conn, user_id)
    finally:
        conn.close()

    effective_plan = get_effective_plan(subscription)
    ctx = AuthContext(
        user_id=row["id"],
        email=row["email"],
        name=row["name"],
        role=row["role"] or "investor",
        plan_key=subscription.plan_key,
        plan_status=subscription.plan_status,
        plan_renewal=subscription.plan_renewal,
        effective_plan=effective_plan,
        plan_features=get_plan_features(effective_plan),
    )
    logger.debug(
        f"[AUTH] Authenticated: user_id={ctx.user_id}, role={ctx.role}, "
        f"plan={ctx.plan_key}, status={ctx.plan_status}, effective_plan={ctx.effective_plan}"
    )
    return ctx


def require_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthContext:
    """
    Auth dependency for protected routes.

    Raises:
        HTTPException(401): Missing, invalid or expired token, or unknown user
        HTTPException(403): Inactive user
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Please login to continue")
    payload = verify_token(credentials.credentials)
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        logger.info("[AUTH] Missing user_id in token payload")
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return build_auth_context(user_id)


def optional_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthContext]:
    """Like require_auth_context, but anonymous callers get None (public endpoints)."""
    if credentials is None:
        return None
    return require_auth_context(credentials)


def require_admin(ctx: AuthContext = Depends(require_auth_context)) -> AuthContext:
    if not ctx.is_admin:
        logger.info(f"[AUTHZ] Admin required: user_id={ctx.user_id}, role={ctx.role}")
        raise HTTPException(status_code=403, detail="Admin access required")
    return ctx
