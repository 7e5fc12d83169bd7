# ---------------------------------------------------------
# backend/main.py
# Crowdvest - Investment Platform Backend
#
# Run: uvicorn backend.main:app --reload (from repo root)
#
# - FastAPI + SQLite
# - /simulation             : return calculator (public)
# - /projects, /projects/search : listing + plan-gated search
# - /investments            : invest, list own, cancel
# - /subscription/*         : plan catalog + plan changes
# - /auth/*                 : register / login / me
#
# Every response uses the envelope {"success": bool, "data" | "message", "code"}.
# ---------------------------------------------------------

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import local modules (robust fallback for different run contexts)
try:
    from backend.auth_context import (
        AuthContext,
        create_access_token,
        hash_password,
        require_auth_context,
        verify_password,
    )
    from backend.config import ADMIN_EMAILS, CORS_ORIGINS, ENV, IS_PROD
    from backend.db import get_db, init_db, now_iso
    from backend.routes_investments import router as investments_router
    from backend.routes_projects import router as projects_router
    from backend.routes_simulation import router as simulation_router
    from backend.routes_subscription import router as subscription_router
    from backend.schemas import LoginRequest, RegisterRequest, error_body, ok
except ModuleNotFoundError:
    from auth_context import (
        AuthContext,
        create_access_token,
        hash_password,
        require_auth_context,
        verify_password,
    )
    from config import ADMIN_EMAILS, CORS_ORIGINS, ENV, IS_PROD
    from db import get_db, init_db, now_iso
    from routes_investments import router as investments_router
    from routes_projects import router as projects_router
    from routes_simulation import router as simulation_router
    from routes_subscription import router as subscription_router
    from schemas import LoginRequest, RegisterRequest, error_body, ok

from domains.investment.errors import InvestmentError, PlanRestricted, ValidationError

logger = logging.getLogger(__name__)

# Envelope code for plain HTTPExceptions, by status
HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
}


# ---------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------
app = FastAPI(title="Crowdvest API", version="0.1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if IS_PROD else ["*"],  # Restrict origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

init_db()

app.include_router(simulation_router)
app.include_router(projects_router)
app.include_router(investments_router)
app.include_router(subscription_router)


# ---------------------------------------------------------
# Error envelope
# ---------------------------------------------------------
@app.exception_handler(InvestmentError)
def handle_investment_error(request: Request, exc: InvestmentError):
    logger.info(f"[API] {request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.code))


@app.exception_handler(ValidationError)
def handle_validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content=error_body(exc.message, exc.code, field=exc.field))


@app.exception_handler(PlanRestricted)
def handle_plan_restricted(request: Request, exc: PlanRestricted):
    logger.info(f"[API] {request.url.path} plan restricted: {exc.feature} needs {exc.required_plan}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.code, feature=exc.feature, requiredPlan=exc.required_plan),
    )


@app.exception_handler(StarletteHTTPException)
def handle_http_exception(request: Request, exc: StarletteHTTPException):
    code = HTTP_ERROR_CODES.get(exc.status_code, "server_error" if exc.status_code >= 500 else "error")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=error_body("Invalid request", "validation_error", errors=jsonable_encoder(exc.errors())),
    )


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------
def user_payload(row: sqlite3.Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "role": row["role"],
        "planKey": row["plan_key"],
        "planStatus": row["plan_status"],
        "planRenewal": row["plan_renewal"],
        "createdAt": row["created_at"],
    }


# ---------------------------------------------------------
# Routes
# ---------------------------------------------------------
@app.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok", "env": ENV}


@app.post("/auth/register", status_code=201)
def register(req: RegisterRequest):
    role = "admin" if req.email in ADMIN_EMAILS else "investor"

    conn = get_db()
    try:
        try:
            cur = conn.execute(
                "INSERT INTO users (name, email, password_hash, role, created_at) VALUES (?, ?, ?, ?, ?)",
                (req.name, req.email, hash_password(req.password), role, now_iso()),
            )
        except sqlite3.IntegrityError:
            logger.info(f"[REGISTER] Duplicate email: {req.email!r}")
            raise HTTPException(status_code=400, detail="Email already registered")
        user_id = cur.lastrowid
        conn.commit()
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    finally:
        conn.close()

    logger.info(f"[REGISTER] User created: id={user_id}, role={role}")
    return ok({"user": user_payload(row), "token": create_access_token(user_id)})


@app.post("/auth/login")
def login(req: LoginRequest):
    conn = get_db()
    try:
        row = conn.execute("SELECT * FROM users WHERE email = ?", (req.email,)).fetchone()
        if not row or not verify_password(req.password, row["password_hash"]):
            logger.info("[LOGIN] Invalid credentials")
            raise HTTPException(status_code=401, detail="Invalid email or password")
        if not row["is_active"]:
            raise HTTPException(status_code=403, detail="Account inactive")

        conn.execute("UPDATE users SET last_login = ? WHERE id = ?", (now_iso(), row["id"]))
        conn.commit()
    finally:
        conn.close()

    logger.info(f"[LOGIN] user_id={row['id']}")
    return ok({"user": user_payload(row), "token": create_access_token(row["id"])})


@app.get("/auth/me")
def me(ctx: AuthContext = Depends(require_auth_context)):
    conn = get_db()
    try:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (ctx.user_id,)).fetchone()
    finally:
        conn.close()
    return ok({
        "user": user_payload(row),
        "effectivePlan": ctx.effective_plan,
        "planFeatures": ctx.plan_features.to_wire(),
    })
