"""
frontend/api_client.py
Centralized API client for all backend requests.

This module ensures:
1. Protected calls carry the Authorization header from the SessionContext
2. The {"success", "data" | "message", "code"} envelope is unwrapped in one place
3. Every failure becomes a typed exception from domains.investment.errors:
   - known investment codes -> BelowMinimum / ExceedsRemaining / ...
   - plan_restricted        -> PlanRestricted
   - validation_error       -> ValidationError (when the server names a field)
   - 401                    -> Unauthenticated, and the session is cleared
   - anything else          -> ServerError (transport failures included)
4. Server messages are passed through verbatim
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests

try:
    from frontend.config import REQUEST_TIMEOUT_SECONDS, get_api_base_url
    from frontend.session import SessionContext
except ModuleNotFoundError:
    from config import REQUEST_TIMEOUT_SECONDS, get_api_base_url
    from session import SessionContext

from domains.investment.errors import (
    PlanRestricted,
    ServerError,
    Unauthenticated,
    ValidationError,
    investment_error_for,
)
from domains.investment.models.plans import PlanFeatures, PlanKey
from domains.investment.models.project import Investment, Project
from domains.investment.models.search import SearchQuery
from domains.investment.models.simulation import SimulationResult

logger = logging.getLogger(__name__)

NO_RESPONSE_MESSAGE = "No response from server. Please check your connection."


@dataclass
class SearchPage:
    projects: List[Project]
    plan_features: PlanFeatures
    page: int = 1
    total: int = 0
    total_pages: int = 0


@dataclass
class Portfolio:
    investments: List[Investment]
    summary: Dict[str, Any] = field(default_factory=dict)


def error_from_response(status: int, body: Dict[str, Any]) -> Exception:
    """Rebuild the domain exception a non-2xx response stands for."""
    message = body.get("message") or body.get("detail") or f"Request failed with status {status}"
    code = body.get("code")

    if code == PlanRestricted.code:
        exc = PlanRestricted(body.get("feature") or "This", body.get("requiredPlan") or PlanKey.plus.label)
        exc.message = message
        return exc
    if code == ValidationError.code and body.get("field"):
        return ValidationError(body["field"], message)

    error_class = investment_error_for(code)
    if error_class is None and status == 401:
        error_class = Unauthenticated
    if error_class is not None:
        return error_class(message)
    return ServerError(message, status=status, code=code)


class ApiClient:
    """
    Thin wrapper over requests.Session bound to one SessionContext.

    Usage:
        client = ApiClient(SessionContext(st.session_state))
        page = client.search_projects(query)
    """

    def __init__(
        self,
        session_ctx: SessionContext,
        base_url: Optional[str] = None,
        http: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.session_ctx = session_ctx
        self.base_url = (base_url or get_api_base_url()).rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout

    # ---- transport -----------------------------------------------------

    def request(self, method: str, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send one request and return the envelope's ``data``.

        Raises:
            Unauthenticated: 401 (the session is cleared first)
            InvestmentError subclass / PlanRestricted / ValidationError: by error code
            ServerError: any other failure, including no response at all
        """
        headers = {"Accept": "application/json"}
        headers.update(self.session_ctx.get_auth_header())

        try:
            resp = self.http.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            # Never log the exception text, it can contain the request URL
            logger.warning(f"[API] {method} {path} failed: {type(e).__name__}")
            raise ServerError(NO_RESPONSE_MESSAGE)

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.ok and body.get("success", True):
            logger.debug(f"[API] {method} {path} -> {resp.status_code}")
            return body.get("data", body)

        logger.info(f"[API] {method} {path} -> {resp.status_code} {body.get('code')}")
        if resp.status_code == 401:
            self.session_ctx.clear_auth()
        raise error_from_response(resp.status_code, body)

    # ---- auth ----------------------------------------------------------

    def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        data = self.request("POST", "/auth/register", json={"name": name, "email": email, "password": password})
        self.session_ctx.set_auth(data["token"], data["user"])
        return data["user"]

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self.request("POST", "/auth/login", json={"email": email, "password": password})
        self.session_ctx.set_auth(data["token"], data["user"])
        return data["user"]

    def logout(self) -> None:
        self.session_ctx.clear_auth()

    def get_plan_features(self) -> Optional[PlanFeatures]:
        """
        Cached PlanFeatures for the signed-in user, fetched on a cache miss.
        Returns None when signed out or unreachable (gated filters stay off).
        """
        if self.session_ctx.plan_features is not None:
            return self.session_ctx.plan_features
        if not self.session_ctx.is_authenticated:
            return None
        try:
            data = self.request("GET", "/auth/me")
        except (ServerError, Unauthenticated):
            return None
        features = PlanFeatures.model_validate(data.get("planFeatures") or {})
        self.session_ctx.cache_plan_features(features)
        return features

    # ---- simulation ----------------------------------------------------

    def simulate(self, amount: float, roi_percent: float, duration_months: int) -> SimulationResult:
        data = self.request(
            "POST",
            "/simulation",
            json={"amount": amount, "roiPercent": roi_percent, "durationMonths": duration_months},
        )
        return SimulationResult.from_response(data)

    # ---- projects ------------------------------------------------------

    def search_projects(self, query: SearchQuery) -> SearchPage:
        data = self.request("POST", "/projects/search", json=query.to_payload())
        features = PlanFeatures.model_validate(data.get("planFeatures") or {})
        # Every search response carries the current entitlements
        self.session_ctx.cache_plan_features(features)
        pagination = data.get("pagination") or {}
        return SearchPage(
            projects=[Project.model_validate(p) for p in data.get("projects") or []],
            plan_features=features,
            page=pagination.get("page", query.page),
            total=pagination.get("total", 0),
            total_pages=pagination.get("totalPages", 0),
        )

    def list_projects(self, page: int = 1, limit: int = 20, **filters: Any) -> List[Project]:
        params = {k: v for k, v in filters.items() if v}
        params.update({"page": page, "limit": limit})
        data = self.request("GET", "/projects", params=params)
        return [Project.model_validate(p) for p in data.get("projects") or []]

    def get_project(self, project_id: int) -> Project:
        data = self.request("GET", f"/projects/{project_id}")
        return Project.model_validate(data["project"])

    def list_categories(self) -> List[str]:
        return self.request("GET", "/projects/categories").get("categories", [])

    # ---- investments ---------------------------------------------------

    def invest(self, project_id: int, amount: float, payment_method: Optional[str]) -> Tuple[Investment, Project]:
        data = self.request(
            "POST",
            "/investments",
            json={"projectId": project_id, "amount": amount, "paymentMethod": payment_method},
        )
        return Investment.model_validate(data["investment"]), Project.model_validate(data["project"])

    def my_investments(self) -> Portfolio:
        data = self.request("GET", "/investments/my-investments")
        return Portfolio(
            investments=[Investment.model_validate(i) for i in data.get("investments") or []],
            summary=data.get("summary") or {},
        )

    def cancel_investment(self, investment_id: int, reason: Optional[str] = None) -> Tuple[Investment, Project]:
        data = self.request("POST", f"/investments/{investment_id}/cancel", json={"reason": reason})
        return Investment.model_validate(data["investment"]), Project.model_validate(data["project"])

    # ---- subscription --------------------------------------------------

    def get_plans(self) -> Dict[str, Any]:
        return self.request("GET", "/subscription/plans").get("plans", {})

    def current_subscription(self) -> Dict[str, Any]:
        return self.request("GET", "/subscription/current")

    def upgrade(self, plan_key: PlanKey) -> Dict[str, Any]:
        try:
            return self.request("POST", "/subscription/upgrade", json={"planKey": PlanKey(plan_key).value})
        finally:
            # The plan may have changed even if the response was lost
            self.session_ctx.invalidate_plan_features()

    def cancel_subscription(self) -> Dict[str, Any]:
        try:
            return self.request("POST", "/subscription/cancel")
        finally:
            self.session_ctx.invalidate_plan_features()
