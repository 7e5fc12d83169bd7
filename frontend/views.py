"""
frontend/views.py
Page controllers used by app.py, kept free of Streamlit so they can be tested.

Request ordering rules enforced here:
- Local validation runs (and must pass) before anything is sent
- One in-flight submission per logical action (InFlightGuard)
- A response that arrives after its view was closed or superseded by a newer
  request is dropped without touching view state (RequestGeneration)
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Union

try:
    from frontend.api_client import ApiClient, Portfolio, SearchPage
    from frontend.config import DEFAULT_PAGE_SIZE
except ModuleNotFoundError:
    from api_client import ApiClient, Portfolio, SearchPage
    from config import DEFAULT_PAGE_SIZE

from domains.investment.calculator import compute_simulation, validate_simulation_input
from domains.investment.models.plans import PlanKey
from domains.investment.models.project import Investment, Project
from domains.investment.models.search import SearchFilters
from domains.investment.models.simulation import SimulationResult
from domains.investment.query_builder import build_search_query
from domains.investment.validator import validate_investment

logger = logging.getLogger(__name__)


class SubmissionInProgress(Exception):
    """A submission for the same action is still waiting for its response."""


class RequestGeneration:
    """
    Monotonic request counter for one view.

    Each request takes a token from next(); only the newest token is current,
    and none are once the view is closed.
    """

    def __init__(self):
        self._current = 0
        self._closed = False
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._current += 1
            return self._current

    def is_current(self, token: int) -> bool:
        with self._lock:
            return not self._closed and token == self._current

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


class InFlightGuard:
    """Allows one pending submission per action key."""

    def __init__(self):
        self._pending = set()
        self._lock = threading.Lock()

    def is_pending(self, key: Any) -> bool:
        with self._lock:
            return key in self._pending

    @contextmanager
    def hold(self, key: Any) -> Iterator[None]:
        with self._lock:
            if key in self._pending:
                raise SubmissionInProgress(f"A request for {key!r} is already in progress")
            self._pending.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._pending.discard(key)


class CalculatorView:
    """Instant local preview; the server run is optional confirmation."""

    def __init__(self, client: ApiClient):
        self.client = client
        self.result: Optional[SimulationResult] = None
        self._generation = RequestGeneration()

    def preview(self, amount: Any, roi_percent: Any, duration_months: Any) -> SimulationResult:
        """Raises ValidationError naming the bad field."""
        self.result = compute_simulation(amount, roi_percent, duration_months)
        return self.result

    def confirm(self, amount: Any, roi_percent: Any, duration_months: Any) -> Optional[SimulationResult]:
        params = validate_simulation_input(amount, roi_percent, duration_months)
        token = self._generation.next()
        result = self.client.simulate(params.amount, params.roi_percent, params.duration_months)
        if not self._generation.is_current(token):
            logger.debug("[SIMULATION] Discarding stale response")
            return None
        self.result = result
        return result

    def close(self) -> None:
        self._generation.close()


class ProjectSearchView:
    def __init__(self, client: ApiClient, limit: int = DEFAULT_PAGE_SIZE):
        self.client = client
        self.limit = limit
        self.page: Optional[SearchPage] = None
        self._generation = RequestGeneration()

    def search(self, filters: Union[SearchFilters, Dict[str, Any]], page: int = 1) -> Optional[SearchPage]:
        """
        Build a plan-gated query and run it.

        Filters the user's plan does not include are left out of the request.
        Returns None when the response was superseded or the view closed.
        """
        token = self._generation.next()
        query = build_search_query(filters, self.client.get_plan_features(), page, self.limit)
        result = self.client.search_projects(query)
        if not self._generation.is_current(token):
            logger.debug(f"[SEARCH] Discarding stale response for page {page}")
            return None
        self.page = result
        return result

    def close(self) -> None:
        self._generation.close()


class InvestmentFlow:
    """Invest form for one project."""

    def __init__(self, client: ApiClient, project: Project, guard: Optional[InFlightGuard] = None):
        self.client = client
        self.project = project
        self.guard = guard or InFlightGuard()
        self._generation = RequestGeneration()

    def submit(self, amount: Any, payment_method: Optional[str]) -> Investment:
        """
        Raises:
            Unauthenticated / BelowMinimum / ExceedsRemaining / MissingPaymentMethod:
                locally, before any request, or from the server's verdict
            SubmissionInProgress: this project already has a pending submission
            ServerError: anything else the server reports
        """
        amount = validate_investment(amount, self.project, payment_method, self.client.session_ctx.user)

        with self.guard.hold(("invest", self.project.id)):
            token = self._generation.next()
            investment, refreshed = self.client.invest(self.project.id, amount, payment_method)

        if self._generation.is_current(token):
            self.project = refreshed
        else:
            logger.debug(f"[INVEST] View closed; not refreshing project_id={self.project.id}")
        return investment

    def close(self) -> None:
        self._generation.close()


class PortfolioView:
    """My-investments page: holdings and cancellation."""

    def __init__(self, client: ApiClient, guard: Optional[InFlightGuard] = None):
        self.client = client
        self.guard = guard or InFlightGuard()
        self.portfolio: Optional[Portfolio] = None
        self._generation = RequestGeneration()

    def load(self) -> Optional[Portfolio]:
        token = self._generation.next()
        portfolio = self.client.my_investments()
        if not self._generation.is_current(token):
            return None
        self.portfolio = portfolio
        return portfolio

    def is_cancelling(self, investment_id: int) -> bool:
        return self.guard.is_pending(("cancel", investment_id))

    def cancel(self, investment_id: int, reason: Optional[str] = None) -> Investment:
        """
        Raises:
            SubmissionInProgress: a cancel for this investment is already pending
            InvestmentError: the server refused (window expired, already cancelled)
        """
        with self.guard.hold(("cancel", investment_id)):
            investment, _ = self.client.cancel_investment(investment_id, reason)
        logger.info(f"[INVEST] Cancelled investment_id={investment_id}")
        return investment

    def close(self) -> None:
        self._generation.close()


class SubscriptionFlow:
    def __init__(self, client: ApiClient, guard: Optional[InFlightGuard] = None):
        self.client = client
        self.guard = guard or InFlightGuard()

    def upgrade(self, plan_key: PlanKey) -> Dict[str, Any]:
        """Change plan; cached plan features are dropped so the next search refetches them."""
        with self.guard.hold("subscription"):
            return self.client.upgrade(plan_key)

    def cancel(self) -> Dict[str, Any]:
        with self.guard.hold("subscription"):
            return self.client.cancel_subscription()
