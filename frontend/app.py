# frontend/app.py
# Crowdvest – Investment Calculator, Project Search + Portfolio
#
# Run from repo root: streamlit run frontend/app.py
# Or from frontend folder: streamlit run app.py

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import pandas as pd
import streamlit as st

# Import environment config (robust fallback for different run contexts)
try:
    from frontend.config import DEFAULT_PAGE_SIZE, ENABLE_DEBUG_UI, ENV
except ModuleNotFoundError:
    from config import DEFAULT_PAGE_SIZE, ENABLE_DEBUG_UI, ENV

try:
    from frontend.api_client import ApiClient
    from frontend.session import SessionContext
    from frontend.views import (
        CalculatorView,
        InFlightGuard,
        InvestmentFlow,
        PortfolioView,
        ProjectSearchView,
        SubmissionInProgress,
        SubscriptionFlow,
    )
except ModuleNotFoundError:
    from api_client import ApiClient
    from session import SessionContext
    from views import (
        CalculatorView,
        InFlightGuard,
        InvestmentFlow,
        PortfolioView,
        ProjectSearchView,
        SubmissionInProgress,
        SubscriptionFlow,
    )

from domains.investment.errors import (
    InvestmentError,
    PlanRestricted,
    ServerError,
    Unauthenticated,
    ValidationError,
)
from domains.investment.formatting import format_currency, format_date, format_percent
from domains.investment.gating import FEATURE_LABELS, is_feature_enabled, required_plan_for
from domains.investment.models.plans import FilterFeature, PlanKey
from domains.investment.models.project import PaymentMethod, ProjectStatus
from domains.investment.models.search import SortField, SortOrder

logger = logging.getLogger(__name__)

PAGES = ["Calculator", "Projects", "Invest", "Pricing", "My Investments", "Login"]

ss = st.session_state


# --------------------------------------------------------------------
# Session + navigation
# --------------------------------------------------------------------
def init_state() -> None:
    ss.setdefault("nav_page", None)
    ss.setdefault("selected_project_id", None)
    ss.setdefault("search_filters", {})
    ss.setdefault("search_page", 1)
    ss.setdefault("views", {})
    ss.setdefault("guard", InFlightGuard())


def get_session() -> SessionContext:
    return SessionContext(ss)


def get_client() -> ApiClient:
    return ApiClient(get_session())


def go_to(page: str) -> None:
    """Navigate and rerun. Views owned by the page being left are closed."""
    close_views(except_page=page)
    ss["nav_page"] = page
    st.rerun()


def get_view(page: str, factory: Callable[[], Any]) -> Any:
    views: Dict[str, Any] = ss["views"]
    if page not in views:
        views[page] = factory()
    return views[page]


def close_views(except_page: Optional[str] = None) -> None:
    # Pending responses for closed views are dropped instead of applied
    for page in list(ss["views"]):
        if page != except_page:
            ss["views"].pop(page).close()


def show_error(exc: Exception) -> None:
    """Server messages are shown verbatim."""
    if isinstance(exc, Unauthenticated):
        st.warning(f"🔒 {exc.message}")
        if st.button("Go to Login", type="primary"):
            go_to("Login")
    elif isinstance(exc, PlanRestricted):
        st.warning(f"⭐ {exc.message}")
    elif isinstance(exc, (InvestmentError, ValidationError, ServerError)):
        st.error(exc.message)
    elif isinstance(exc, SubmissionInProgress):
        st.info("⏳ Your previous request is still being processed.")
    else:
        raise exc


def require_auth() -> bool:
    if get_session().is_authenticated:
        return True
    st.warning("⚠️ You must be logged in to access this page.")
    if st.button("Go to Login", type="primary"):
        go_to("Login")
    return False


# --------------------------------------------------------------------
# Sidebar
# --------------------------------------------------------------------
def render_sidebar() -> None:
    session = get_session()
    with st.sidebar:
        st.title("Crowdvest")
        if session.is_authenticated:
            user = session.user or {}
            st.caption(f"Signed in as {user.get('email', '')}")
            features = session.plan_features
            if features and features.name:
                st.caption(f"Plan: {features.name}")
            if st.button("Logout"):
                get_client().logout()
                go_to("Login")
        else:
            st.caption("Not signed in")

        current = ss.get("nav_page") or "Calculator"
        choice = st.radio("Navigate", PAGES, index=PAGES.index(current))
        if choice != current:
            go_to(choice)

        if ENABLE_DEBUG_UI:
            st.divider()
            st.caption(f"env={ENV} | views={list(ss['views'])}")


# --------------------------------------------------------------------
# Calculator
# --------------------------------------------------------------------
def render_calculator() -> None:
    st.header("Investment Calculator")
    view: CalculatorView = get_view("Calculator", lambda: CalculatorView(get_client()))

    col1, col2, col3 = st.columns(3)
    with col1:
        amount = st.number_input("Amount ($)", min_value=0.0, value=10_000.0, step=500.0)
    with col2:
        roi = st.number_input("Expected ROI (%)", min_value=0.0, value=12.0, step=0.5)
    with col3:
        months = st.number_input("Duration (months)", min_value=1, value=12, step=1)

    try:
        result = view.preview(amount, roi, int(months))
    except ValidationError as e:
        st.error(e.message)
        return

    if st.button("Confirm with server"):
        try:
            confirmed = view.confirm(amount, roi, int(months))
            if confirmed is not None:
                result = confirmed
                st.success("Figures confirmed by the server.")
        except (ValidationError, ServerError) as e:
            show_error(e)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Return", format_currency(result.total_return))
    c2.metric("Profit", format_currency(result.profit), format_percent(result.profit_percentage))
    c3.metric("Annualized", format_percent(result.statistics.annualized_return))
    c4.metric("Return Date", format_date(result.expected_return_date))

    st.caption(
        f"Monthly profit {format_currency(result.statistics.monthly_profit)} · "
        f"daily {format_currency(result.statistics.daily_profit)} (30-day month)"
    )
    df = pd.DataFrame([p.model_dump() for p in result.monthly_breakdown]).set_index("month")
    st.dataframe(df.map(format_currency), use_container_width=True)


# --------------------------------------------------------------------
# Projects (plan-gated search)
# --------------------------------------------------------------------
def _locked_label(feature: FilterFeature) -> str:
    return f"🔒 {FEATURE_LABELS[feature]} ({required_plan_for(feature)} plan)"


def render_search_filters(features) -> Dict[str, Any]:
    filters: Dict[str, Any] = dict(ss["search_filters"])

    col1, col2, col3 = st.columns(3)
    with col1:
        filters["search"] = st.text_input("Search", value=filters.get("search") or "")
    with col2:
        filters["category"] = st.text_input("Category", value=filters.get("category") or "")
    with col3:
        statuses = ["all"] + [s.value for s in ProjectStatus]
        filters["status"] = st.selectbox("Status", statuses, index=statuses.index(filters.get("status") or "all"))

    with st.expander("Advanced filters"):
        for feature, low_key, high_key, label in (
            (FilterFeature.roi_range, "minROI", "maxROI", "ROI %"),
            (FilterFeature.amount_range, "minAmount", "maxAmount", "Target $"),
            (FilterFeature.duration_filter, "minDuration", "maxDuration", "Months"),
        ):
            enabled = is_feature_enabled(features, feature)
            st.markdown(FEATURE_LABELS[feature] if enabled else _locked_label(feature))
            lo, hi = st.columns(2)
            filters[low_key] = lo.text_input(f"Min {label}", value=filters.get(low_key) or "", disabled=not enabled)
            filters[high_key] = hi.text_input(f"Max {label}", value=filters.get(high_key) or "", disabled=not enabled)

        enabled = is_feature_enabled(features, FilterFeature.multiple_categories)
        raw = st.text_input(
            "Categories (comma-separated)" if enabled else _locked_label(FilterFeature.multiple_categories),
            value=", ".join(filters.get("categories") or []),
            disabled=not enabled,
        )
        filters["categories"] = [c.strip() for c in raw.split(",") if c.strip()]

        enabled = is_feature_enabled(features, FilterFeature.advanced_sort)
        sort_fields = [f.value for f in SortField]
        sort_orders = [o.value for o in SortOrder]
        s1, s2 = st.columns(2)
        filters["sortBy"] = s1.selectbox(
            "Sort by" if enabled else _locked_label(FilterFeature.advanced_sort),
            sort_fields,
            index=sort_fields.index(filters.get("sortBy") or SortField.created_at.value),
            disabled=not enabled,
        )
        filters["sortOrder"] = s2.selectbox(
            "Order",
            sort_orders,
            index=sort_orders.index(filters.get("sortOrder") or SortOrder.desc.value),
            disabled=not enabled,
        )

    return filters


def render_projects() -> None:
    st.header("Projects")
    if not require_auth():
        return

    client = get_client()
    view: ProjectSearchView = get_view("Projects", lambda: ProjectSearchView(client, DEFAULT_PAGE_SIZE))
    view.client = client

    filters = render_search_filters(client.get_plan_features())
    if filters != ss["search_filters"]:
        ss["search_filters"] = filters
        ss["search_page"] = 1

    try:
        page = view.search(ss["search_filters"], ss["search_page"])
    except (PlanRestricted, Unauthenticated, ServerError) as e:
        show_error(e)
        return
    if page is None:
        return

    st.caption(f"{page.total} projects")
    for project in page.projects:
        with st.container(border=True):
            st.subheader(project.title)
            st.caption(f"{project.category} · {project.status.value}")
            c1, c2, c3, c4 = st.columns(4)
            c1.metric("ROI", format_percent(project.roi_percent))
            c2.metric("Duration", f"{project.duration_months} mo")
            c3.metric("Minimum", format_currency(project.min_investment))
            c4.metric("Remaining", format_currency(project.remaining_amount))
            st.progress(project.funding_progress / 100)
            if project.status == ProjectStatus.active and st.button("Invest", key=f"invest_{project.id}"):
                ss["selected_project_id"] = project.id
                go_to("Invest")

    prev_col, info_col, next_col = st.columns([1, 2, 1])
    if prev_col.button("← Previous", disabled=page.page <= 1):
        ss["search_page"] = page.page - 1
        st.rerun()
    info_col.caption(f"Page {page.page} of {max(page.total_pages, 1)}")
    if next_col.button("Next →", disabled=page.page >= page.total_pages):
        ss["search_page"] = page.page + 1
        st.rerun()


# --------------------------------------------------------------------
# Invest
# --------------------------------------------------------------------
def render_invest() -> None:
    st.header("Invest")
    if not require_auth():
        return
    project_id = ss.get("selected_project_id")
    if project_id is None:
        st.info("Pick a project on the Projects page first.")
        return

    client = get_client()
    flow: Optional[InvestmentFlow] = ss["views"].get("Invest")
    if flow is None or flow.project.id != project_id:
        try:
            project = client.get_project(project_id)
        except ServerError as e:
            show_error(e)
            return
        if flow is not None:
            ss["views"].pop("Invest").close()
        flow = get_view("Invest", lambda: InvestmentFlow(client, project, guard=ss["guard"]))
    flow.client = client
    project = flow.project

    st.subheader(project.title)
    st.write(project.description or "")
    st.progress(project.funding_progress / 100, text=f"{format_percent(project.funding_progress)} funded")
    st.caption(
        f"Minimum {format_currency(project.min_investment)} · "
        f"Remaining {format_currency(project.remaining_amount)}"
    )

    with st.form("invest_form"):
        amount = st.number_input("Amount ($)", min_value=0.0, value=float(project.min_investment), step=100.0)
        method = st.selectbox(
            "Payment method",
            [""] + [m.value for m in PaymentMethod],
            format_func=lambda v: v.replace("_", " ").title() if v else "Select…",
        )
        submitted = st.form_submit_button("Confirm investment", disabled=ss["guard"].is_pending(("invest", project.id)))

    if submitted:
        try:
            investment = flow.submit(amount, method or None)
        except (InvestmentError, ServerError, SubmissionInProgress) as e:
            show_error(e)
            return
        st.success(
            f"Invested {format_currency(investment.amount)}. "
            f"Expected return {format_currency(investment.expected_return)}."
        )


# --------------------------------------------------------------------
# Pricing
# --------------------------------------------------------------------
def render_pricing() -> None:
    st.header("Plans & Pricing")
    client = get_client()
    session = get_session()

    try:
        plans = client.get_plans()
        current = client.current_subscription() if session.is_authenticated else None
    except (Unauthenticated, ServerError) as e:
        show_error(e)
        return

    if current:
        st.info(
            f"**Current plan:** {current['currentPlan'].title()} "
            f"({current['planStatus']})"
            + (f" · renews {format_date(current['renewalDate'])}" if current.get("renewalDate") else "")
        )
        if current.get("effectivePlan") != current["currentPlan"]:
            st.warning(f"📉 Your {current['currentPlan'].title()} plan has expired; you have Free access until you renew.")

    flow = SubscriptionFlow(client, guard=ss["guard"])
    columns = st.columns(len(plans))
    for column, (key, plan) in zip(columns, plans.items()):
        with column:
            st.subheader(plan["name"])
            st.markdown(f"**{format_currency(plan['price'])}**/month" if plan["price"] else "**Free**")
            for bullet in plan["features"]:
                st.markdown(f"- {bullet}")
            is_current = bool(current) and current["currentPlan"] == key and current["planStatus"] == "active"
            if not session.is_authenticated or is_current or key == PlanKey.free.value:
                continue
            if st.button(f"Choose {plan['name']}", key=f"upgrade_{key}"):
                try:
                    flow.upgrade(PlanKey(key))
                except (Unauthenticated, ServerError, SubmissionInProgress) as e:
                    show_error(e)
                else:
                    st.rerun()

    if current and current["currentPlan"] != PlanKey.free.value:
        st.divider()
        if st.button("Cancel subscription"):
            try:
                flow.cancel()
            except (Unauthenticated, ServerError, SubmissionInProgress) as e:
                show_error(e)
            else:
                st.rerun()


# --------------------------------------------------------------------
# My Investments
# --------------------------------------------------------------------
def render_my_investments() -> None:
    st.header("My Investments")
    if not require_auth():
        return
    view: PortfolioView = get_view("My Investments", lambda: PortfolioView(get_client(), guard=ss["guard"]))
    view.client = get_client()
    try:
        portfolio = view.load()
    except (Unauthenticated, ServerError) as e:
        show_error(e)
        return
    if portfolio is None:
        return

    summary = portfolio.summary
    c1, c2, c3 = st.columns(3)
    c1.metric("Total Invested", format_currency(summary.get("totalInvested", 0)))
    c2.metric("Expected Returns", format_currency(summary.get("expectedReturns", 0)))
    c3.metric("Active Investments", summary.get("activeInvestments", 0))

    if not portfolio.investments:
        st.info("No investments yet.")
        return

    df = pd.DataFrame(
        [
            {
                "Project": i.project_title,
                "Amount": format_currency(i.amount),
                "Expected Return": format_currency(i.expected_return),
                "Payment": i.payment_method.value,
                "Status": i.status.value,
                "Date": format_date(i.created_at),
            }
            for i in portfolio.investments
        ]
    )
    st.dataframe(df, use_container_width=True, hide_index=True)

    cancellable = {f"#{i.id} {i.project_title} ({format_currency(i.amount)})": i.id for i in portfolio.investments if i.status.value == "completed"}
    if cancellable:
        with st.form("cancel_form"):
            label = st.selectbox("Cancel an investment (within 24 hours)", list(cancellable))
            reason = st.text_input("Reason (optional)")
            submitted = st.form_submit_button("Cancel investment", disabled=view.is_cancelling(cancellable[label]))
            if submitted:
                try:
                    view.cancel(cancellable[label], reason or None)
                except (InvestmentError, ServerError, SubmissionInProgress) as e:
                    show_error(e)
                else:
                    st.rerun()


# --------------------------------------------------------------------
# Login / Register
# --------------------------------------------------------------------
def render_login() -> None:
    st.header("Login")
    client = get_client()

    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login")
    if submitted:
        if not email or not password:
            st.error("Please enter email and password.")
            return
        try:
            client.login(email, password)
        except (Unauthenticated, ServerError) as e:
            show_error(e)
            return
        go_to("Projects")

    st.divider()
    st.subheader("Register New Account")
    with st.form("register_form"):
        name = st.text_input("Name")
        reg_email = st.text_input("Email", key="register_email")
        reg_password = st.text_input("Password (min 8 characters)", type="password", key="register_password")
        registered = st.form_submit_button("Create account")
    if registered:
        try:
            client.register(name, reg_email, reg_password)
        except ServerError as e:
            show_error(e)
            return
        go_to("Projects")


# --------------------------------------------------------------------
# Main
# --------------------------------------------------------------------
def main() -> None:
    st.set_page_config(page_title="Crowdvest", page_icon="📈", layout="wide")
    init_state()
    get_session().init()

    if not ss.get("nav_page"):
        ss["nav_page"] = "Calculator"

    render_sidebar()

    nav_page = ss["nav_page"]
    if nav_page == "Calculator":
        render_calculator()
    elif nav_page == "Projects":
        render_projects()
    elif nav_page == "Invest":
        render_invest()
    elif nav_page == "Pricing":
        render_pricing()
    elif nav_page == "My Investments":
        render_my_investments()
    else:
        render_login()


if __name__ == "__main__":
    main()
