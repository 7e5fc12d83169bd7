"""
frontend/session.py
Authentication state and the plan-features cache for one user session.

SessionContext is the single source of truth for:
- the JWT and the signed-in user (set_auth / clear_auth)
- the Authorization header every protected API call needs
- the PlanFeatures the server last reported for this user

It wraps any mutable mapping. The Streamlit app passes st.session_state so the
state survives reruns; tests pass a plain dict.

Plan features are cached until something could have changed the plan
(login, logout, upgrade, cancel). After that the cache is empty and every
gated filter reads as disabled until the next server response refills it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, MutableMapping, Optional

from domains.investment.models.plans import PlanFeatures

logger = logging.getLogger(__name__)

AUTH_TOKEN = "auth_token"
CURRENT_USER = "current_user"
PLAN_FEATURES = "plan_features"


class SessionContext:
    def __init__(self, store: Optional[MutableMapping[str, Any]] = None):
        self._ss = store if store is not None else {}
        self.init()

    def init(self) -> None:
        """Ensure auth keys exist (idempotent, safe on every Streamlit rerun)."""
        self._ss.setdefault(AUTH_TOKEN, None)
        self._ss.setdefault(CURRENT_USER, None)
        self._ss.setdefault(PLAN_FEATURES, None)

    # ---- auth ----------------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        return self._ss.get(AUTH_TOKEN)

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self._ss.get(CURRENT_USER)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def set_auth(self, token: str, user: Dict[str, Any]) -> None:
        """Store credentials after login/register. A new user means new entitlements."""
        self._ss[AUTH_TOKEN] = token
        self._ss[CURRENT_USER] = user
        self.invalidate_plan_features()
        logger.debug(f"[AUTH] Signed in user_id={user.get('id') if isinstance(user, dict) else None}")

    def clear_auth(self) -> None:
        """Forget credentials (logout or session expiry). Safe to call repeatedly."""
        self._ss[AUTH_TOKEN] = None
        self._ss[CURRENT_USER] = None
        self.invalidate_plan_features()

    def get_auth_header(self) -> Dict[str, str]:
        """{"Authorization": "Bearer <token>"} if signed in, {} otherwise."""
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    # ---- plan features cache --------------------------------------------

    @property
    def plan_features(self) -> Optional[PlanFeatures]:
        return self._ss.get(PLAN_FEATURES)

    def cache_plan_features(self, features: Optional[PlanFeatures]) -> None:
        self._ss[PLAN_FEATURES] = features

    def invalidate_plan_features(self) -> None:
        self._ss[PLAN_FEATURES] = None
