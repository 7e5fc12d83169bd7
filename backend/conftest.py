"""
backend/conftest.py

Shared fixtures for the API tests.

The environment is pinned before any backend module is imported so the tests
run against a throwaway SQLite file with no demo data.
"""

import os
import tempfile
from pathlib import Path

_TEST_DB = Path(tempfile.mkdtemp(prefix="crowdvest-tests-")) / "test.db"

os.environ["ENV"] = "local"
os.environ["DATABASE_PATH"] = str(_TEST_DB)
os.environ["SEED_SAMPLE_DATA"] = "0"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["ADMIN_EMAILS"] = "admin@example.com"

import pytest
from fastapi.testclient import TestClient

from backend.auth_context import create_access_token, hash_password
from backend.db import get_db, now_iso
from backend.main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def clean_db():
    """Every test starts from empty tables."""
    conn = get_db()
    try:
        conn.execute("DELETE FROM investments")
        conn.execute("DELETE FROM projects")
        conn.execute("DELETE FROM users")
        conn.commit()
    finally:
        conn.close()
    yield


@pytest.fixture
def make_user():
    """
    Insert a user directly and return {"id", "email", "token", "headers"}.

    Usage: make_user(plan="plus"), make_user(plan="premium", status="expired")
    """
    counter = {"n": 0}

    def _make(plan="free", status="active", role="investor", email=None, password="password123"):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        conn = get_db()
        try:
            cur = conn.execute(
                """
                INSERT INTO users (name, email, password_hash, role, plan_key, plan_status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (f"User {counter['n']}", email, hash_password(password), role, plan, status, now_iso()),
            )
            user_id = cur.lastrowid
            conn.commit()
        finally:
            conn.close()
        token = create_access_token(user_id)
        return {
            "id": user_id,
            "email": email,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make


@pytest.fixture
def make_project():
    """Insert a project and return its id. Keyword arguments override the defaults."""

    def _make(**overrides):
        values = {
            "title": "Test Project",
            "description": "A project used in tests",
            "category": "Energy",
            "min_investment": 100.0,
            "roi_percent": 10.0,
            "target_amount": 10_000.0,
            "funded_amount": 0.0,
            "duration_months": 12,
            "status": "active",
            "created_at": now_iso(),
        }
        values.update(overrides)
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        conn = get_db()
        try:
            cur = conn.execute(
                f"INSERT INTO projects ({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
            conn.commit()
            return cur.lastrowid
        finally:
            conn.close()

    return _make
