# backend/db.py
# SQLite storage: connection helper, schema bootstrap and row converters

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path as FsPath

try:
    from backend.config import DATABASE_PATH, SEED_SAMPLE_DATA
except ModuleNotFoundError:
    from config import DATABASE_PATH, SEED_SAMPLE_DATA

from domains.investment.models.project import Investment, Project

logger = logging.getLogger(__name__)

# Relative paths live next to this file; absolute paths (tests) are used as-is
DB_PATH = str(FsPath(__file__).resolve().parent / DATABASE_PATH)


def get_db() -> sqlite3.Connection:
    """
    Create and return a SQLite connection with Row factory.
    Callers own the connection and must close it.
    """
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'investor',
    plan_key TEXT NOT NULL DEFAULT 'free',
    plan_status TEXT NOT NULL DEFAULT 'active',
    plan_renewal TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    last_login TEXT
);

CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    category TEXT NOT NULL,
    min_investment REAL NOT NULL,
    roi_percent REAL NOT NULL,
    target_amount REAL NOT NULL,
    funded_amount REAL NOT NULL DEFAULT 0,
    duration_months INTEGER NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT NOT NULL,
    CHECK (funded_amount <= target_amount)
);

CREATE TABLE IF NOT EXISTS investments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    amount REAL NOT NULL,
    payment_method TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'completed',
    expected_return REAL NOT NULL,
    created_at TEXT NOT NULL,
    cancelled_at TEXT,
    cancel_reason TEXT
);

CREATE INDEX IF NOT EXISTS idx_projects_category ON projects(category);
CREATE INDEX IF NOT EXISTS idx_projects_status ON projects(status);
CREATE INDEX IF NOT EXISTS idx_investments_user ON investments(user_id);
"""

SAMPLE_PROJECTS = [
    ("Solar Farm Expansion", "Community solar array in Nevada", "Energy", 500, 12.0, 250_000, 90_000, 12),
    ("Urban Vertical Farm", "Hydroponic greens for city grocers", "Agriculture", 250, 15.0, 120_000, 30_000, 18),
    ("Boutique Hotel Renovation", "Twelve-room heritage hotel refit", "Real Estate", 1000, 18.0, 500_000, 410_000, 24),
    ("Fintech Payments API", "Seed round for a B2B payments startup", "Technology", 2500, 25.0, 750_000, 120_000, 36),
    ("Coastal Wind Turbines", "Two offshore-ready turbines", "Energy", 1000, 10.0, 1_000_000, 650_000, 48),
    ("Artisan Coffee Roastery", "Equipment for a second roasting line", "Food & Beverage", 100, 9.0, 60_000, 12_000, 6),
]


def seed_sample_projects(conn: sqlite3.Connection) -> int:
    """Insert demo projects into an empty projects table. Returns rows inserted."""
    count = conn.execute("SELECT COUNT(*) AS n FROM projects").fetchone()["n"]
    if count:
        return 0
    created_at = now_iso()
    conn.executemany(
        """
        INSERT INTO projects (
            title, description, category, min_investment, roi_percent,
            target_amount, funded_amount, duration_months, status, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'active', ?)
        """,
        [row + (created_at,) for row in SAMPLE_PROJECTS],
    )
    conn.commit()
    logger.info(f"[DB] Seeded {len(SAMPLE_PROJECTS)} sample projects")
    return len(SAMPLE_PROJECTS)


def init_db() -> None:
    """Create tables (idempotent) and optionally seed sample data."""
    conn = get_db()
    try:
        conn.executescript(SCHEMA)
        conn.commit()
        if SEED_SAMPLE_DATA:
            seed_sample_projects(conn)
    finally:
        conn.close()
    logger.debug(f"[DB] Schema ready at {DB_PATH}")


# ---------------------------------------------------------
# Row converters
# ---------------------------------------------------------
def row_to_project(row: sqlite3.Row) -> Project:
    return Project.model_validate(dict(row))


def row_to_investment(row: sqlite3.Row) -> Investment:
    return Investment.model_validate(dict(row))
