"""
backend/project_queries.py

Parameterized SQL for listing and searching projects.

Filters arrive as an already-validated SearchQuery; plan enforcement happens
before this module is called (features.require_search_features).
"""

from __future__ import annotations

import math
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

try:
    from backend.db import now_iso, row_to_project
except ModuleNotFoundError:
    from db import now_iso, row_to_project

from domains.investment.models.project import Project, ProjectCreate
from domains.investment.models.search import DEFAULT_SORT_FIELD, DEFAULT_SORT_ORDER, SearchQuery, SortField

# Whitelisted ORDER BY columns (never interpolate client text)
SORT_COLUMNS = {
    SortField.created_at: "created_at",
    SortField.roi_percent: "roi_percent",
    SortField.target_amount: "target_amount",
    SortField.funded_amount: "funded_amount",
    SortField.duration_months: "duration_months",
}


def _where(query: SearchQuery) -> Tuple[str, List[Any]]:
    clauses = ["1=1"]
    params: List[Any] = []

    if query.search:
        pattern = f"%{query.search}%"
        clauses.append(
            "(title LIKE ? COLLATE NOCASE OR description LIKE ? COLLATE NOCASE OR category LIKE ? COLLATE NOCASE)"
        )
        params.extend([pattern, pattern, pattern])
    if query.category:
        clauses.append("category = ? COLLATE NOCASE")
        params.append(query.category)
    if query.categories:
        placeholders = ", ".join("?" for _ in query.categories)
        clauses.append(f"category COLLATE NOCASE IN ({placeholders})")
        params.extend(query.categories)
    if query.status:
        clauses.append("status = ?")
        params.append(query.status.value)

    # Amount range applies to the project's funding target
    for column, low, high in (
        ("roi_percent", query.min_roi, query.max_roi),
        ("target_amount", query.min_amount, query.max_amount),
        ("duration_months", query.min_duration, query.max_duration),
    ):
        if low is not None:
            clauses.append(f"{column} >= ?")
            params.append(low)
        if high is not None:
            clauses.append(f"{column} <= ?")
            params.append(high)

    return " AND ".join(clauses), params


def search_projects(conn: sqlite3.Connection, query: SearchQuery) -> Tuple[List[Project], Dict[str, int]]:
    """
    Run a filtered, sorted, paginated project query.

    Returns:
        (projects for the requested page, pagination dict with page/limit/total/totalPages)
    """
    where, params = _where(query)

    total = conn.execute(f"SELECT COUNT(*) AS n FROM projects WHERE {where}", params).fetchone()["n"]

    column = SORT_COLUMNS[query.sort_by or DEFAULT_SORT_FIELD]
    direction = "ASC" if (query.sort_order or DEFAULT_SORT_ORDER).value == "asc" else "DESC"
    offset = (query.page - 1) * query.limit

    rows = conn.execute(
        f"SELECT * FROM projects WHERE {where} ORDER BY {column} {direction}, id {direction} LIMIT ? OFFSET ?",
        params + [query.limit, offset],
    ).fetchall()

    pagination = {
        "page": query.page,
        "limit": query.limit,
        "total": total,
        "totalPages": math.ceil(total / query.limit) if total else 0,
    }
    return [row_to_project(row) for row in rows], pagination


def get_project(conn: sqlite3.Connection, project_id: int) -> Optional[Project]:
    row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
    return row_to_project(row) if row else None


def list_categories(conn: sqlite3.Connection) -> List[str]:
    rows = conn.execute("SELECT DISTINCT category FROM projects ORDER BY category COLLATE NOCASE").fetchall()
    return [row["category"] for row in rows]


def create_project(conn: sqlite3.Connection, data: ProjectCreate) -> Project:
    cur = conn.execute(
        """
        INSERT INTO projects (
            title, description, category, min_investment, roi_percent,
            target_amount, funded_amount, duration_months, status, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?, ?)
        """,
        (
            data.title,
            data.description,
            data.category,
            data.min_investment,
            data.roi_percent,
            data.target_amount,
            data.duration_months,
            data.status.value,
            now_iso(),
        ),
    )
    conn.commit()
    return get_project(conn, cur.lastrowid)


def delete_project(conn: sqlite3.Connection, project_id: int) -> bool:
    cur = conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
    conn.commit()
    return cur.rowcount > 0
