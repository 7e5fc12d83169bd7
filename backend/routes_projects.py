"""
backend/routes_projects.py

Project endpoints.

- GET  /projects             public listing (basic filters only)
- GET  /projects/categories  distinct categories
- GET  /projects/{id}        project detail
- POST /projects/search      plan-gated search (login required)
- POST /projects             admin: create
- DELETE /projects/{id}      admin: delete
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

try:
    from backend.auth_context import AuthContext, require_admin, require_auth_context
    from backend.db import get_db
    from backend.features import require_search_features
    from backend.project_queries import (
        create_project,
        delete_project,
        get_project,
        list_categories,
        search_projects,
    )
    from backend.schemas import ok
except ModuleNotFoundError:
    from auth_context import AuthContext, require_admin, require_auth_context
    from db import get_db
    from features import require_search_features
    from project_queries import create_project, delete_project, get_project, list_categories, search_projects
    from schemas import ok

from domains.investment.models.project import ProjectCreate
from domains.investment.models.search import SearchQuery
from domains.investment.query_builder import build_search_query

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("")
def list_projects(
    search: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Public project listing; only the filters every visitor has are honoured."""
    query = build_search_query(
        {"search": search, "category": category, "status": status}, None, page, limit
    )
    conn = get_db()
    try:
        projects, pagination = search_projects(conn, query)
    finally:
        conn.close()
    return ok({"projects": [p.to_wire() for p in projects], "pagination": pagination})


@router.get("/categories")
def get_categories():
    conn = get_db()
    try:
        categories = list_categories(conn)
    finally:
        conn.close()
    return ok({"categories": categories})


@router.post("/search")
def search(query: SearchQuery, ctx: AuthContext = Depends(require_auth_context)):
    """
    Plan-gated project search.

    Raises:
        PlanRestricted (403): a filter in the request is not part of the user's effective plan
    """
    require_search_features(query, ctx.effective_plan)

    conn = get_db()
    try:
        projects, pagination = search_projects(conn, query)
    finally:
        conn.close()

    logger.debug(
        f"[SEARCH] user_id={ctx.user_id}, plan={ctx.effective_plan}, "
        f"filters={query.to_payload()}, total={pagination['total']}"
    )
    return ok({
        "projects": [p.to_wire() for p in projects],
        "planFeatures": ctx.plan_features.to_wire(),
        "pagination": pagination,
    })


@router.get("/{project_id}")
def get_project_detail(project_id: int):
    conn = get_db()
    try:
        project = get_project(conn, project_id)
    finally:
        conn.close()
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return ok({"project": project.to_wire()})


@router.post("", status_code=201)
def create(data: ProjectCreate, ctx: AuthContext = Depends(require_admin)):
    conn = get_db()
    try:
        project = create_project(conn, data)
    finally:
        conn.close()
    logger.info(f"[PROJECTS] Created project_id={project.id} by admin user_id={ctx.user_id}")
    return ok({"project": project.to_wire()})


@router.delete("/{project_id}")
def delete(project_id: int, ctx: AuthContext = Depends(require_admin)):
    conn = get_db()
    try:
        deleted = delete_project(conn, project_id)
    finally:
        conn.close()
    if not deleted:
        raise HTTPException(status_code=404, detail="Project not found")
    logger.info(f"[PROJECTS] Deleted project_id={project_id} by admin user_id={ctx.user_id}")
    return ok({"deleted": project_id})
