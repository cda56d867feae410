"""Customer-reported vehicle issues (breakdowns, emergencies).

Any signed-in user may report, browse and update issues; removing one is an
admin action.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autocare.api.admission import admin_limit, read_limit, write_limit
from autocare.api.auth import Principal, require_admin, require_user
from autocare.api.dependencies import get_session_factory, json_body
from autocare.api.errors import NotFoundError
from autocare.api.fields import project, project_many
from autocare.api.schemas import IssueCreate, IssueUpdate, parse_body
from autocare.db.models import Issue
from autocare.db.repository import create_record, delete_record, get_record, list_records, update_record

logger = structlog.get_logger()

router = APIRouter()


@router.post("/issues", status_code=201, dependencies=[Depends(write_limit)])
async def create_issue(
    principal: Principal = Depends(require_user),
    body: dict[str, Any] = Depends(json_body),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    values = parse_body(IssueCreate, body, "issue").model_dump()

    async with session_factory() as session:
        async with session.begin():
            issue = await create_record(session, Issue, values)

    await logger.ainfo("issue_reported", issue_id=issue.id, user_id=principal.user_id)
    return project(issue, "issue_public")


@router.get("/issues", dependencies=[Depends(read_limit), Depends(require_user)])
async def list_issues(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> list[dict[str, Any]]:
    """All issues, most recent first."""
    async with session_factory() as session:
        issues = await list_records(session, Issue, newest_first=True)
        return project_many(issues, "issue_public")


@router.get("/issues/{issue_id}", dependencies=[Depends(read_limit), Depends(require_user)])
async def get_issue(
    issue_id: str,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    async with session_factory() as session:
        issue = await get_record(session, Issue, issue_id)
        if issue is None:
            raise NotFoundError.for_entity("Issue")
        return project(issue, "issue_public")


@router.put("/issues/{issue_id}", dependencies=[Depends(write_limit), Depends(require_user)])
async def update_issue(
    issue_id: str,
    body: dict[str, Any] = Depends(json_body),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    values = parse_body(IssueUpdate, body, "issue").model_dump(exclude_unset=True)

    async with session_factory() as session:
        async with session.begin():
            issue = await update_record(session, Issue, issue_id, values)
            if issue is None:
                raise NotFoundError.for_entity("Issue")

    await logger.ainfo("issue_updated", issue_id=issue_id, fields=sorted(values))
    return project(issue, "issue_public")


@router.delete("/issues/{issue_id}", dependencies=[Depends(admin_limit), Depends(require_admin)])
async def delete_issue(
    issue_id: str,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    async with session_factory() as session:
        async with session.begin():
            issue = await delete_record(session, Issue, issue_id)
            if issue is None:
                raise NotFoundError.for_entity("Issue")

    await logger.ainfo("issue_deleted", issue_id=issue_id)
    return {"success": "Issue deleted"}
