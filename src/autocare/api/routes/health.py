"""Health check endpoints — liveness and readiness.

- GET /health/live — fast liveness probe (no auth, no DB, no rate limit)
- GET /health/ready — readiness probe (checks DB connectivity)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autocare.api.dependencies import get_session_factory

router = APIRouter()


class LivenessResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    status: str
    db_ready: bool


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_probe() -> LivenessResponse:
    """Is the process running? Returns immediately."""
    return LivenessResponse(status="alive")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_probe(
    response: Response,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ReadinessResponse:
    """Can the service handle requests? Reports 503 if the database is unreachable.

    No hostnames or URLs are exposed.
    """
    db_ready = True
    try:
        async with session_factory() as session:
            await session.execute(select(1))
    except (SQLAlchemyError, OSError):
        db_ready = False

    if not db_ready:
        response.status_code = 503
    return ReadinessResponse(
        status="ready" if db_ready else "not_ready",
        db_ready=db_ready,
    )
