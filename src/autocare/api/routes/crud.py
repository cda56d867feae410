"""Router builder for plain record collections.

Customers, employees, suppliers, supply requests and the service catalogue
share one shape: list, get, create, update, delete by public id. Each verb
is gated by a rate-limit tier and an auth dependency chosen per collection.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from fastapi import APIRouter, Depends, params
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autocare.api.dependencies import get_session_factory, json_body
from autocare.api.errors import ConflictError, NotFoundError
from autocare.api.fields import project, project_many
from autocare.api.schemas import parse_body
from autocare.db.models import TimestampedRecord
from autocare.db.repository import (
    create_record,
    delete_record,
    get_record,
    list_records,
    update_record,
)

logger = structlog.get_logger()


def build_crud_router(
    *,
    path: str,
    model: type[TimestampedRecord],
    entity: str,
    field_spec: str,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    read_dependencies: Sequence[params.Depends],
    write_dependencies: Sequence[params.Depends],
) -> APIRouter:
    """Build a router exposing CRUD for one model.

    Args:
        path: Collection path, e.g. "/customers".
        model: ORM model class.
        entity: Human name used in messages and log events ("Customer").
        field_spec: Inbound allow-list name; "<field_spec>_public" is the
            outbound projection.
        create_schema: Validation model for POST bodies.
        update_schema: Validation model for PUT bodies.
        read_dependencies: Tier and auth dependencies for GET routes.
        write_dependencies: Tier and auth dependencies for POST/PUT/DELETE.
    """
    router = APIRouter()
    public_spec = f"{field_spec}_public"
    event = entity.lower().replace(" ", "_")
    conflict_message = f"{entity} already exists"

    @router.get(path, dependencies=list(read_dependencies))
    async def list_items(
        session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    ) -> list[dict[str, Any]]:
        async with session_factory() as session:
            records = await list_records(session, model)
            return project_many(records, public_spec)

    @router.get(f"{path}/{{record_id}}", dependencies=list(read_dependencies))
    async def get_item(
        record_id: str,
        session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    ) -> dict[str, Any]:
        async with session_factory() as session:
            record = await get_record(session, model, record_id)
            if record is None:
                raise NotFoundError.for_entity(entity)
            return project(record, public_spec)

    @router.post(path, status_code=201, dependencies=list(write_dependencies))
    async def create_item(
        body: dict[str, Any] = Depends(json_body),
        session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    ) -> dict[str, Any]:
        values = parse_body(create_schema, body, field_spec).model_dump()
        try:
            async with session_factory() as session:
                async with session.begin():
                    record = await create_record(session, model, values)
        except IntegrityError as exc:
            raise ConflictError(conflict_message) from exc

        await logger.ainfo(f"{event}_created", record_id=record.id)
        return project(record, public_spec)

    @router.put(f"{path}/{{record_id}}", dependencies=list(write_dependencies))
    async def update_item(
        record_id: str,
        body: dict[str, Any] = Depends(json_body),
        session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    ) -> dict[str, Any]:
        values = parse_body(update_schema, body, field_spec).model_dump(exclude_unset=True)
        try:
            async with session_factory() as session:
                async with session.begin():
                    record = await update_record(session, model, record_id, values)
                    if record is None:
                        raise NotFoundError.for_entity(entity)
        except IntegrityError as exc:
            raise ConflictError(conflict_message) from exc

        await logger.ainfo(f"{event}_updated", record_id=record_id, fields=sorted(values))
        return project(record, public_spec)

    @router.delete(f"{path}/{{record_id}}", dependencies=list(write_dependencies))
    async def delete_item(
        record_id: str,
        session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    ) -> dict[str, Any]:
        async with session_factory() as session:
            async with session.begin():
                record = await delete_record(session, model, record_id)
                if record is None:
                    raise NotFoundError.for_entity(entity)

        await logger.ainfo(f"{event}_deleted", record_id=record_id)
        return project(record, public_spec)

    return router
