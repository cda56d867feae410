"""Generic record access by public id.

Callers hand in already-sanitized, already-validated field dicts; nothing
here filters input. Each helper runs inside the caller's session and
transaction.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autocare.db.models import TimestampedRecord

RecordT = TypeVar("RecordT", bound=TimestampedRecord)


async def create_record(
    session: AsyncSession, model: type[RecordT], values: Mapping[str, Any]
) -> RecordT:
    """Insert a row and flush so defaults (id, created_at) are populated."""
    record = model(**values)
    session.add(record)
    await session.flush()
    return record


async def get_record(
    session: AsyncSession, model: type[RecordT], record_id: str
) -> RecordT | None:
    result = await session.execute(select(model).where(model.id == record_id))
    return result.scalar_one_or_none()


async def list_records(
    session: AsyncSession,
    model: type[RecordT],
    *,
    newest_first: bool = False,
) -> Sequence[RecordT]:
    """All rows in insertion order (or reversed)."""
    order = model.pk.desc() if newest_first else model.pk.asc()
    result = await session.execute(select(model).order_by(order))
    return result.scalars().all()


async def update_record(
    session: AsyncSession, model: type[RecordT], record_id: str, values: Mapping[str, Any]
) -> RecordT | None:
    """Apply field values to an existing row. Returns None if not found."""
    record = await get_record(session, model, record_id)
    if record is None:
        return None
    for name, value in values.items():
        setattr(record, name, value)
    await session.flush()
    return record


async def delete_record(
    session: AsyncSession, model: type[RecordT], record_id: str
) -> RecordT | None:
    """Delete a row and return the deleted instance (or None if absent)."""
    record = await get_record(session, model, record_id)
    if record is None:
        return None
    await session.delete(record)
    await session.flush()
    return record

