"""Spare-parts inventory and the low-stock alert.

Anyone may browse stock; changing it requires an admin token. The alert
route sums units across every item and mails the configured recipient
once when the total falls below the threshold.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autocare.api.admission import read_limit, write_limit
from autocare.api.auth import require_admin
from autocare.api.dependencies import get_mailer, get_session_factory, get_settings, json_body
from autocare.api.errors import NotFoundError
from autocare.api.fields import project, project_many
from autocare.api.schemas import InventoryCreate, InventoryUpdate, parse_body
from autocare.config import Settings
from autocare.db.models import InventoryItem
from autocare.db.repository import create_record, delete_record, get_record, list_records, update_record
from autocare.integrations.mailer import Mailer

logger = structlog.get_logger()

router = APIRouter()

LOW_STOCK_SUBJECT = "Low Inventory Alert"

_admin_write = [Depends(write_limit), Depends(require_admin)]


@router.get("/inventory", dependencies=[Depends(read_limit)])
async def list_inventory(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> list[dict[str, Any]]:
    async with session_factory() as session:
        items = await list_records(session, InventoryItem)
        return project_many(items, "inventory_public")


@router.post("/inventory/sendmail", dependencies=_admin_write)
async def send_low_stock_alert(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
) -> dict[str, Any]:
    """Notify purchasing if total stock is below the alert threshold."""
    async with session_factory() as session:
        result = await session.execute(select(func.coalesce(func.sum(InventoryItem.unit_no), 0)))
        total_units = int(result.scalar_one())

    threshold = settings.inventory_alert_threshold
    if total_units >= threshold:
        await logger.ainfo("inventory_level_ok", total_units=total_units, threshold=threshold)
        return {"success": "Inventory levels are sufficient", "total_units": total_units, "notified": False}

    await mailer.send(
        settings.inventory_alert_recipient,
        LOW_STOCK_SUBJECT,
        f"Inventory levels are low ({total_units} units, threshold {threshold}). "
        "Please replenish stock.",
    )
    await logger.awarning("low_inventory_alert_sent", total_units=total_units, threshold=threshold)
    return {"success": "Low inventory alert sent", "total_units": total_units, "notified": True}


@router.get("/inventory/{item_id}", dependencies=[Depends(read_limit)])
async def get_inventory_item(
    item_id: str,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    async with session_factory() as session:
        item = await get_record(session, InventoryItem, item_id)
        if item is None:
            raise NotFoundError.for_entity("Inventory item")
        return project(item, "inventory_public")


@router.post("/inventory", status_code=201, dependencies=_admin_write)
async def create_inventory_item(
    body: dict[str, Any] = Depends(json_body),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    values = parse_body(InventoryCreate, body, "inventory").model_dump()

    async with session_factory() as session:
        async with session.begin():
            item = await create_record(session, InventoryItem, values)

    await logger.ainfo("inventory_item_created", item_id=item.id, unit_no=item.unit_no)
    return project(item, "inventory_public")


@router.put("/inventory/{item_id}", dependencies=_admin_write)
async def update_inventory_item(
    item_id: str,
    body: dict[str, Any] = Depends(json_body),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    values = parse_body(InventoryUpdate, body, "inventory").model_dump(exclude_unset=True)

    async with session_factory() as session:
        async with session.begin():
            item = await update_record(session, InventoryItem, item_id, values)
            if item is None:
                raise NotFoundError.for_entity("Inventory item")

    await logger.ainfo("inventory_item_updated", item_id=item_id, fields=sorted(values))
    return project(item, "inventory_public")


@router.delete("/inventory/{item_id}", dependencies=_admin_write)
async def delete_inventory_item(
    item_id: str,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    async with session_factory() as session:
        async with session.begin():
            item = await delete_record(session, InventoryItem, item_id)
            if item is None:
                raise NotFoundError.for_entity("Inventory item")

    await logger.ainfo("inventory_item_deleted", item_id=item_id)
    return project(item, "inventory_public")
