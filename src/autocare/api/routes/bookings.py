"""Service bookings.

Customers create bookings with a user token; everything else is back-office
and requires an admin token. Accepting a booking emails its owner.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autocare.api.admission import admin_limit, read_limit, write_limit
from autocare.api.auth import Principal, require_admin, require_user
from autocare.api.dependencies import get_mailer, get_session_factory, json_body
from autocare.api.errors import NotFoundError
from autocare.api.fields import project, project_many
from autocare.api.schemas import BookingCreate, BookingStatusUpdate, BookingUpdate, parse_body
from autocare.db.models import Booking, BookingStatus
from autocare.db.repository import create_record, delete_record, get_record, list_records, update_record
from autocare.integrations.mailer import Mailer

logger = structlog.get_logger()

router = APIRouter()

ACCEPTED_SUBJECT = "Booking Accepted"


def _accepted_message(booking: Booking) -> str:
    return (
        f"Dear {booking.owner_name},\n\n"
        f"Your booking {booking.booking_ref} for {booking.vehicle_number} on "
        f"{booking.booking_date.isoformat()} at {booking.booking_time} has been accepted.\n"
    )


@router.post("/booking", status_code=201, dependencies=[Depends(write_limit)])
async def create_booking(
    principal: Principal = Depends(require_user),
    body: dict[str, Any] = Depends(json_body),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    """Book a vehicle service. Status always starts as pending."""
    values = parse_body(BookingCreate, body, "booking").model_dump()

    async with session_factory() as session:
        async with session.begin():
            booking = await create_record(session, Booking, values)

    await logger.ainfo(
        "booking_created",
        booking_id=booking.id,
        booking_ref=booking.booking_ref,
        user_id=principal.user_id,
    )
    return project(booking, "booking_public")


@router.get("/booking", dependencies=[Depends(admin_limit), Depends(require_admin)])
async def list_bookings(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> list[dict[str, Any]]:
    """All bookings, newest first."""
    async with session_factory() as session:
        bookings = await list_records(session, Booking, newest_first=True)
        return project_many(bookings, "booking_public")


@router.get("/booking/{booking_id}", dependencies=[Depends(read_limit), Depends(require_admin)])
async def get_booking(
    booking_id: str,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    async with session_factory() as session:
        booking = await get_record(session, Booking, booking_id)
        if booking is None:
            raise NotFoundError.for_entity("Booking")
        return project(booking, "booking_public")


@router.put("/booking/{booking_id}", dependencies=[Depends(admin_limit), Depends(require_admin)])
async def update_booking(
    booking_id: str,
    body: dict[str, Any] = Depends(json_body),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    """Partially update booking details. Status has its own endpoint."""
    values = parse_body(BookingUpdate, body, "booking").model_dump(exclude_unset=True)

    async with session_factory() as session:
        async with session.begin():
            booking = await update_record(session, Booking, booking_id, values)
            if booking is None:
                raise NotFoundError.for_entity("Booking")

    await logger.ainfo("booking_updated", booking_id=booking_id, fields=sorted(values))
    return project(booking, "booking_public")


@router.put(
    "/booking/{booking_id}/status",
    dependencies=[Depends(admin_limit), Depends(require_admin)],
)
async def update_booking_status(
    booking_id: str,
    body: dict[str, Any] = Depends(json_body),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    mailer: Mailer = Depends(get_mailer),
) -> dict[str, Any]:
    """Move a booking through its lifecycle.

    The owner is emailed when the booking first becomes accepted. The status
    change is committed before the email is sent, so a mail failure (502)
    never rolls it back.
    """
    update = parse_body(BookingStatusUpdate, body, "booking_status")
    values = update.model_dump(exclude_unset=True)

    async with session_factory() as session:
        async with session.begin():
            booking = await get_record(session, Booking, booking_id)
            if booking is None:
                raise NotFoundError.for_entity("Booking")
            previous = booking.status
            for name, value in values.items():
                setattr(booking, name, value)

    await logger.ainfo(
        "booking_status_changed",
        booking_id=booking_id,
        previous=previous,
        status=booking.status,
    )

    accepted = BookingStatus.ACCEPTED.value
    if booking.status == accepted and previous != accepted:
        await mailer.send(booking.email, ACCEPTED_SUBJECT, _accepted_message(booking))
        await logger.ainfo("booking_acceptance_sent", booking_id=booking_id)

    return project(booking, "booking_public")


@router.delete("/booking/{booking_id}", dependencies=[Depends(admin_limit), Depends(require_admin)])
async def delete_booking(
    booking_id: str,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, Any]:
    async with session_factory() as session:
        async with session.begin():
            booking = await delete_record(session, Booking, booking_id)
            if booking is None:
                raise NotFoundError.for_entity("Booking")

    await logger.ainfo("booking_deleted", booking_id=booking_id)
    return {"success": "Booking deleted"}
