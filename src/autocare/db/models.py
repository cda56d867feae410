"""ORM models — bookings, inventory, service catalogue, issues, people, supply chain.

Every table has an internal integer primary key (``pk``) and a public UUID4
``id``; only ``id`` is ever projected into API responses, so row counts and
ordering are not enumerable. All timestamps are UTC.
"""

from __future__ import annotations

import enum
import secrets
from datetime import UTC, date, datetime
from uuid import uuid4

from sqlalchemy import Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


def generate_booking_ref() -> str:
    """Human-facing booking reference: 'B' followed by four digits."""
    return f"B{1000 + secrets.randbelow(9000)}"


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class TimestampedRecord:
    """Columns shared by every table — internal key, public id, audit times."""

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, default=_new_id)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=_utcnow
    )


class BookingStatus(str, enum.Enum):
    """Lifecycle of a service booking."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class IssueStatus(str, enum.Enum):
    """Lifecycle of a reported customer issue."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class UserRole(str, enum.Enum):
    """Account roles. Admin accounts are only created through the CLI."""

    USER = "user"
    ADMIN = "admin"


class Booking(TimestampedRecord, Base):
    """A customer's request to have a vehicle serviced."""

    __tablename__ = "booking"

    booking_ref: Mapped[str] = mapped_column(String(8), nullable=False, default=generate_booking_ref)
    owner_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(15), nullable=False)
    special_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BookingStatus.PENDING.value
    )
    mechanic: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location: Mapped[str] = mapped_column(String(100), nullable=False)
    service_type: Mapped[str] = mapped_column(String(50), nullable=False)
    vehicle_model: Mapped[str] = mapped_column(String(50), nullable=False)
    vehicle_number: Mapped[str] = mapped_column(String(20), nullable=False)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    booking_time: Mapped[str] = mapped_column(String(5), nullable=False)

    __table_args__ = (
        Index("ix_booking_status", "status"),
        Index("ix_booking_date", "booking_date"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, ref={self.booking_ref}, status={self.status})>"


class InventoryItem(TimestampedRecord, Base):
    """Stock of a part or consumable held by the workshop."""

    __tablename__ = "inventory_item"

    inventory_type: Mapped[str] = mapped_column(String(50), nullable=False)
    inventory_name: Mapped[str] = mapped_column(String(100), nullable=False)
    vendor: Mapped[str] = mapped_column(String(50), nullable=False)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    unit_no: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<InventoryItem(id={self.id}, name={self.inventory_name}, units={self.unit_no})>"


class ServiceOffering(TimestampedRecord, Base):
    """An entry in the public service catalogue."""

    __tablename__ = "service_offering"

    service_title: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_hours: Mapped[str] = mapped_column(String(20), nullable=False)
    image_url: Mapped[str] = mapped_column(String(2048), nullable=False)


class Issue(TimestampedRecord, Base):
    """A customer-reported problem, including roadside emergencies."""

    __tablename__ = "issue"

    customer_ref: Mapped[str] = mapped_column(String(20), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_nic: Mapped[str] = mapped_column(String(12), nullable=False)
    customer_contact: Mapped[str] = mapped_column(String(15), nullable=False)
    location: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=IssueStatus.PENDING.value
    )

    __table_args__ = (Index("ix_issue_status", "status"),)


class Customer(TimestampedRecord, Base):
    """A registered customer and their vehicle."""

    __tablename__ = "customer"

    customer_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    nic: Mapped[str] = mapped_column(String(12), nullable=False)
    address: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_no: Mapped[str] = mapped_column(String(15), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    vehicle_type: Mapped[str] = mapped_column(String(20), nullable=False)
    vehicle_name: Mapped[str] = mapped_column(String(50), nullable=False)
    registration_no: Mapped[str] = mapped_column(String(20), nullable=False)
    vehicle_color: Mapped[str] = mapped_column(String(20), nullable=False)
    vehicle_fuel: Mapped[str] = mapped_column(String(20), nullable=False)


class Employee(TimestampedRecord, Base):
    """Workshop staff member."""

    __tablename__ = "employee"

    employee_name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_number: Mapped[str] = mapped_column(String(15), nullable=False)
    nic: Mapped[str] = mapped_column(String(12), nullable=False)
    address: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    job_category: Mapped[str] = mapped_column(String(50), nullable=False)
    basic_salary: Mapped[float] = mapped_column(Float, nullable=False)
    ot_rate: Mapped[float] = mapped_column(Float, nullable=False)


class Supplier(TimestampedRecord, Base):
    """A parts supplier."""

    __tablename__ = "supplier"

    company_name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_number: Mapped[str] = mapped_column(String(15), nullable=False)
    address: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    product_type: Mapped[str] = mapped_column(String(50), nullable=False)


class SupplyRequest(TimestampedRecord, Base):
    """A restock request sent to a supplier."""

    __tablename__ = "supply_request"

    supplier_name: Mapped[str] = mapped_column(String(100), nullable=False)
    supply: Mapped[str] = mapped_column(String(100), nullable=False)
    qty: Mapped[int] = mapped_column(Integer, nullable=False)
    request_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")


class User(TimestampedRecord, Base):
    """A login account. The password is stored as a bcrypt hash — never plaintext."""

    __tablename__ = "user_account"

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(10), nullable=False, default=UserRole.USER.value)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
