"""Pydantic validation schemas for sanitized request bodies.

Bodies reach these models only after fields.sanitize() has dropped every key
outside the entity's allow-list, so the models forbid extras as a second line
of defence. Create models require every mandatory field; update models make
all fields optional and are applied with exclude_unset.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from autocare.api.errors import ValidationError
from autocare.api.fields import sanitize
from autocare.db.models import BookingStatus, IssueStatus

ModelT = TypeVar("ModelT", bound=BaseModel)

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"
PHONE_PATTERN = r"^[0-9+\-\s()]{10,15}$"
NIC_PATTERN = r"^(?:[0-9]{9}[vVxX]|[0-9]{12})$"
TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"
URL_PATTERN = r"^https?://.+"


class BodyModel(BaseModel):
    """Base for request bodies — strips strings, lower-cases emails, forbids extras."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, use_enum_values=True)

    @field_validator("email", mode="after", check_fields=False)
    @classmethod
    def lowercase_email(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else v


def parse_body(model: type[ModelT], raw: Mapping[str, Any], spec_name: str) -> ModelT:
    """Sanitize a raw body against an allow-list, then validate it.

    Raises:
        ValidationError: With field-level detail if validation fails.
    """
    try:
        return model.model_validate(sanitize(raw, spec_name))
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


def _check_not_past(value: date | None) -> date | None:
    if value is not None and value < datetime.now(UTC).date():
        raise ValueError("booking date must not be in the past")
    return value


# --- Bookings ---


class BookingCreate(BodyModel):
    owner_name: str = Field(min_length=2, max_length=100)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    phone: str = Field(pattern=PHONE_PATTERN)
    special_notes: str | None = Field(default=None, max_length=500)
    location: str = Field(min_length=5, max_length=100)
    service_type: str = Field(min_length=2, max_length=50)
    vehicle_model: str = Field(min_length=2, max_length=50)
    vehicle_number: str = Field(min_length=2, max_length=20)
    booking_date: date
    booking_time: str = Field(pattern=TIME_PATTERN)

    @field_validator("booking_date")
    @classmethod
    def booking_date_not_past(cls, v: date) -> date:
        return _check_not_past(v)


class BookingUpdate(BodyModel):
    owner_name: str | None = Field(default=None, min_length=2, max_length=100)
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    special_notes: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, min_length=5, max_length=100)
    service_type: str | None = Field(default=None, min_length=2, max_length=50)
    vehicle_model: str | None = Field(default=None, min_length=2, max_length=50)
    vehicle_number: str | None = Field(default=None, min_length=2, max_length=20)
    booking_date: date | None = None
    booking_time: str | None = Field(default=None, pattern=TIME_PATTERN)

    @field_validator("booking_date")
    @classmethod
    def booking_date_not_past(cls, v: date | None) -> date | None:
        return _check_not_past(v)


class BookingStatusUpdate(BodyModel):
    status: BookingStatus
    mechanic: str | None = Field(default=None, min_length=2, max_length=100)


# --- Inventory ---


class InventoryCreate(BodyModel):
    inventory_type: str = Field(min_length=2, max_length=50)
    inventory_name: str = Field(min_length=2, max_length=100)
    vendor: str = Field(min_length=2, max_length=50)
    unit_price: float = Field(gt=0)
    unit_no: int = Field(ge=0)
    description: str = Field(default="", max_length=500)


class InventoryUpdate(BodyModel):
    inventory_type: str | None = Field(default=None, min_length=2, max_length=50)
    inventory_name: str | None = Field(default=None, min_length=2, max_length=100)
    vendor: str | None = Field(default=None, min_length=2, max_length=50)
    unit_price: float | None = Field(default=None, gt=0)
    unit_no: int | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=500)


# --- Service catalogue ---


class ServiceCreate(BodyModel):
    service_title: str = Field(min_length=2, max_length=100)
    details: str | None = Field(default=None, max_length=500)
    estimated_hours: str = Field(min_length=1, max_length=20)
    image_url: str = Field(max_length=2048, pattern=URL_PATTERN)


class ServiceUpdate(BodyModel):
    service_title: str | None = Field(default=None, min_length=2, max_length=100)
    details: str | None = Field(default=None, max_length=500)
    estimated_hours: str | None = Field(default=None, min_length=1, max_length=20)
    image_url: str | None = Field(default=None, max_length=2048, pattern=URL_PATTERN)


# --- Issues ---


class IssueCreate(BodyModel):
    customer_ref: str = Field(min_length=2, max_length=20)
    customer_name: str = Field(min_length=2, max_length=100)
    customer_nic: str = Field(pattern=NIC_PATTERN)
    customer_contact: str = Field(pattern=PHONE_PATTERN)
    location: str = Field(min_length=5, max_length=100)
    status: IssueStatus = Field(default=IssueStatus.PENDING, validate_default=True)


class IssueUpdate(BodyModel):
    customer_ref: str | None = Field(default=None, min_length=2, max_length=20)
    customer_name: str | None = Field(default=None, min_length=2, max_length=100)
    customer_nic: str | None = Field(default=None, pattern=NIC_PATTERN)
    customer_contact: str | None = Field(default=None, pattern=PHONE_PATTERN)
    location: str | None = Field(default=None, min_length=5, max_length=100)
    status: IssueStatus | None = None


# --- Customers ---


class CustomerCreate(BodyModel):
    customer_code: str = Field(min_length=2, max_length=20)
    name: str = Field(min_length=2, max_length=100)
    nic: str = Field(pattern=NIC_PATTERN)
    address: str = Field(min_length=10, max_length=200)
    contact_no: str = Field(pattern=PHONE_PATTERN)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    vehicle_type: str = Field(min_length=2, max_length=20)
    vehicle_name: str = Field(min_length=2, max_length=50)
    registration_no: str = Field(min_length=2, max_length=20)
    vehicle_color: str = Field(min_length=2, max_length=20)
    vehicle_fuel: str = Field(min_length=2, max_length=20)


class CustomerUpdate(BodyModel):
    customer_code: str | None = Field(default=None, min_length=2, max_length=20)
    name: str | None = Field(default=None, min_length=2, max_length=100)
    nic: str | None = Field(default=None, pattern=NIC_PATTERN)
    address: str | None = Field(default=None, min_length=10, max_length=200)
    contact_no: str | None = Field(default=None, pattern=PHONE_PATTERN)
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    vehicle_type: str | None = Field(default=None, min_length=2, max_length=20)
    vehicle_name: str | None = Field(default=None, min_length=2, max_length=50)
    registration_no: str | None = Field(default=None, min_length=2, max_length=20)
    vehicle_color: str | None = Field(default=None, min_length=2, max_length=20)
    vehicle_fuel: str | None = Field(default=None, min_length=2, max_length=20)


# --- Employees ---


class EmployeeCreate(BodyModel):
    employee_name: str = Field(min_length=2, max_length=100)
    contact_number: str = Field(pattern=PHONE_PATTERN)
    nic: str = Field(pattern=NIC_PATTERN)
    address: str = Field(min_length=5, max_length=200)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    job_category: str = Field(min_length=2, max_length=50)
    basic_salary: float = Field(ge=0)
    ot_rate: float = Field(ge=0)


class EmployeeUpdate(BodyModel):
    employee_name: str | None = Field(default=None, min_length=2, max_length=100)
    contact_number: str | None = Field(default=None, pattern=PHONE_PATTERN)
    nic: str | None = Field(default=None, pattern=NIC_PATTERN)
    address: str | None = Field(default=None, min_length=5, max_length=200)
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    job_category: str | None = Field(default=None, min_length=2, max_length=50)
    basic_salary: float | None = Field(default=None, ge=0)
    ot_rate: float | None = Field(default=None, ge=0)


# --- Suppliers and supply requests ---


class SupplierCreate(BodyModel):
    company_name: str = Field(min_length=2, max_length=100)
    contact_number: str = Field(pattern=PHONE_PATTERN)
    address: str = Field(min_length=5, max_length=200)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    product_type: str = Field(min_length=2, max_length=50)


class SupplierUpdate(BodyModel):
    company_name: str | None = Field(default=None, min_length=2, max_length=100)
    contact_number: str | None = Field(default=None, pattern=PHONE_PATTERN)
    address: str | None = Field(default=None, min_length=5, max_length=200)
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    product_type: str | None = Field(default=None, min_length=2, max_length=50)


class SupplyRequestCreate(BodyModel):
    supplier_name: str = Field(min_length=2, max_length=100)
    supply: str = Field(min_length=2, max_length=100)
    qty: int = Field(gt=0)
    request_date: date
    status: str = Field(default="pending", min_length=2, max_length=20)


class SupplyRequestUpdate(BodyModel):
    supplier_name: str | None = Field(default=None, min_length=2, max_length=100)
    supply: str | None = Field(default=None, min_length=2, max_length=100)
    qty: int | None = Field(default=None, gt=0)
    request_date: date | None = None
    status: str | None = Field(default=None, min_length=2, max_length=20)


# --- Auth ---


class SignupRequest(BodyModel):
    name: str = Field(min_length=2, max_length=50)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BodyModel):
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=128)
