"""Allow-list field projection — one table, applied to request bodies and responses.

SECURITY: Inbound bodies pass through sanitize() before validation so that
unexpected keys (is_admin, role, id, password_hash, ...) can never reach an
ORM constructor. Outbound records pass through project() so internal columns
(integer keys, password hashes, audit timestamps) are excluded by omission.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

_BOOKING_INPUT = (
    "owner_name",
    "email",
    "phone",
    "special_notes",
    "location",
    "service_type",
    "vehicle_model",
    "vehicle_number",
    "booking_date",
    "booking_time",
)
_INVENTORY_INPUT = (
    "inventory_type",
    "inventory_name",
    "vendor",
    "unit_price",
    "unit_no",
    "description",
)
_SERVICE_INPUT = ("service_title", "details", "estimated_hours", "image_url")
_ISSUE_INPUT = (
    "customer_ref",
    "customer_name",
    "customer_nic",
    "customer_contact",
    "location",
    "status",
)
_CUSTOMER_INPUT = (
    "customer_code",
    "name",
    "nic",
    "address",
    "contact_no",
    "email",
    "vehicle_type",
    "vehicle_name",
    "registration_no",
    "vehicle_color",
    "vehicle_fuel",
)
_EMPLOYEE_INPUT = (
    "employee_name",
    "contact_number",
    "nic",
    "address",
    "email",
    "job_category",
    "basic_salary",
    "ot_rate",
)
_SUPPLIER_INPUT = ("company_name", "contact_number", "address", "email", "product_type")
_SUPPLY_REQUEST_INPUT = ("supplier_name", "supply", "qty", "request_date", "status")

FIELD_SPECS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    # Inbound
    "booking": _BOOKING_INPUT,
    "booking_status": ("status", "mechanic"),
    "inventory": _INVENTORY_INPUT,
    "service": _SERVICE_INPUT,
    "issue": _ISSUE_INPUT,
    "customer": _CUSTOMER_INPUT,
    "employee": _EMPLOYEE_INPUT,
    "supplier": _SUPPLIER_INPUT,
    "supply_request": _SUPPLY_REQUEST_INPUT,
    "signup": ("name", "email", "password"),
    "login": ("email", "password"),
    # Outbound
    "booking_public": ("id", "booking_ref", *_BOOKING_INPUT, "status", "mechanic"),
    "inventory_public": ("id", *_INVENTORY_INPUT),
    "service_public": ("id", *_SERVICE_INPUT),
    "issue_public": ("id", *_ISSUE_INPUT, "created_at"),
    "customer_public": ("id", *_CUSTOMER_INPUT),
    "employee_public": ("id", *_EMPLOYEE_INPUT),
    "supplier_public": ("id", *_SUPPLIER_INPUT),
    "supply_request_public": ("id", *_SUPPLY_REQUEST_INPUT),
    "user_public": ("id", "name", "email", "role"),
})


def field_spec(name: str) -> tuple[str, ...]:
    """Look up a named allow-list. Unknown names are a programming error."""
    try:
        return FIELD_SPECS[name]
    except KeyError:
        raise KeyError(f"Unknown field spec: {name!r}") from None


def pick(source: Any, fields: Iterable[str]) -> dict[str, Any]:
    """Copy the allowed, non-null fields of a mapping or object into a new dict.

    Mappings are read by key, anything else by attribute. Keys are copied in
    allow-list order. Dunder and private names are never read even if listed.
    """
    out: dict[str, Any] = {}
    is_mapping = isinstance(source, Mapping)
    for name in fields:
        if name.startswith("_"):
            continue
        if is_mapping:
            if name not in source:
                continue
            value = source[name]
        else:
            value = getattr(source, name, None)
        if value is not None:
            out[name] = value
    return out


def sanitize(raw: Mapping[str, Any], spec_name: str) -> dict[str, Any]:
    """Filter an inbound body down to the named allow-list."""
    return pick(raw, field_spec(spec_name))


def project(record: Any, spec_name: str) -> dict[str, Any]:
    """Project a persisted record (ORM object or mapping) to its public fields."""
    return pick(record, field_spec(spec_name))


def project_many(records: Iterable[Any], spec_name: str) -> list[dict[str, Any]]:
    """Project each record in order."""
    fields = field_spec(spec_name)
    return [pick(record, fields) for record in records]
