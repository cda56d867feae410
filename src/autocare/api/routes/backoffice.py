"""Back-office records — customers, employees, suppliers, supply requests.

Every route requires an admin token and is counted against the admin tier.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from autocare.api.admission import admin_limit
from autocare.api.auth import require_admin
from autocare.api.routes.crud import build_crud_router
from autocare.api.schemas import (
    CustomerCreate,
    CustomerUpdate,
    EmployeeCreate,
    EmployeeUpdate,
    SupplierCreate,
    SupplierUpdate,
    SupplyRequestCreate,
    SupplyRequestUpdate,
)
from autocare.db.models import Customer, Employee, Supplier, SupplyRequest

_admin_only = [Depends(admin_limit), Depends(require_admin)]

router = APIRouter()

router.include_router(
    build_crud_router(
        path="/customers",
        model=Customer,
        entity="Customer",
        field_spec="customer",
        create_schema=CustomerCreate,
        update_schema=CustomerUpdate,
        read_dependencies=_admin_only,
        write_dependencies=_admin_only,
    )
)
router.include_router(
    build_crud_router(
        path="/employees",
        model=Employee,
        entity="Employee",
        field_spec="employee",
        create_schema=EmployeeCreate,
        update_schema=EmployeeUpdate,
        read_dependencies=_admin_only,
        write_dependencies=_admin_only,
    )
)
router.include_router(
    build_crud_router(
        path="/suppliers",
        model=Supplier,
        entity="Supplier",
        field_spec="supplier",
        create_schema=SupplierCreate,
        update_schema=SupplierUpdate,
        read_dependencies=_admin_only,
        write_dependencies=_admin_only,
    )
)
router.include_router(
    build_crud_router(
        path="/supply-requests",
        model=SupplyRequest,
        entity="Supply request",
        field_spec="supply_request",
        create_schema=SupplyRequestCreate,
        update_schema=SupplyRequestUpdate,
        read_dependencies=_admin_only,
        write_dependencies=_admin_only,
    )
)
