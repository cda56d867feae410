"""Service catalogue — the services customers can book.

Browsing is public; curating the catalogue is an admin action.
"""

from __future__ import annotations

from fastapi import Depends

from autocare.api.admission import admin_limit, read_limit
from autocare.api.auth import require_admin
from autocare.api.routes.crud import build_crud_router
from autocare.api.schemas import ServiceCreate, ServiceUpdate
from autocare.db.models import ServiceOffering

router = build_crud_router(
    path="/services",
    model=ServiceOffering,
    entity="Service",
    field_spec="service",
    create_schema=ServiceCreate,
    update_schema=ServiceUpdate,
    read_dependencies=[Depends(read_limit)],
    write_dependencies=[Depends(admin_limit), Depends(require_admin)],
)
