"""FastAPI routes for registered couriers.

Courier CRUD, encrypted credential storage, field mappings, adapter module
download and client links. Domain errors raised by CourierService reach
the app-level handler, which maps them to 400/404/500.
"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from courier_bridge.api.schemas import (
    CourierClientResponse,
    CourierCreate,
    CourierResponse,
    CredentialsStored,
    CredentialsUpdate,
    FieldMappingResponse,
    FieldMappingsSave,
)
from courier_bridge.db.connection import get_db
from courier_bridge.db.models import Courier, CourierClient, FieldMapping
from courier_bridge.services.courier_service import CourierService, MappingDraft

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/couriers", tags=["couriers"])


def get_courier_service(db: Session = Depends(get_db)) -> CourierService:
    """Dependency to get CourierService instance."""
    return CourierService(db)


@router.get("", response_model=list[CourierResponse])
def list_couriers(svc: CourierService = Depends(get_courier_service)) -> list[Courier]:
    return svc.list_couriers()


@router.post("", response_model=CourierResponse, status_code=201)
def create_courier(
    data: CourierCreate,
    svc: CourierService = Depends(get_courier_service),
) -> Courier:
    """Create a courier.

    With ``request`` set this registers the courier from a test call and
    is idempotent by name; without it a duplicate name is a 400.

    Args:
        data: Courier creation data.
        svc: Courier service dependency.

    Returns:
        The created (or already registered) courier.
    """
    if data.request is not None:
        courier = svc.register_courier(data.name, data.request)
    else:
        courier = svc.create_courier(
            name=data.name,
            auth_type=data.auth_type,
            api_base_url=data.api_base_url,
            auth_config=data.auth_config,
            api_intent=data.api_intent,
        )
    svc.db.commit()
    return courier


@router.get("/{courier_id}", response_model=CourierResponse)
def get_courier(courier_id: str, svc: CourierService = Depends(get_courier_service)) -> Courier:
    return svc.get_courier(courier_id)


@router.delete("/{courier_id}", status_code=204)
def delete_courier(courier_id: str, svc: CourierService = Depends(get_courier_service)) -> Response:
    svc.delete_courier(courier_id)
    svc.db.commit()
    logger.info("Deleted courier %s", courier_id)
    return Response(status_code=204)


@router.put("/{courier_id}/credentials", response_model=CredentialsStored)
def store_credentials(
    courier_id: str,
    data: CredentialsUpdate,
    svc: CourierService = Depends(get_courier_service),
) -> CredentialsStored:
    """Encrypt and store credentials. The values are never echoed back."""
    svc.store_credentials(courier_id, data.credentials)
    svc.db.commit()
    return CredentialsStored(courier_id=courier_id)


@router.get("/{courier_id}/mappings", response_model=list[FieldMappingResponse])
def list_mappings(
    courier_id: str,
    api_type: str | None = None,
    svc: CourierService = Depends(get_courier_service),
) -> list[FieldMapping]:
    svc.get_courier(courier_id)
    return svc.list_mappings(courier_id, api_type=api_type)


@router.post("/{courier_id}/mappings", response_model=list[FieldMappingResponse])
def save_mappings(
    courier_id: str,
    data: FieldMappingsSave,
    svc: CourierService = Depends(get_courier_service),
) -> list[FieldMapping]:
    """Save mappings; rows without a TMS field are ignored.

    Returns:
        Only the rows that were inserted or updated.
    """
    drafts = [MappingDraft(**m.model_dump()) for m in data.mappings]
    saved = svc.save_mappings(courier_id, drafts)
    svc.db.commit()
    return saved


@router.get("/{courier_id}/module")
def download_module(courier_id: str, svc: CourierService = Depends(get_courier_service)) -> Response:
    """Generate the adapter module and return it as a file download."""
    filename, source = svc.generate_module(courier_id)
    svc.db.commit()
    return Response(
        content=source,
        media_type="application/javascript",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{courier_id}/clients/{client_id}", response_model=CourierClientResponse, status_code=201)
def link_client(
    courier_id: str,
    client_id: str,
    svc: CourierService = Depends(get_courier_service),
) -> CourierClient:
    link = svc.link_client(courier_id, client_id)
    svc.db.commit()
    return link
