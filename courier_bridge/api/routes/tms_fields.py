"""FastAPI route for the canonical TMS field catalog."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from courier_bridge.api.schemas import TmsFieldResponse
from courier_bridge.db.connection import get_db
from courier_bridge.db.models import TmsField
from courier_bridge.services.tms_fields import list_tms_fields

router = APIRouter(prefix="/tms-fields", tags=["tms-fields"])


@router.get("", response_model=list[TmsFieldResponse])
def get_tms_fields(db: Session = Depends(get_db)) -> list[TmsField]:
    """Catalog entries, required fields first."""
    return list_tms_fields(db)
