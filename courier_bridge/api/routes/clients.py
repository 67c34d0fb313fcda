"""FastAPI routes for TMS client accounts."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from courier_bridge.api.schemas import ClientCreate, ClientResponse
from courier_bridge.db.connection import get_db
from courier_bridge.db.models import Client
from courier_bridge.errors.domain import ValidationError
from courier_bridge.services.record_store import RecordStore

router = APIRouter(prefix="/clients", tags=["clients"])


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    """Dependency to get RecordStore instance."""
    return RecordStore(db)


@router.get("", response_model=list[ClientResponse])
def list_clients(store: RecordStore = Depends(get_record_store)) -> list[Client]:
    return store.get_all("clients")


@router.post("", response_model=ClientResponse, status_code=201)
def create_client(data: ClientCreate, store: RecordStore = Depends(get_record_store)) -> Client:
    """Create a client. Names are unique."""
    name = data.name.strip()
    if store.get_all("clients", name=name):
        raise ValidationError(f"Client '{name}' already exists.")
    client = store.create("clients", {"name": name, "api_url": data.api_url})
    store.db.commit()
    return client
