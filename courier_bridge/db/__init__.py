"""Database module for Courier Bridge persistence."""

from courier_bridge.db.connection import (
    SessionLocal,
    engine,
    get_db,
    get_db_context,
    init_db,
)
from courier_bridge.db.models import (
    ApiTestResult,
    Base,
    Client,
    Courier,
    CourierClient,
    CourierCredential,
    FieldMapping,
    GeneratedModule,
    TmsField,
)

__all__ = [
    # Models
    "Base",
    "Courier",
    "Client",
    "CourierClient",
    "FieldMapping",
    "CourierCredential",
    "ApiTestResult",
    "TmsField",
    "GeneratedModule",
    # Connection
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "init_db",
]
