"""Catalog of canonical TMS fields that courier paths are mapped onto."""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from courier_bridge.db.models import TmsField

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TmsFieldDef:
    name: str
    display_name: str
    description: str
    data_type: str = "string"
    is_required: bool = False


DEFAULT_TMS_FIELDS: tuple[TmsFieldDef, ...] = (
    TmsFieldDef("docket_number", "Docket Number", "Tracking or waybill number", is_required=True),
    TmsFieldDef("status", "Status", "Current shipment status"),
    TmsFieldDef("l1_status", "L1 Status", "Top-level normalized status"),
    TmsFieldDef("l2_status", "L2 Status", "Detailed courier status"),
    TmsFieldDef("tracking_details", "Tracking Details", "Tracking event history", data_type="array"),
    TmsFieldDef("event_date", "Event Date", "Timestamp of the tracking event", data_type="date"),
    TmsFieldDef("event_status", "Event Status", "Status reported by the tracking event"),
    TmsFieldDef("location", "Location", "Location of the tracking event"),
    TmsFieldDef("origin", "Origin", "Origin location of the shipment"),
    TmsFieldDef("destination", "Destination", "Destination location of the shipment"),
    TmsFieldDef("delivery_date", "Delivery Date", "Actual or expected delivery date", data_type="date"),
    TmsFieldDef("pod_url", "POD URL", "Proof of delivery document link"),
    TmsFieldDef("remarks", "Remarks", "Free-text courier remarks"),
)


def seed_tms_fields(db: Session) -> int:
    """Insert any default TMS fields not already present.

    Idempotent. Does not commit.

    Returns:
        Number of fields inserted.
    """
    existing = set(db.scalars(select(TmsField.name)).all())
    added = 0
    for field_def in DEFAULT_TMS_FIELDS:
        if field_def.name in existing:
            continue
        db.add(TmsField(
            name=field_def.name,
            display_name=field_def.display_name,
            description=field_def.description,
            data_type=field_def.data_type,
            is_required=field_def.is_required,
        ))
        added += 1
    if added:
        db.flush()
        logger.info("Seeded %d default TMS fields", added)
    return added


def list_tms_fields(db: Session) -> list[TmsField]:
    """All TMS fields, required ones first, then by name."""
    stmt = select(TmsField).order_by(TmsField.is_required.desc(), TmsField.name)
    return list(db.scalars(stmt).all())
