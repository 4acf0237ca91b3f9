"""Health record endpoints (checkups, vaccinations, appointments).

Mounted at /api/health, so the record list lives at /api/health/ while the
bare /api/health path is the service health check.
"""

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException

import schemas
from config import settings
from logger_config import setup_logger
from storage import Collection, DocumentStore, get_store
from time_utils import now_iso, parse_datetime, utc_now

logger = setup_logger('api', 'api.log')

router = APIRouter()


@router.get("/")
def list_health_records(store: DocumentStore = Depends(get_store)):
    return store.get_all(Collection.HEALTH_RECORDS)


@router.get("/child/{child_id}")
def list_child_health_records(child_id: str, store: DocumentStore = Depends(get_store)):
    return store.find_by_child_id(Collection.HEALTH_RECORDS, child_id)


@router.get("/upcoming/{child_id}")
def list_upcoming_health_events(child_id: str, store: DocumentStore = Depends(get_store)):
    """Scheduled records for a child dated within the next few days."""
    now = utc_now()
    horizon = now + timedelta(days=settings.UPCOMING_HEALTH_DAYS)

    upcoming = []
    for record in store.find_by_child_id(Collection.HEALTH_RECORDS, child_id):
        if record.get('status') != 'scheduled':
            continue
        try:
            when = parse_datetime(record.get('date'))
        except (TypeError, ValueError):
            logger.warning(f"Health record {record.get('id')} has an invalid date {record.get('date')!r}")
            continue
        if now <= when <= horizon:
            upcoming.append(record)
    return upcoming


@router.get("/{record_id}")
def get_health_record(record_id: str, store: DocumentStore = Depends(get_store)):
    record = store.find_by_id(Collection.HEALTH_RECORDS, record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Health record not found")
    return record


@router.post("/", status_code=201)
def create_health_record(
    record_in: schemas.HealthRecordCreate,
    store: DocumentStore = Depends(get_store),
):
    """Create a health record. Status defaults to 'scheduled'."""
    return store.create(Collection.HEALTH_RECORDS, record_in.to_document())


@router.put("/{record_id}")
def update_health_record(
    record_id: str,
    updates: schemas.HealthRecordUpdate,
    store: DocumentStore = Depends(get_store),
):
    record = store.update(Collection.HEALTH_RECORDS, record_id, updates.to_updates())
    if not record:
        raise HTTPException(status_code=404, detail="Health record not found")
    return record


@router.delete("/{record_id}")
def delete_health_record(record_id: str, store: DocumentStore = Depends(get_store)):
    if not store.delete(Collection.HEALTH_RECORDS, record_id):
        raise HTTPException(status_code=404, detail="Health record not found")
    return {"message": "Health record deleted successfully"}


@router.patch("/{record_id}/complete")
def complete_health_record(record_id: str, store: DocumentStore = Depends(get_store)):
    """Mark a record completed and stamp completedAt."""
    record = store.update(
        Collection.HEALTH_RECORDS,
        record_id,
        {"status": "completed", "completedAt": now_iso()},
    )
    if not record:
        raise HTTPException(status_code=404, detail="Health record not found")
    return record
