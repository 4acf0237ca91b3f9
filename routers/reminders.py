"""Reminder endpoints.

The periodic sweep that stamps lastTriggered lives in background_worker;
PATCH /{id}/trigger does the same stamping on demand.
"""

from fastapi import APIRouter, Depends, HTTPException

import schemas
from logger_config import setup_logger
from storage import Collection, DocumentStore, get_store
from time_utils import now_iso

logger = setup_logger('api', 'api.log')

router = APIRouter()


@router.get("/")
def list_reminders(store: DocumentStore = Depends(get_store)):
    return store.get_all(Collection.REMINDERS)


@router.get("/child/{child_id}")
def list_child_reminders(child_id: str, store: DocumentStore = Depends(get_store)):
    return store.find_by_child_id(Collection.REMINDERS, child_id)


@router.get("/active")
def list_active_reminders(store: DocumentStore = Depends(get_store)):
    return [r for r in store.get_all(Collection.REMINDERS) if r.get('isActive')]


@router.get("/upcoming")
def list_upcoming_reminders(store: DocumentStore = Depends(get_store)):
    """Active reminders due within the next day, plus undated recurring ones."""
    return store.get_upcoming_reminders()


@router.post("/", status_code=201)
def create_reminder(
    reminder_in: schemas.ReminderCreate,
    store: DocumentStore = Depends(get_store),
):
    """Create a reminder.

    Request body example:
    ```json
    {"childId": "...", "type": "medication", "title": "Vitamin D", "time": "08:00", "frequency": "daily"}
    ```
    """
    reminder = reminder_in.to_document()
    reminder['isActive'] = True
    reminder['lastTriggered'] = None
    return store.create(Collection.REMINDERS, reminder)


@router.put("/{reminder_id}")
def update_reminder(
    reminder_id: str,
    updates: schemas.ReminderUpdate,
    store: DocumentStore = Depends(get_store),
):
    reminder = store.update(Collection.REMINDERS, reminder_id, updates.to_updates())
    if not reminder:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return reminder


@router.delete("/{reminder_id}")
def delete_reminder(reminder_id: str, store: DocumentStore = Depends(get_store)):
    if not store.delete(Collection.REMINDERS, reminder_id):
        raise HTTPException(status_code=404, detail="Reminder not found")
    return {"message": "Reminder deleted successfully"}


@router.patch("/{reminder_id}/toggle")
def toggle_reminder(reminder_id: str, store: DocumentStore = Depends(get_store)):
    """Flip isActive."""
    reminder = store.find_by_id(Collection.REMINDERS, reminder_id)
    if not reminder:
        raise HTTPException(status_code=404, detail="Reminder not found")

    updated = store.update(Collection.REMINDERS, reminder_id, {'isActive': not reminder.get('isActive')})
    if not updated:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return updated


@router.patch("/{reminder_id}/trigger")
def trigger_reminder(reminder_id: str, store: DocumentStore = Depends(get_store)):
    """Stamp lastTriggered with the current time."""
    reminder = store.update(Collection.REMINDERS, reminder_id, {'lastTriggered': now_iso()})
    if not reminder:
        raise HTTPException(status_code=404, detail="Reminder not found")
    logger.info(f"Reminder {reminder_id} triggered manually")
    return reminder
