"""Child profile endpoints.

GET /api/children/{id} returns the child aggregate: the profile plus its
health records, reminders, care plans and AI insights.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

import schemas
from ai_service import AIService, get_ai_service
from config import settings
from logger_config import setup_logger
from storage import CHILD_COLLECTIONS, Collection, DocumentStore, get_store
from time_utils import now_iso

logger = setup_logger('api', 'api.log')

router = APIRouter()


def _require_child(store: DocumentStore, child_id: str) -> dict:
    child = store.find_by_id(Collection.CHILDREN, child_id)
    if not child:
        raise HTTPException(status_code=404, detail="Child not found")
    return child


def _tip_insight(child_id: str, tip: str, insight_type: str, title: str, confidence: float) -> dict:
    return {
        "childId": child_id,
        "type": insight_type,
        "title": title,
        "content": tip,
        "confidence": confidence,
    }


@router.get("/")
def list_children(store: DocumentStore = Depends(get_store)):
    """List every child profile."""
    return store.get_all(Collection.CHILDREN)


@router.get("/{child_id}")
def get_child(child_id: str, store: DocumentStore = Depends(get_store)):
    """Get a child with all related records."""
    child = store.get_child_with_details(child_id)
    if not child:
        raise HTTPException(status_code=404, detail="Child not found")
    return child


@router.post("/", status_code=201)
def create_child(
    child_in: schemas.ChildCreate,
    store: DocumentStore = Depends(get_store),
    ai: AIService = Depends(get_ai_service),
):
    """Create a child profile.

    Request body example:
    ```json
    {"name": "Ava", "dateOfBirth": "2022-01-01", "gender": "female", "parentId": "..."}
    ```
    """
    now = now_iso()
    child = child_in.to_document()
    if child_in.medical_history is None:
        child["medicalHistory"] = schemas.MedicalHistory().to_document()
    if child_in.development_milestones is None:
        milestones = schemas.DevelopmentMilestones().to_document()
        milestones["physical"]["lastUpdated"] = now
        milestones["cognitive"]["lastUpdated"] = now
        child["developmentMilestones"] = milestones

    created = store.create(Collection.CHILDREN, child)
    logger.info(f"Created child {created['id']}")

    if settings.WELCOME_INSIGHT_ENABLED:
        try:
            tip = ai.generate_personalized_tip(created, "New child profile created")
            store.create(
                Collection.AI_INSIGHTS,
                _tip_insight(created["id"], tip["tip"], "welcome", "Welcome to AI Copilot", 0.9),
            )
        except Exception as e:
            # The profile is already saved; a missing welcome insight is not fatal
            logger.error(f"Error generating welcome insight for child {created['id']}: {str(e)}")

    return created


@router.put("/{child_id}")
def update_child(
    child_id: str,
    updates: schemas.ChildUpdate,
    store: DocumentStore = Depends(get_store),
):
    """Update a child profile. Only provided fields are changed."""
    child = store.update(Collection.CHILDREN, child_id, updates.to_updates())
    if not child:
        raise HTTPException(status_code=404, detail="Child not found")
    return child


@router.delete("/{child_id}")
def delete_child(child_id: str, store: DocumentStore = Depends(get_store)):
    """Delete a child and every record that references it.

    Related records are deleted one by one; a failure is logged and does not
    undo deletions already made.
    """
    if not store.delete(Collection.CHILDREN, child_id):
        raise HTTPException(status_code=404, detail="Child not found")

    removed = 0
    for collection in CHILD_COLLECTIONS:
        for record in store.find_by_child_id(collection, child_id):
            try:
                if store.delete(collection, record["id"]):
                    removed += 1
            except Exception as e:
                logger.error(
                    f"Error deleting {collection.value} record {record.get('id')} "
                    f"of child {child_id}: {str(e)}"
                )

    logger.info(f"Deleted child {child_id} and {removed} related record(s)")
    return {"message": "Child and related records deleted successfully"}


@router.get("/{child_id}/insights")
def list_child_insights(child_id: str, store: DocumentStore = Depends(get_store)):
    """AI insights stored for a child."""
    _require_child(store, child_id)
    return store.find_by_child_id(Collection.AI_INSIGHTS, child_id)


@router.post("/{child_id}/insights", status_code=201)
def create_child_insight(
    child_id: str,
    body: Optional[schemas.ContextRequest] = None,
    store: DocumentStore = Depends(get_store),
    ai: AIService = Depends(get_ai_service),
):
    """Generate and store a new personalized tip for a child."""
    child = _require_child(store, child_id)
    context = body.context if body else None
    tip = ai.generate_personalized_tip(child, context or "")
    return store.create(
        Collection.AI_INSIGHTS,
        _tip_insight(child_id, tip["tip"], "personalized", "Personalized Health Tip", 0.85),
    )
