"""AI assistant endpoints: tips, health analysis, care plans, chat, summaries.

Model failures never surface here; AIService substitutes fallback content.
"""

import json

from fastapi import APIRouter, Depends, HTTPException

import schemas
from ai_service import AIService, get_ai_service
from storage import Collection, DocumentStore, get_store
from time_utils import now_iso

router = APIRouter()


def _load_child(store: DocumentStore, child_id) -> dict:
    if not child_id:
        raise HTTPException(status_code=400, detail="Child ID is required")
    child = store.find_by_id(Collection.CHILDREN, child_id)
    if not child:
        raise HTTPException(status_code=404, detail="Child not found")
    return child


@router.post("/tips")
def generate_tip(
    body: schemas.TipRequest,
    store: DocumentStore = Depends(get_store),
    ai: AIService = Depends(get_ai_service),
):
    """Generate a personalized tip and store it as an insight."""
    child = _load_child(store, body.child_id)
    tip = ai.generate_personalized_tip(child, body.context or "")

    insight = store.create(Collection.AI_INSIGHTS, {
        "childId": child["id"],
        "type": "personalized_tip",
        "title": "Personalized Health Tip",
        "content": tip["tip"],
        "confidence": 0.85,
    })
    return {"tip": tip, "insight": insight}


@router.post("/insights")
def generate_health_insights(
    body: schemas.ChildRequest,
    store: DocumentStore = Depends(get_store),
    ai: AIService = Depends(get_ai_service),
):
    """Analyze a child's health records and store the analysis."""
    child = _load_child(store, body.child_id)
    records = store.find_by_child_id(Collection.HEALTH_RECORDS, child["id"])
    analysis = ai.generate_health_insight(child, records)

    insight = store.create(Collection.AI_INSIGHTS, {
        "childId": child["id"],
        "type": "health_analysis",
        "title": "Health Analysis",
        "content": json.dumps(analysis),
        "confidence": 0.8,
    })
    return {"analysis": analysis, "insight": insight}


@router.post("/care-plan")
def generate_care_plan(
    body: schemas.CarePlanRequest,
    store: DocumentStore = Depends(get_store),
    ai: AIService = Depends(get_ai_service),
):
    """Generate a care plan without storing it."""
    child = _load_child(store, body.child_id)
    return ai.generate_care_plan(child, body.specific_needs or "")


@router.post("/chat")
def chat(
    body: schemas.ChatRequest,
    store: DocumentStore = Depends(get_store),
    ai: AIService = Depends(get_ai_service),
):
    """Answer a parent's question, with the child's profile as context when given."""
    if not body.message:
        raise HTTPException(status_code=400, detail="Message is required")

    # An unknown child id just means no child context
    child = store.find_by_id(Collection.CHILDREN, body.child_id) if body.child_id else None
    response = ai.chat(body.message, child=child, context=body.context)
    return {"response": response, "timestamp": now_iso()}


@router.get("/insights/{child_id}")
def list_insights(child_id: str, store: DocumentStore = Depends(get_store)):
    return store.find_by_child_id(Collection.AI_INSIGHTS, child_id)


@router.delete("/insights/{insight_id}")
def delete_insight(insight_id: str, store: DocumentStore = Depends(get_store)):
    if not store.delete(Collection.AI_INSIGHTS, insight_id):
        raise HTTPException(status_code=404, detail="AI insight not found")
    return {"message": "AI insight deleted successfully"}


@router.post("/daily-summary")
def daily_summary(
    body: schemas.ChildRequest,
    store: DocumentStore = Depends(get_store),
    ai: AIService = Depends(get_ai_service),
):
    """Summarize today's priorities for a child."""
    child = _load_child(store, body.child_id)
    summary = ai.daily_summary(
        child,
        store.find_by_child_id(Collection.HEALTH_RECORDS, child["id"]),
        store.find_by_child_id(Collection.REMINDERS, child["id"]),
        store.find_by_child_id(Collection.CARE_PLANS, child["id"]),
    )
    return {"summary": summary, "timestamp": now_iso()}
