"""Care plan endpoints.

Creating or regenerating a plan asks the AI service for a plan and turns its
daily routine and health monitoring sections into dated tasks.
"""

import uuid
from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

import schemas
from ai_service import AIService, get_ai_service
from logger_config import setup_logger
from storage import Collection, DocumentStore, get_store
from time_utils import now_iso, today

logger = setup_logger('api', 'api.log')

router = APIRouter()

# Health monitoring tasks start a week after the daily routine tasks
MONITORING_OFFSET_DAYS = 7


def _new_task(title: str, due: date) -> dict:
    return {
        "id": str(uuid.uuid4()),
        "title": title,
        "completed": False,
        "dueDate": due.isoformat(),
    }


def build_tasks(plan: dict, start: Optional[date] = None) -> List[dict]:
    """Dated tasks from an AI care plan.

    Routine item i is due on start + i days, monitoring item i on
    start + 7 + i days.
    """
    start = start or today()
    tasks = [
        _new_task(title, start + timedelta(days=index))
        for index, title in enumerate(plan.get("dailyRoutine", []))
    ]
    tasks += [
        _new_task(title, start + timedelta(days=index + MONITORING_OFFSET_DAYS))
        for index, title in enumerate(plan.get("healthMonitoring", []))
    ]
    return tasks


def _require_plan(store: DocumentStore, plan_id: str) -> dict:
    plan = store.find_by_id(Collection.CARE_PLANS, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Care plan not found")
    return plan


def _save_tasks(store: DocumentStore, plan_id: str, tasks: List[dict]) -> dict:
    updated = store.update(Collection.CARE_PLANS, plan_id, {"tasks": tasks})
    if not updated:
        raise HTTPException(status_code=404, detail="Care plan not found")
    return updated


@router.get("/")
def list_care_plans(store: DocumentStore = Depends(get_store)):
    return store.get_all(Collection.CARE_PLANS)


@router.get("/child/{child_id}")
def list_child_care_plans(child_id: str, store: DocumentStore = Depends(get_store)):
    return store.find_by_child_id(Collection.CARE_PLANS, child_id)


@router.get("/{plan_id}")
def get_care_plan(plan_id: str, store: DocumentStore = Depends(get_store)):
    return _require_plan(store, plan_id)


@router.post("/", status_code=201)
def create_care_plan(
    plan_in: schemas.CarePlanCreate,
    store: DocumentStore = Depends(get_store),
    ai: AIService = Depends(get_ai_service),
):
    """Create an AI-generated care plan for a child."""
    child = store.find_by_id(Collection.CHILDREN, plan_in.child_id)
    if not child:
        raise HTTPException(status_code=404, detail="Child not found")

    generated = ai.generate_care_plan(child, plan_in.specific_needs or "")

    care_plan = {
        "childId": plan_in.child_id,
        "title": plan_in.title,
        "description": plan_in.description or "AI-generated care plan",
        "tasks": build_tasks(generated),
        "aiGenerated": True,
    }
    created = store.create(Collection.CARE_PLANS, care_plan)
    logger.info(f"Created care plan {created['id']} with {len(created['tasks'])} task(s)")
    return created


@router.put("/{plan_id}")
def update_care_plan(
    plan_id: str,
    updates: schemas.CarePlanUpdate,
    store: DocumentStore = Depends(get_store),
):
    plan = store.update(Collection.CARE_PLANS, plan_id, updates.to_updates())
    if not plan:
        raise HTTPException(status_code=404, detail="Care plan not found")
    return plan


@router.delete("/{plan_id}")
def delete_care_plan(plan_id: str, store: DocumentStore = Depends(get_store)):
    if not store.delete(Collection.CARE_PLANS, plan_id):
        raise HTTPException(status_code=404, detail="Care plan not found")
    return {"message": "Care plan deleted successfully"}


@router.patch("/{plan_id}/tasks/{task_id}")
def update_task(
    plan_id: str,
    task_id: str,
    changes: schemas.TaskUpdate,
    store: DocumentStore = Depends(get_store),
):
    """Update one task.

    Setting completed to true stamps completedAt; setting it to false clears it.
    """
    plan = _require_plan(store, plan_id)
    tasks = plan.get("tasks", [])

    for index, task in enumerate(tasks):
        if task.get("id") == task_id:
            break
    else:
        raise HTTPException(status_code=404, detail="Task not found")

    fields = changes.to_updates()
    task = {**task, **fields}
    if "completed" in fields:
        task["completedAt"] = now_iso() if fields["completed"] else None
    tasks[index] = task

    return _save_tasks(store, plan_id, tasks)


@router.post("/{plan_id}/tasks", status_code=201)
def add_task(
    plan_id: str,
    task_in: schemas.TaskCreate,
    store: DocumentStore = Depends(get_store),
):
    """Append a manual task. dueDate defaults to today."""
    plan = _require_plan(store, plan_id)
    if not task_in.title:
        raise HTTPException(status_code=400, detail="Task title is required")

    task = _new_task(task_in.title, today())
    if task_in.due_date:
        task["dueDate"] = task_in.due_date

    return _save_tasks(store, plan_id, plan.get("tasks", []) + [task])


@router.delete("/{plan_id}/tasks/{task_id}")
def delete_task(plan_id: str, task_id: str, store: DocumentStore = Depends(get_store)):
    plan = _require_plan(store, plan_id)
    tasks = [task for task in plan.get("tasks", []) if task.get("id") != task_id]
    return _save_tasks(store, plan_id, tasks)


@router.post("/{plan_id}/regenerate")
def regenerate_care_plan(
    plan_id: str,
    body: Optional[schemas.RegenerateRequest] = None,
    store: DocumentStore = Depends(get_store),
    ai: AIService = Depends(get_ai_service),
):
    """Replace a plan's tasks with a freshly generated set."""
    plan = _require_plan(store, plan_id)
    child = store.find_by_id(Collection.CHILDREN, plan.get("childId"))
    if not child:
        raise HTTPException(status_code=404, detail="Child not found")

    specific_needs = body.specific_needs if body else None
    generated = ai.generate_care_plan(child, specific_needs or "")
    return _save_tasks(store, plan_id, build_tasks(generated))
