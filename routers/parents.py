"""Parent endpoints."""

from fastapi import APIRouter, Depends, HTTPException

import schemas
from storage import Collection, DocumentStore, get_store

router = APIRouter()


@router.get("/")
def list_parents(store: DocumentStore = Depends(get_store)):
    return store.get_all(Collection.PARENTS)


@router.get("/{parent_id}")
def get_parent(parent_id: str, store: DocumentStore = Depends(get_store)):
    parent = store.find_by_id(Collection.PARENTS, parent_id)
    if not parent:
        raise HTTPException(status_code=404, detail="Parent not found")
    return parent


@router.get("/{parent_id}/children")
def list_parent_children(parent_id: str, store: DocumentStore = Depends(get_store)):
    """Children whose parentId points at this parent."""
    if not store.find_by_id(Collection.PARENTS, parent_id):
        raise HTTPException(status_code=404, detail="Parent not found")
    return [c for c in store.get_all(Collection.CHILDREN) if c.get('parentId') == parent_id]


@router.post("/", status_code=201)
def create_parent(parent_in: schemas.ParentCreate, store: DocumentStore = Depends(get_store)):
    return store.create(Collection.PARENTS, parent_in.to_document())


@router.put("/{parent_id}")
def update_parent(
    parent_id: str,
    updates: schemas.ParentUpdate,
    store: DocumentStore = Depends(get_store),
):
    parent = store.update(Collection.PARENTS, parent_id, updates.to_updates())
    if not parent:
        raise HTTPException(status_code=404, detail="Parent not found")
    return parent


@router.delete("/{parent_id}")
def delete_parent(parent_id: str, store: DocumentStore = Depends(get_store)):
    """Delete a parent. Their children are kept; parentId is not enforced."""
    if not store.delete(Collection.PARENTS, parent_id):
        raise HTTPException(status_code=404, detail="Parent not found")
    return {"message": "Parent deleted successfully"}
