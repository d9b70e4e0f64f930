"""
Checklist items router - CRUD for the master inspection questions.
RBAC: any authenticated user reads, supervisors write.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from forkcheck.database import get_db
from forkcheck.models import ChecklistMasterItem
from forkcheck.schemas import ChecklistItemCreate, ChecklistItemResponse, ChecklistItemUpdate
from forkcheck.security import AuthUser, get_auth_user, require_supervisor

router = APIRouter()


@router.get("", response_model=List[ChecklistItemResponse])
def list_checklist_items(
    active_only: bool = False,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """List checklist items in walk order."""
    query = db.query(ChecklistMasterItem)
    if active_only:
        query = query.filter(ChecklistMasterItem.is_active.is_(True))
    return query.order_by(ChecklistMasterItem.sort_order, ChecklistMasterItem.part_name).all()


@router.get("/{item_id}", response_model=ChecklistItemResponse)
def get_checklist_item(
    item_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    item = db.get(ChecklistMasterItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Checklist item not found")
    return item


@router.post("", response_model=ChecklistItemResponse, status_code=201)
def create_checklist_item(
    item: ChecklistItemCreate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    db_item = ChecklistMasterItem(**item.model_dump())
    db.add(db_item)
    db.commit()
    db.refresh(db_item)
    return db_item


@router.put("/{item_id}", response_model=ChecklistItemResponse)
def update_checklist_item(
    item_id: str,
    item_update: ChecklistItemUpdate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """
    Update a checklist item.
    Reports already submitted keep their own copy of part name and question.
    """
    db_item = db.get(ChecklistMasterItem, item_id)
    if not db_item:
        raise HTTPException(status_code=404, detail="Checklist item not found")

    for field, value in item_update.model_dump(exclude_unset=True).items():
        setattr(db_item, field, value)

    db.commit()
    db.refresh(db_item)
    return db_item


@router.delete("/{item_id}", status_code=204)
def delete_checklist_item(
    item_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """Delete a checklist item; historical report items keep their snapshot."""
    db_item = db.get(ChecklistMasterItem, item_id)
    if not db_item:
        raise HTTPException(status_code=404, detail="Checklist item not found")

    db.delete(db_item)
    db.commit()
