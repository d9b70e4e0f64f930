"""
PMS task masters router - CRUD for preventive maintenance task templates.
RBAC: any authenticated user reads, supervisors write.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from forkcheck.database import get_db
from forkcheck.models import PmsTaskMaster
from forkcheck.schemas import PmsTaskMasterCreate, PmsTaskMasterResponse, PmsTaskMasterUpdate
from forkcheck.security import AuthUser, get_auth_user, require_supervisor

router = APIRouter()


def _ensure_unique_name(db: Session, name: str):
    if db.query(PmsTaskMaster).filter(PmsTaskMaster.name == name).first():
        raise HTTPException(status_code=409, detail=f"PMS task '{name}' already exists.")


@router.get("", response_model=List[PmsTaskMasterResponse])
def list_task_masters(
    active_only: bool = False,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    query = db.query(PmsTaskMaster)
    if active_only:
        query = query.filter(PmsTaskMaster.is_active.is_(True))
    return query.order_by(PmsTaskMaster.name).all()


@router.get("/{task_id}", response_model=PmsTaskMasterResponse)
def get_task_master(
    task_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    task = db.get(PmsTaskMaster, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="PMS task master not found")
    return task


@router.post("", response_model=PmsTaskMasterResponse, status_code=201)
def create_task_master(
    task: PmsTaskMasterCreate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """
    Create a PMS task master.

    **Validations:**
    - Name must be unique
    - Frequency value must be positive
    """
    _ensure_unique_name(db, task.name)

    db_task = PmsTaskMaster(**task.model_dump())
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    return db_task


@router.put("/{task_id}", response_model=PmsTaskMasterResponse)
def update_task_master(
    task_id: str,
    task_update: PmsTaskMasterUpdate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    db_task = db.get(PmsTaskMaster, task_id)
    if not db_task:
        raise HTTPException(status_code=404, detail="PMS task master not found")

    if task_update.name and task_update.name != db_task.name:
        _ensure_unique_name(db, task_update.name)

    for field, value in task_update.model_dump(exclude_unset=True).items():
        setattr(db_task, field, value)

    db.commit()
    db.refresh(db_task)
    return db_task


@router.delete("/{task_id}", status_code=204)
def delete_task_master(
    task_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """
    Delete a PMS task master.

    **Warning:** every schedule entry of this task is deleted too.
    """
    db_task = db.get(PmsTaskMaster, task_id)
    if not db_task:
        raise HTTPException(status_code=404, detail="PMS task master not found")

    db.delete(db_task)
    db.commit()
