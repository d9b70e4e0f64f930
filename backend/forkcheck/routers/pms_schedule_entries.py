"""
PMS schedule entries router - preventive maintenance calendar per unit.
RBAC: any authenticated user lists and completes entries, supervisors plan them.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from forkcheck.database import get_db
from forkcheck.models import MheUnit, PmsScheduleEntry, PmsStatus, PmsTaskMaster
from forkcheck.schemas import (
    PmsCompletionRequest,
    PmsCompletionResponse,
    PmsScheduleDisplayEntry,
    PmsScheduleEntryCreate,
    PmsScheduleEntryResponse,
    PmsScheduleEntryUpdate,
)
from forkcheck.security import AuthUser, get_auth_user, require_supervisor
from forkcheck.services.pms_service import PmsService

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_entry(db: Session, entry_id: str) -> PmsScheduleEntry:
    entry = db.get(PmsScheduleEntry, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="PMS schedule entry not found")
    return entry


@router.get("", response_model=List[PmsScheduleDisplayEntry])
def list_schedule_entries(
    mhe_unit_id: Optional[str] = None,
    status: Optional[PmsStatus] = None,
    due_from: Optional[date] = None,
    due_to: Optional[date] = None,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """
    List schedule entries with unit and task details, earliest due first.
    Pending entries past their due date are flagged Overdue before listing.

    **Filters:**
    - mhe_unit_id: Entries of one unit
    - status: Pending, In Progress, Completed, Overdue, Skipped
    - due_from / due_to: Inclusive due-date range
    """
    entries = PmsService.list_display_entries(db, mhe_unit_id, status, due_from, due_to)
    db.commit()
    return entries


@router.get("/{entry_id}", response_model=PmsScheduleDisplayEntry)
def get_schedule_entry(
    entry_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    return PmsService.to_display(_get_entry(db, entry_id))


@router.post("", response_model=PmsScheduleEntryResponse, status_code=201)
def create_schedule_entry(
    payload: PmsScheduleEntryCreate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    unit = db.get(MheUnit, payload.mhe_unit_id)
    if not unit:
        raise HTTPException(status_code=404, detail="MHE unit not found")

    task = db.get(PmsTaskMaster, payload.pms_task_master_id)
    if not task:
        raise HTTPException(status_code=404, detail="PMS task master not found")

    entry = PmsScheduleEntry(
        unit=unit,
        task=task,
        due_date=payload.due_date,
        status=payload.status,
        notes=payload.notes,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


@router.put("/{entry_id}", response_model=PmsScheduleEntryResponse)
def update_schedule_entry(
    entry_id: str,
    entry_update: PmsScheduleEntryUpdate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    entry = _get_entry(db, entry_id)

    for field, value in entry_update.model_dump(exclude_unset=True).items():
        if field in ("due_date", "status") and value is None:
            continue
        setattr(entry, field, value)

    db.commit()
    db.refresh(entry)
    return entry


@router.post("/{entry_id}/complete", response_model=PmsCompletionResponse)
def complete_schedule_entry(
    entry_id: str,
    request: Optional[PmsCompletionRequest] = None,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """
    Mark an entry completed by the authenticated user.
    Day, week and month based tasks get their next Pending entry scheduled
    from the completion date.
    """
    entry = _get_entry(db, entry_id)
    if entry.status == PmsStatus.COMPLETED:
        raise HTTPException(status_code=409, detail="PMS schedule entry is already completed.")

    completed, next_entry = PmsService.complete_entry(
        db, entry, request or PmsCompletionRequest(), auth_user
    )
    db.commit()
    db.refresh(completed)

    logger.info(f"PMS entry {entry_id} completed by {auth_user.username}")
    return PmsCompletionResponse(
        completed=PmsService.to_display(completed),
        next_entry=PmsScheduleEntryResponse.model_validate(next_entry) if next_entry else None,
    )


@router.delete("/{entry_id}", status_code=204)
def delete_schedule_entry(
    entry_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    entry = _get_entry(db, entry_id)
    db.delete(entry)
    db.commit()
