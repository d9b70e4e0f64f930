"""
Downtime logs router - out-of-service periods per unit.
RBAC: any authenticated user lists, logs and closes downtime; supervisors delete.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from forkcheck.database import get_db
from forkcheck.models import DowntimeLog, DowntimeUnsafeItem, InspectionReport, User
from forkcheck.schemas import DowntimeLogCreate, DowntimeLogResponse, DowntimeLogUpdate
from forkcheck.security import AuthUser, get_auth_user, require_supervisor
from forkcheck.services.inspection_service import InspectionService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[DowntimeLogResponse])
def list_downtime_logs(
    unit_id: Optional[str] = Query(None, alias="unitId"),
    source_report_id: Optional[str] = Query(None, alias="sourceReportId"),
    open_only: bool = False,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """
    List downtime logs, most recent start first.

    **Filters:**
    - unitId: Logs of one unit
    - sourceReportId: Logs opened by one inspection report
    - open_only: Only logs without an end time
    """
    query = db.query(DowntimeLog).options(selectinload(DowntimeLog.unsafe_items))

    if unit_id:
        query = query.filter(DowntimeLog.unit_id == unit_id)

    if source_report_id:
        query = query.filter(DowntimeLog.source_report_id == source_report_id)

    if open_only:
        query = query.filter(DowntimeLog.end_time.is_(None))

    return query.order_by(DowntimeLog.start_time.desc()).all()


@router.get("/{log_id}", response_model=DowntimeLogResponse)
def get_downtime_log(
    log_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    log = db.get(DowntimeLog, log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Downtime log not found")
    return log


@router.post("", response_model=DowntimeLogResponse, status_code=201)
def create_downtime_log(
    payload: DowntimeLogCreate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """
    Log downtime for a unit (by id or unit code).
    The end time may be left open and filled in later.
    """
    unit = InspectionService.resolve_unit(db, payload.unit_id, payload.unit_code)
    if not unit:
        raise HTTPException(status_code=404, detail="MHE unit not found")

    source_report = None
    if payload.source_report_id:
        source_report = db.get(InspectionReport, payload.source_report_id)
        if not source_report:
            raise HTTPException(
                status_code=400,
                detail=f"Inspection report {payload.source_report_id} does not exist."
            )

    log = DowntimeLog(
        unit=unit,
        unit_code=unit.unit_code,
        reason=payload.reason,
        start_time=payload.start_time,
        end_time=payload.end_time,
        source_report=source_report,
        user=db.get(User, auth_user.id),
        unsafe_items=[DowntimeUnsafeItem(**item.model_dump()) for item in payload.unsafe_items],
    )
    db.add(log)
    db.commit()
    db.refresh(log)

    logger.info(f"Downtime logged for {unit.unit_code} by {auth_user.username}")
    return log


@router.put("/{log_id}", response_model=DowntimeLogResponse)
def update_downtime_log(
    log_id: str,
    log_update: DowntimeLogUpdate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """Update reason or times (typically to close the log with an end time)."""
    log = db.get(DowntimeLog, log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Downtime log not found")

    update_data = log_update.model_dump(exclude_unset=True)
    start_time = update_data.get("start_time", log.start_time)
    end_time = update_data.get("end_time", log.end_time)
    if start_time is None:
        raise HTTPException(status_code=400, detail="Start time is required.")
    if end_time is not None and end_time < start_time:
        raise HTTPException(status_code=400, detail="End time cannot be before start time.")

    for field, value in update_data.items():
        if field == "reason" and value is None:
            continue
        setattr(log, field, value)

    db.commit()
    db.refresh(log)
    return log


@router.delete("", response_model=dict)
def delete_downtime_logs_for_report(
    source_report_id: Optional[str] = Query(None, alias="sourceReportId"),
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """Delete every downtime log opened by one inspection report."""
    if not source_report_id:
        raise HTTPException(status_code=400, detail="sourceReportId query parameter is required.")

    logs = db.query(DowntimeLog).filter(DowntimeLog.source_report_id == source_report_id).all()
    for log in logs:
        db.delete(log)
    db.commit()

    logger.info(f"Deleted {len(logs)} downtime logs of report {source_report_id}")
    return {"deleted": len(logs)}


@router.delete("/{log_id}", status_code=204)
def delete_downtime_log(
    log_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    log = db.get(DowntimeLog, log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Downtime log not found")

    db.delete(log)
    db.commit()
