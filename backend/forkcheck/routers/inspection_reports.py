"""
Inspection reports router - submission and history of unit inspections.
RBAC: any authenticated user lists and submits, supervisors delete.
"""

import logging
from datetime import date, datetime, time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from forkcheck.config import settings
from forkcheck.database import get_db
from forkcheck.models import InspectionReport, ReportStatus
from forkcheck.schemas import (
    InspectionReportCreate,
    InspectionReportCreated,
    InspectionReportResponse,
)
from forkcheck.security import AuthUser, get_auth_user, require_supervisor
from forkcheck.services.inspection_service import InspectionService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[InspectionReportResponse])
def list_inspection_reports(
    unit_id: Optional[str] = Query(None, alias="unitId"),
    unit_code: Optional[str] = None,
    status: Optional[ReportStatus] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(1000, ge=1, le=10000),
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """
    List inspection reports, newest first.

    **Filters:**
    - unitId: Reports of one unit
    - unit_code: Reports of one unit code (case-insensitive)
    - status: Safe or Unsafe
    - start_date / end_date: Inclusive calendar-day range
    """
    query = db.query(InspectionReport).options(selectinload(InspectionReport.items))

    if unit_id:
        query = query.filter(InspectionReport.unit_id == unit_id)

    if unit_code:
        query = query.filter(func.lower(InspectionReport.unit_code) == unit_code.strip().lower())

    if status:
        query = query.filter(InspectionReport.status == status)

    if start_date:
        query = query.filter(InspectionReport.date >= datetime.combine(start_date, time.min))

    if end_date:
        query = query.filter(InspectionReport.date <= datetime.combine(end_date, time.max))

    return query.order_by(InspectionReport.date.desc()).offset(skip).limit(limit).all()


@router.get("/{report_id}", response_model=InspectionReportResponse)
def get_inspection_report(
    report_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    report = db.get(InspectionReport, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Inspection report not found")
    return report


@router.post("", response_model=InspectionReportCreated, status_code=201)
def create_inspection_report(
    payload: InspectionReportCreate,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """
    Submit an inspection report.

    The status is derived from the items (Unsafe if any item is unsafe) and the
    operator is the authenticated user. An unsafe report opens a downtime log.
    """
    unit = InspectionService.resolve_unit(db, payload.unit_id, payload.unit_code)
    if not unit:
        raise HTTPException(status_code=404, detail="MHE unit not found")

    try:
        report, downtime_log = InspectionService.create_report(
            db,
            payload,
            unit,
            auth_user,
            auto_log_downtime=settings.AUTO_LOG_DOWNTIME
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.commit()
    db.refresh(report)

    logger.info(
        f"Inspection report {report.id} for {report.unit_code} submitted by "
        f"{auth_user.username}: {report.status.value}"
    )

    response = InspectionReportCreated.model_validate(report)
    response.downtime_log_id = downtime_log.id if downtime_log else None
    return response


@router.delete("/{report_id}", status_code=204)
def delete_inspection_report(
    report_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """
    Delete a report and its items.
    Downtime logs it opened are kept without the report link.
    """
    report = db.get(InspectionReport, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Inspection report not found")

    db.delete(report)
    db.commit()
