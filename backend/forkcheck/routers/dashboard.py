"""
Dashboard router - supervisor views over units, reports and downtime.
Each endpoint loads the collections it needs and recomputes the view.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, selectinload

from forkcheck.database import get_db
from forkcheck.models import Department, DowntimeLog, InspectionReport, MheUnit
from forkcheck.schemas import (
    DailyInspectionCountResponse,
    DepartmentDailyMetricResponse,
    DepartmentUninspectedResponse,
    InspectionReportResponse,
    MonthlyTrendPointResponse,
    UnitDowntimeResponse,
    UnitLatestStatusResponse,
)
from forkcheck.services import dashboard_service

router = APIRouter()


@router.get("/uninspected", response_model=List[DepartmentUninspectedResponse])
def get_uninspected_units(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db)
):
    """
    Active units without an inspection in the date range, per department.
    Without a range, units that were never inspected.
    """
    return dashboard_service.uninspected_by_department(
        db.query(Department).order_by(Department.name).all(),
        db.query(MheUnit).all(),
        db.query(InspectionReport).all(),
        start_date,
        end_date
    )


@router.get("/latest-status", response_model=List[UnitLatestStatusResponse])
def get_latest_status(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db)
):
    return dashboard_service.latest_status_by_unit(
        db.query(MheUnit).all(),
        db.query(InspectionReport).all(),
        start_date,
        end_date
    )


@router.get("/daily-metrics", response_model=List[DepartmentDailyMetricResponse])
def get_daily_metrics(
    day: Optional[date] = None,
    db: Session = Depends(get_db)
):
    """Safe, unsafe and not-inspected unit counts per department for a day (default today)."""
    return dashboard_service.daily_department_metrics(
        db.query(Department).order_by(Department.name).all(),
        db.query(MheUnit).all(),
        db.query(InspectionReport).all(),
        day
    )


@router.get("/monthly-trend/{department_id}", response_model=List[MonthlyTrendPointResponse])
def get_monthly_trend(
    department_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db)
):
    department = db.get(Department, department_id)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")

    return dashboard_service.monthly_trend(
        department.mhe_units,
        db.query(InspectionReport).all(),
        start_date,
        end_date
    )


@router.get("/daily-inspections", response_model=List[DailyInspectionCountResponse])
def get_daily_inspections(
    days: int = Query(7, ge=1, le=90),
    db: Session = Depends(get_db)
):
    """Inspection counts for each of the last N days."""
    return dashboard_service.daily_inspection_counts(db.query(InspectionReport).all(), days)


@router.get("/downtime-overview", response_model=List[UnitDowntimeResponse])
def get_downtime_overview(db: Session = Depends(get_db)):
    """Closed downtime hours per unit code."""
    return dashboard_service.downtime_by_unit(db.query(DowntimeLog).all())


@router.get("/unit-history/{unit_code}", response_model=List[InspectionReportResponse])
def get_unit_history(unit_code: str, db: Session = Depends(get_db)):
    """All reports of a unit code, newest first."""
    reports = db.query(InspectionReport).options(selectinload(InspectionReport.items)).all()
    return dashboard_service.unit_history(reports, unit_code)
