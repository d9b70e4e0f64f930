"""
Dashboard Service - aggregation views for supervisors.

Every function is pure: it takes already-fetched collections (ORM rows or
any objects with the same attributes) and recomputes the view from scratch.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from forkcheck.models import MheStatus, ReportStatus, utcnow

logger = logging.getLogger(__name__)


@dataclass
class DepartmentUninspected:
    department_id: str
    department_name: str
    uninspected_count: int
    unit_codes: List[str] = field(default_factory=list)


@dataclass
class UnitLatestStatus:
    unit_id: str
    unit_code: str
    status: Optional[ReportStatus] = None


@dataclass
class DepartmentDailyMetric:
    department_id: str
    department_name: str
    total_mhes: int
    safe_today: int
    unsafe_today: int
    not_inspected_today: int


@dataclass
class MonthlyTrendPoint:
    month: str  # yyyy-mm
    label: str  # "Jan 2025"
    safe: int = 0
    unsafe: int = 0


@dataclass
class DailyInspectionCount:
    date: date
    day: str
    inspections: int


@dataclass
class UnitDowntime:
    unit_code: str
    downtime_hours: float


# ==================== HELPERS ====================

def _status(value) -> Optional[ReportStatus]:
    return ReportStatus(value) if value is not None else None


def is_active_unit(unit) -> bool:
    """Inactive units are excluded from inspection coverage."""
    return MheStatus(unit.status) != MheStatus.INACTIVE


def in_range(moment: datetime, start: Optional[date], end: Optional[date]) -> bool:
    """Calendar-day range check; the end day counts in full."""
    day = moment.date()
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


def _latest_by_unit(reports: Iterable) -> Dict[str, object]:
    latest = {}
    for report in reports:
        current = latest.get(report.unit_id)
        if current is None or report.date > current.date:
            latest[report.unit_id] = report
    return latest


# ==================== VIEWS ====================

def uninspected_by_department(
    departments: Sequence,
    units: Sequence,
    reports: Sequence,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> List[DepartmentUninspected]:
    """
    Active units with no inspection in [start, end], grouped by department.

    Without a range the view lists units that were never inspected; an
    inverted range yields nothing. Departments with no gaps are omitted.
    """
    if start and end and start > end:
        logger.debug(f"Inverted date range {start} > {end}, nothing to report")
        return []

    inspected = {report.unit_id for report in reports if in_range(report.date, start, end)}

    results = []
    for department in departments:
        codes = sorted(
            unit.unit_code for unit in units
            if unit.department_id == department.id
            and is_active_unit(unit)
            and unit.id not in inspected
        )
        if codes:
            results.append(DepartmentUninspected(
                department_id=department.id,
                department_name=department.name,
                uninspected_count=len(codes),
                unit_codes=codes,
            ))
    return results


def latest_status_by_unit(
    units: Sequence,
    reports: Sequence,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> List[UnitLatestStatus]:
    """Status of the most recent report per unit within the range (None when uninspected)."""
    latest = _latest_by_unit(r for r in reports if in_range(r.date, start, end))
    return [
        UnitLatestStatus(
            unit_id=unit.id,
            unit_code=unit.unit_code,
            status=_status(latest[unit.id].status) if unit.id in latest else None,
        )
        for unit in sorted(units, key=lambda u: u.unit_code)
    ]


def daily_department_metrics(
    departments: Sequence,
    units: Sequence,
    reports: Sequence,
    day: Optional[date] = None
) -> List[DepartmentDailyMetric]:
    """Per-department safe/unsafe/not-inspected counts for one day, judged by each unit's last report."""
    day = day or utcnow().date()
    latest = _latest_by_unit(r for r in reports if r.date.date() == day)

    metrics = []
    for department in departments:
        dept_units = [
            unit for unit in units
            if unit.department_id == department.id and is_active_unit(unit)
        ]
        statuses = [_status(latest[u.id].status) for u in dept_units if u.id in latest]
        safe = sum(1 for s in statuses if s == ReportStatus.SAFE)
        unsafe = sum(1 for s in statuses if s == ReportStatus.UNSAFE)
        metrics.append(DepartmentDailyMetric(
            department_id=department.id,
            department_name=department.name,
            total_mhes=len(dept_units),
            safe_today=safe,
            unsafe_today=unsafe,
            not_inspected_today=len(dept_units) - len(statuses),
        ))
    return metrics


def monthly_trend(
    department_units: Sequence,
    reports: Sequence,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> List[MonthlyTrendPoint]:
    """Safe/Unsafe report counts per calendar month for one department's units, oldest first."""
    unit_ids = {unit.id for unit in department_units}
    buckets: Dict[str, MonthlyTrendPoint] = {}

    for report in reports:
        if report.unit_id not in unit_ids or not in_range(report.date, start, end):
            continue
        key = report.date.strftime("%Y-%m")
        point = buckets.get(key)
        if point is None:
            point = buckets[key] = MonthlyTrendPoint(month=key, label=report.date.strftime("%b %Y"))
        if _status(report.status) == ReportStatus.SAFE:
            point.safe += 1
        else:
            point.unsafe += 1

    return [buckets[key] for key in sorted(buckets)]


def daily_inspection_counts(
    reports: Sequence,
    days: int = 7,
    today: Optional[date] = None
) -> List[DailyInspectionCount]:
    """Report counts for each of the last `days` days, ending today."""
    today = today or utcnow().date()
    counts: Dict[date, int] = defaultdict(int)
    for report in reports:
        counts[report.date.date()] += 1

    results = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        results.append(DailyInspectionCount(
            date=day,
            day=day.strftime("%a"),
            inspections=counts.get(day, 0),
        ))
    return results


def downtime_by_unit(logs: Sequence) -> List[UnitDowntime]:
    """Closed downtime hours per unit code; open or inverted logs are ignored."""
    totals: Dict[str, float] = {}
    for log in logs:
        if log.end_time is None or log.end_time <= log.start_time:
            continue
        hours = (log.end_time - log.start_time).total_seconds() / 3600
        totals[log.unit_code] = totals.get(log.unit_code, 0.0) + hours

    return [
        UnitDowntime(unit_code=code, downtime_hours=round(hours, 1))
        for code, hours in totals.items()
    ]


def unit_history(reports: Sequence, unit_code: str) -> List:
    """Reports for a unit code (case-insensitive), newest first."""
    wanted = (unit_code or "").strip().lower()
    if not wanted:
        return []
    matches = [r for r in reports if r.unit_code.lower() == wanted]
    return sorted(matches, key=lambda r: r.date, reverse=True)
