"""
Inspection Service - server-side rules for inspection reports.

Report status is derived from the items, item part names and questions are
snapshotted from the checklist master, and an unsafe report opens a downtime
log linked back to it.
"""

import logging
from typing import Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from forkcheck.models import (
    ChecklistMasterItem,
    DowntimeLog,
    DowntimeUnsafeItem,
    InspectionReport,
    InspectionReportItem,
    MheUnit,
    ReportStatus,
    User,
    utcnow,
)
from forkcheck.schemas import InspectionReportCreate
from forkcheck.security import AuthUser

logger = logging.getLogger(__name__)


class InspectionService:
    """Service class for inspection report creation"""

    @staticmethod
    def compute_status(items: Sequence) -> ReportStatus:
        """Unsafe if any item is unsafe."""
        return ReportStatus.SAFE if all(item.is_safe for item in items) else ReportStatus.UNSAFE

    @staticmethod
    def build_downtime_reason(unit_code: str, items: Sequence[InspectionReportItem]) -> str:
        """Reason text for the downtime opened by an unsafe report."""
        first_unsafe = next((item for item in items if not item.is_safe), None)
        if first_unsafe is None:
            return f"Forklift unit {unit_code} deemed unsafe during inspection."
        reason = f"Unsafe item: {first_unsafe.part_name_snapshot}."
        if first_unsafe.remarks:
            reason += f" Remarks: {first_unsafe.remarks}"
        return reason

    @staticmethod
    def resolve_unit(
        db: Session,
        unit_id: Optional[str] = None,
        unit_code: Optional[str] = None
    ) -> Optional[MheUnit]:
        """Find a unit by id, or by code (case-insensitive)."""
        if unit_id:
            return db.get(MheUnit, unit_id)
        if unit_code:
            return db.query(MheUnit).filter(
                func.lower(MheUnit.unit_code) == unit_code.strip().lower()
            ).first()
        return None

    @staticmethod
    def _build_items(db: Session, payload: InspectionReportCreate) -> list:
        """Snapshot every answered item; raises ValueError on unresolvable items."""
        items = []
        for position, item in enumerate(payload.items):
            part_name, question = item.part_name, item.question
            if item.checklist_item_id:
                master = db.get(ChecklistMasterItem, item.checklist_item_id)
                if master is None:
                    raise ValueError(f"Checklist item {item.checklist_item_id} not found.")
                part_name = part_name or master.part_name
                question = question or master.question
            if not part_name or not question:
                raise ValueError(
                    "Each item needs a checklist_item_id or both a part_name and a question."
                )
            items.append(InspectionReportItem(
                checklist_item_id=item.checklist_item_id,
                position=position,
                part_name_snapshot=part_name,
                question_snapshot=question,
                is_safe=item.is_safe,
                photo_url=item.photo_url,
                timestamp=item.timestamp,
                remarks=item.remarks,
            ))
        return items

    @staticmethod
    def open_downtime_for_report(db: Session, report: InspectionReport) -> DowntimeLog:
        """Open downtime for an unsafe report, carrying its unsafe items over."""
        log = DowntimeLog(
            unit=report.unit,
            unit_code=report.unit_code,
            reason=InspectionService.build_downtime_reason(report.unit_code, report.items),
            start_time=report.date,
            logged_at=report.date,
            source_report=report,
            user=report.user,
            unsafe_items=[
                DowntimeUnsafeItem(
                    part_name=item.part_name_snapshot,
                    remarks=item.remarks,
                    photo_url=item.photo_url,
                )
                for item in report.items if not item.is_safe
            ],
        )
        db.add(log)
        return log

    @staticmethod
    def create_report(
        db: Session,
        payload: InspectionReportCreate,
        unit: MheUnit,
        auth_user: AuthUser,
        auto_log_downtime: bool = True
    ) -> Tuple[InspectionReport, Optional[DowntimeLog]]:
        """
        Persist a report in the caller's transaction (not committed here).
        Returns the report and the downtime log it opened, if any.
        """
        items = InspectionService._build_items(db, payload)
        report = InspectionReport(
            unit=unit,
            user=db.get(User, auth_user.id),
            unit_code=unit.unit_code,
            date=payload.date or utcnow(),
            operator_username=auth_user.username,
            status=InspectionService.compute_status(items),
            items=items,
        )
        db.add(report)

        downtime_log = None
        if report.status == ReportStatus.UNSAFE and auto_log_downtime:
            downtime_log = InspectionService.open_downtime_for_report(db, report)
            logger.info(f"Downtime opened for unsafe unit {unit.unit_code}")

        return report, downtime_log
