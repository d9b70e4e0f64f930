"""
PMS Service - preventive maintenance scheduling.
Overdue refresh, next due date computation, completion and display shaping.
"""

import logging
from datetime import date
from typing import List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session, joinedload

from forkcheck.models import (
    FrequencyUnit,
    PmsScheduleEntry,
    PmsStatus,
    PmsTaskMaster,
    utcnow,
)
from forkcheck.schemas import PmsCompletionRequest, PmsScheduleDisplayEntry
from forkcheck.security import AuthUser

logger = logging.getLogger(__name__)


class PmsService:
    """Service class for PMS schedule operations"""

    @staticmethod
    def frequency_display(task: PmsTaskMaster) -> str:
        unit = FrequencyUnit(task.frequency_unit)
        if unit == FrequencyUnit.OPERATING_HOURS:
            return f"Every {task.frequency_value} operating hours"
        return f"Every {task.frequency_value} {unit.value}"

    @staticmethod
    def next_due_date(task: PmsTaskMaster, completed_on: date) -> Optional[date]:
        """
        Due date of the next occurrence.
        Operating-hour tasks depend on meter readings and are not auto-scheduled.
        """
        unit = FrequencyUnit(task.frequency_unit)
        if unit == FrequencyUnit.DAYS:
            return completed_on + relativedelta(days=task.frequency_value)
        if unit == FrequencyUnit.WEEKS:
            return completed_on + relativedelta(weeks=task.frequency_value)
        if unit == FrequencyUnit.MONTHS:
            # relativedelta clamps to the month end (Jan 31 + 1 month = Feb 28/29)
            return completed_on + relativedelta(months=task.frequency_value)
        return None

    @staticmethod
    def refresh_overdue(db: Session, today: Optional[date] = None) -> int:
        """Flip Pending entries whose due date has passed to Overdue."""
        today = today or utcnow().date()
        updated = db.query(PmsScheduleEntry).filter(
            PmsScheduleEntry.status == PmsStatus.PENDING,
            PmsScheduleEntry.due_date < today
        ).update({PmsScheduleEntry.status: PmsStatus.OVERDUE}, synchronize_session="fetch")
        if updated:
            logger.info(f"Marked {updated} PMS entries as overdue")
        return updated

    @staticmethod
    def to_display(entry: PmsScheduleEntry) -> PmsScheduleDisplayEntry:
        return PmsScheduleDisplayEntry(
            id=entry.id,
            mhe_unit_id=entry.mhe_unit_id,
            pms_task_master_id=entry.pms_task_master_id,
            due_date=entry.due_date,
            status=entry.status,
            completion_date=entry.completion_date,
            serviced_by_user_id=entry.serviced_by_user_id,
            serviced_by_username=entry.serviced_by_username,
            notes=entry.notes,
            mhe_unit_code=entry.unit.unit_code,
            mhe_unit_name=entry.unit.name,
            task_name=entry.task.name,
            task_description=entry.task.description,
            task_category=entry.task.category,
            task_frequency_display=PmsService.frequency_display(entry.task),
        )

    @staticmethod
    def list_display_entries(
        db: Session,
        mhe_unit_id: Optional[str] = None,
        status: Optional[PmsStatus] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
        today: Optional[date] = None
    ) -> List[PmsScheduleDisplayEntry]:
        """Schedule entries with unit and task details, sorted by due date."""
        PmsService.refresh_overdue(db, today)

        query = db.query(PmsScheduleEntry).options(
            joinedload(PmsScheduleEntry.unit),
            joinedload(PmsScheduleEntry.task)
        )
        if mhe_unit_id:
            query = query.filter(PmsScheduleEntry.mhe_unit_id == mhe_unit_id)
        if status:
            query = query.filter(PmsScheduleEntry.status == status)
        if due_from:
            query = query.filter(PmsScheduleEntry.due_date >= due_from)
        if due_to:
            query = query.filter(PmsScheduleEntry.due_date <= due_to)

        entries = query.order_by(PmsScheduleEntry.due_date, PmsScheduleEntry.id).all()
        return [PmsService.to_display(entry) for entry in entries]

    @staticmethod
    def complete_entry(
        db: Session,
        entry: PmsScheduleEntry,
        request: PmsCompletionRequest,
        auth_user: AuthUser
    ) -> Tuple[PmsScheduleEntry, Optional[PmsScheduleEntry]]:
        """
        Mark an entry completed and queue the next occurrence.
        Not committed here; returns (completed_entry, next_entry).
        """
        completed_on = request.completion_date or utcnow().date()
        entry.status = PmsStatus.COMPLETED
        entry.completion_date = completed_on
        entry.serviced_by_user_id = auth_user.id
        entry.serviced_by_username = auth_user.username
        if request.notes is not None:
            entry.notes = request.notes

        next_entry = None
        due = PmsService.next_due_date(entry.task, completed_on)
        if due is not None:
            next_entry = PmsScheduleEntry(
                unit=entry.unit,
                task=entry.task,
                due_date=due,
                status=PmsStatus.PENDING,
            )
            db.add(next_entry)
            logger.info(f"Next '{entry.task.name}' for unit {entry.mhe_unit_id} due {due.isoformat()}")

        return entry, next_entry
