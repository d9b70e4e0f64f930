"""
Inspection Workflow - walks an operator through an ordered checklist.

Tracks which items have been answered, which item comes next, and shapes
the collected answers into a safety-analysis request and a report payload.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from forkcheck.models import ReportStatus
from forkcheck.schemas import (
    InspectionRecord,
    InspectionReportCreate,
    InspectionReportItemCreate,
    SafetyAnalysisRequest,
)

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """Invalid operation on an inspection workflow"""


@dataclass(frozen=True)
class ChecklistStep:
    """Checklist item as the workflow sees it"""
    id: str
    part_name: str
    question: str
    qr_code_data: Optional[str] = None
    description: Optional[str] = None


@dataclass
class ItemResult:
    checklist_item_id: str
    is_safe: bool
    photo_url: str
    timestamp: datetime
    remarks: Optional[str] = None


def _field(item: Any, name: str, default=None):
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _as_step(item: Any) -> ChecklistStep:
    return ChecklistStep(
        id=str(_field(item, "id")),
        part_name=_field(item, "part_name"),
        question=_field(item, "question"),
        qr_code_data=_field(item, "qr_code_data"),
        description=_field(item, "description"),
    )


class InspectionWorkflow:
    """
    State machine for one inspection.

    Items are checklist master items (ORM objects, response models or dicts);
    inactive ones are skipped and the given order is the walk order.
    """

    def __init__(self, checklist_items: Iterable[Any]):
        steps = [
            _as_step(item) for item in checklist_items
            if _field(item, "is_active", True)
        ]
        if not steps:
            raise WorkflowError("The checklist has no active items to inspect.")

        self._steps: List[ChecklistStep] = steps
        self._by_id: Dict[str, ChecklistStep] = {step.id: step for step in steps}
        self._results: Dict[str, ItemResult] = {}
        self._current_item_id: Optional[str] = steps[0].id

    # ==================== STATE ====================

    @property
    def steps(self) -> List[ChecklistStep]:
        return list(self._steps)

    @property
    def current_item_id(self) -> Optional[str]:
        """Next item to inspect, or None once every item is recorded."""
        return self._current_item_id

    @property
    def current_item(self) -> Optional[ChecklistStep]:
        if self._current_item_id is None:
            return None
        return self._by_id[self._current_item_id]

    @property
    def completed_count(self) -> int:
        return len(self._results)

    @property
    def total_count(self) -> int:
        return len(self._steps)

    @property
    def is_complete(self) -> bool:
        return len(self._results) == len(self._steps)

    @property
    def is_safe(self) -> Optional[bool]:
        """AND of every item's flag; None until the checklist is complete."""
        if not self.is_complete:
            return None
        return all(result.is_safe for result in self._results.values())

    @property
    def status(self) -> Optional[ReportStatus]:
        if self.is_safe is None:
            return None
        return ReportStatus.SAFE if self.is_safe else ReportStatus.UNSAFE

    def results(self) -> List[ItemResult]:
        """Recorded answers in checklist order."""
        return [self._results[step.id] for step in self._steps if step.id in self._results]

    def pending_items(self) -> List[ChecklistStep]:
        return [step for step in self._steps if step.id not in self._results]

    def unsafe_results(self) -> List[ItemResult]:
        return [result for result in self.results() if not result.is_safe]

    # ==================== TRANSITIONS ====================

    def select_item(self, item_id: str) -> ChecklistStep:
        """Point the workflow at a specific item (manual pick)."""
        step = self._by_id.get(item_id)
        if step is None:
            raise WorkflowError(f"Checklist item {item_id} is not part of this inspection.")
        self._current_item_id = step.id
        return step

    def select_by_qr(self, payload: str) -> ChecklistStep:
        """Point the workflow at the item whose QR code was scanned."""
        payload = (payload or "").strip()
        for step in self._steps:
            if step.qr_code_data and step.qr_code_data == payload:
                self._current_item_id = step.id
                return step
        # Codes printed with the item id are accepted too
        if payload in self._by_id:
            return self.select_item(payload)
        raise WorkflowError("Checklist item not found.")

    def submit(
        self,
        item_id: str,
        is_safe: bool,
        photo_url: str,
        remarks: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> bool:
        """
        Record the answer for one item; a repeated submission replaces the earlier one.

        Returns True only for the submission that completes the checklist.
        """
        if item_id not in self._by_id:
            raise WorkflowError(f"Checklist item {item_id} is not part of this inspection.")
        if not photo_url:
            raise WorkflowError("A photo is required for every inspected item.")

        was_complete = self.is_complete
        self._results[item_id] = ItemResult(
            checklist_item_id=item_id,
            is_safe=bool(is_safe),
            photo_url=photo_url,
            timestamp=timestamp or datetime.now(timezone.utc),
            remarks=(remarks or "").strip() or None,
        )

        pending = self.pending_items()
        self._current_item_id = pending[0].id if pending else None

        just_completed = self.is_complete and not was_complete
        if just_completed:
            logger.info(
                f"Inspection complete: {self.total_count} items, status {self.status.value}"
            )
        return just_completed

    def reset(self):
        """Discard every answer and start again from the first item."""
        self._results.clear()
        self._current_item_id = self._steps[0].id

    # ==================== OUTPUT SHAPES ====================

    def _require_complete(self):
        if not self.is_complete:
            raise WorkflowError(
                f"Inspection incomplete: {self.completed_count} of {self.total_count} items recorded."
            )

    def to_analysis_request(self) -> SafetyAnalysisRequest:
        self._require_complete()
        return SafetyAnalysisRequest(
            inspection_records=[
                InspectionRecord(
                    checklist_item_id=result.checklist_item_id,
                    photo_url=result.photo_url,
                    is_safe=result.is_safe,
                    timestamp=result.timestamp.isoformat(),
                    part_name=self._by_id[result.checklist_item_id].part_name,
                )
                for result in self.results()
            ]
        )

    def to_report_payload(
        self,
        unit_code: Optional[str] = None,
        unit_id: Optional[str] = None
    ) -> InspectionReportCreate:
        self._require_complete()
        return InspectionReportCreate(
            unit_id=unit_id,
            unit_code=unit_code,
            date=datetime.now(timezone.utc),
            items=[
                InspectionReportItemCreate(
                    checklist_item_id=result.checklist_item_id,
                    part_name=self._by_id[result.checklist_item_id].part_name,
                    question=self._by_id[result.checklist_item_id].question,
                    is_safe=result.is_safe,
                    photo_url=result.photo_url,
                    timestamp=result.timestamp,
                    remarks=result.remarks,
                )
                for result in self.results()
            ],
        )
