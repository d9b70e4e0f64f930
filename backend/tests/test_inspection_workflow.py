from types import SimpleNamespace

import pytest

from forkcheck.models import ReportStatus
from forkcheck.services.inspection_workflow import InspectionWorkflow, WorkflowError
from tests.conftest import PHOTO


@pytest.fixture
def checklist():
    return [
        {"id": "c1", "part_name": "Brakes", "question": "Brakes OK?", "qr_code_data": "BRAKES_MAIN"},
        {"id": "c2", "part_name": "Horn", "question": "Horn OK?", "qr_code_data": "HORN_OPERATIONAL"},
        {"id": "c3", "part_name": "Forks", "question": "Forks OK?", "qr_code_data": "FORKS_MAIN"},
    ]


@pytest.fixture
def workflow(checklist):
    return InspectionWorkflow(checklist)


def test_starts_at_first_item(workflow):
    assert workflow.current_item_id == "c1"
    assert workflow.completed_count == 0
    assert workflow.total_count == 3
    assert workflow.is_complete is False
    assert workflow.is_safe is None
    assert workflow.status is None


def test_completion_happens_exactly_once(workflow):
    assert workflow.submit("c1", True, PHOTO) is False
    assert workflow.submit("c2", True, PHOTO) is False
    assert workflow.submit("c3", True, PHOTO) is True

    # Re-answering an item after completion does not complete it again
    assert workflow.submit("c2", True, PHOTO) is False
    assert workflow.is_complete
    assert workflow.status == ReportStatus.SAFE


def test_one_unsafe_item_makes_the_unit_unsafe(workflow):
    workflow.submit("c1", True, PHOTO)
    workflow.submit("c2", False, PHOTO, remarks="  Horn is silent ")
    workflow.submit("c3", True, PHOTO)

    assert workflow.is_safe is False
    assert workflow.status == ReportStatus.UNSAFE
    unsafe = workflow.unsafe_results()
    assert [r.checklist_item_id for r in unsafe] == ["c2"]
    assert unsafe[0].remarks == "Horn is silent"


def test_last_answer_wins(workflow):
    workflow.submit("c1", False, PHOTO)
    workflow.submit("c1", True, PHOTO)

    assert workflow.completed_count == 1
    assert workflow.results()[0].is_safe is True


def test_pointer_moves_to_first_pending_item(workflow):
    workflow.select_item("c2")
    workflow.submit("c2", True, PHOTO)
    assert workflow.current_item_id == "c1"

    workflow.submit("c1", True, PHOTO)
    assert workflow.current_item_id == "c3"

    workflow.submit("c3", True, PHOTO)
    assert workflow.current_item_id is None
    assert workflow.current_item is None


def test_select_by_qr(workflow):
    assert workflow.select_by_qr(" FORKS_MAIN ").part_name == "Forks"
    assert workflow.current_item_id == "c3"

    # A code holding the item id is accepted too
    assert workflow.select_by_qr("c2").part_name == "Horn"

    with pytest.raises(WorkflowError, match="Checklist item not found."):
        workflow.select_by_qr("SOMETHING_ELSE")


def test_invalid_submissions(workflow):
    with pytest.raises(WorkflowError):
        workflow.submit("unknown", True, PHOTO)
    with pytest.raises(WorkflowError, match="photo is required"):
        workflow.submit("c1", True, "")
    assert workflow.completed_count == 0


def test_inactive_items_are_skipped(checklist):
    checklist[1]["is_active"] = False
    workflow = InspectionWorkflow(checklist)
    assert [step.id for step in workflow.steps] == ["c1", "c3"]


def test_empty_checklist():
    with pytest.raises(WorkflowError, match="no active items"):
        InspectionWorkflow([SimpleNamespace(id="c1", part_name="A", question="?", is_active=False)])


def test_accepts_orm_like_objects():
    items = [SimpleNamespace(id="x1", part_name="Seatbelt", question="Latches?", is_active=True)]
    workflow = InspectionWorkflow(items)
    assert workflow.current_item.part_name == "Seatbelt"
    assert workflow.current_item.qr_code_data is None


def test_reset(workflow):
    workflow.submit("c1", True, PHOTO)
    workflow.select_item("c3")
    workflow.reset()

    assert workflow.completed_count == 0
    assert workflow.current_item_id == "c1"


def test_outputs_require_completion(workflow):
    workflow.submit("c1", True, PHOTO)
    with pytest.raises(WorkflowError, match="1 of 3"):
        workflow.to_analysis_request()
    with pytest.raises(WorkflowError):
        workflow.to_report_payload(unit_code="FL001")


def test_outputs_in_checklist_order(workflow):
    workflow.submit("c3", True, PHOTO)
    workflow.submit("c1", False, PHOTO, remarks="Soft pedal")
    workflow.submit("c2", True, PHOTO)

    request = workflow.to_analysis_request()
    assert [r.checklist_item_id for r in request.inspection_records] == ["c1", "c2", "c3"]
    assert request.inspection_records[0].part_name == "Brakes"
    assert request.inspection_records[0].is_safe is False

    payload = workflow.to_report_payload(unit_code="FL001")
    assert payload.unit_code == "FL001"
    assert [(i.part_name, i.question) for i in payload.items] == [
        ("Brakes", "Brakes OK?"), ("Horn", "Horn OK?"), ("Forks", "Forks OK?"),
    ]
    assert payload.items[0].remarks == "Soft pedal"
    # Stored as naive UTC
    assert payload.date.tzinfo is None
