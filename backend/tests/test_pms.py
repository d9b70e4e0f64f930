from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from forkcheck.models import FrequencyUnit, PmsScheduleEntry, PmsStatus, utcnow
from forkcheck.services import pms_service
from forkcheck.services.pms_service import PmsService


def _task(unit, value):
    return SimpleNamespace(frequency_unit=unit, frequency_value=value)


class TestSchedulingRules:
    @pytest.mark.parametrize("unit, value, completed_on, expected", [
        (FrequencyUnit.DAYS, 1, date(2025, 3, 1), date(2025, 3, 2)),
        (FrequencyUnit.WEEKS, 1, date(2025, 3, 1), date(2025, 3, 8)),
        (FrequencyUnit.WEEKS, 2, date(2025, 12, 25), date(2026, 1, 8)),
        (FrequencyUnit.MONTHS, 1, date(2025, 1, 31), date(2025, 2, 28)),
        (FrequencyUnit.MONTHS, 1, date(2024, 1, 31), date(2024, 2, 29)),
        (FrequencyUnit.MONTHS, 3, date(2025, 11, 15), date(2026, 2, 15)),
    ])
    def test_next_due_date(self, unit, value, completed_on, expected):
        assert PmsService.next_due_date(_task(unit, value), completed_on) == expected

    def test_operating_hours_are_not_auto_scheduled(self):
        task = _task(FrequencyUnit.OPERATING_HOURS, 250)
        assert PmsService.next_due_date(task, date(2025, 3, 1)) is None

    @pytest.mark.parametrize("unit, value, expected", [
        ("days", 1, "Every 1 days"),
        ("weeks", 2, "Every 2 weeks"),
        ("months", 6, "Every 6 months"),
        ("operating_hours", 250, "Every 250 operating hours"),
    ])
    def test_frequency_display(self, unit, value, expected):
        assert PmsService.frequency_display(_task(unit, value)) == expected


@pytest.fixture
def weekly_task(client, supervisor_headers):
    return client.post(
        "/api/pms-task-masters",
        json={
            "name": "Weekly Lubrication",
            "description": "Lubricate moving parts",
            "frequency_unit": "weeks",
            "frequency_value": 1,
            "category": "Mechanical",
        },
        headers=supervisor_headers,
    ).json()


def _schedule(client, headers, unit_id, task_id, due_date):
    return client.post(
        "/api/pms-schedule-entries",
        json={"mhe_unit_id": unit_id, "pms_task_master_id": task_id, "due_date": due_date.isoformat()},
        headers=headers,
    )


def test_complete_schedules_next_occurrence(client, fleet, weekly_task, operator_headers, supervisor_headers):
    unit_id = fleet["units"][0]["id"]
    due = utcnow().date() + timedelta(days=2)
    entry = _schedule(client, supervisor_headers, unit_id, weekly_task["id"], due).json()
    assert entry["status"] == "Pending"

    response = client.post(
        f"/api/pms-schedule-entries/{entry['id']}/complete",
        json={"completion_date": "2025-03-01", "notes": "Greased mast chains"},
        headers=operator_headers,
    )
    assert response.status_code == 200
    body = response.json()

    completed = body["completed"]
    assert completed["status"] == "Completed"
    assert completed["completion_date"] == "2025-03-01"
    assert completed["serviced_by_username"] == "driver"
    assert completed["notes"] == "Greased mast chains"
    assert completed["task_frequency_display"] == "Every 1 weeks"

    next_entry = body["next_entry"]
    assert next_entry["due_date"] == "2025-03-08"
    assert next_entry["status"] == "Pending"
    assert next_entry["mhe_unit_id"] == unit_id
    assert next_entry["pms_task_master_id"] == weekly_task["id"]

    again = client.post(f"/api/pms-schedule-entries/{entry['id']}/complete", headers=operator_headers)
    assert again.status_code == 409


def test_complete_without_body_uses_today(client, fleet, weekly_task, operator_headers, supervisor_headers):
    entry = _schedule(client, supervisor_headers, fleet["units"][0]["id"], weekly_task["id"], utcnow().date()).json()

    body = client.post(f"/api/pms-schedule-entries/{entry['id']}/complete", headers=operator_headers).json()

    assert body["completed"]["completion_date"] == utcnow().date().isoformat()
    assert body["next_entry"]["due_date"] == (utcnow().date() + timedelta(weeks=1)).isoformat()


def test_operating_hours_task_has_no_next_entry(client, fleet, operator_headers, supervisor_headers):
    task = client.post(
        "/api/pms-task-masters",
        json={"name": "Oil Change", "frequency_unit": "operating_hours", "frequency_value": 250},
        headers=supervisor_headers,
    ).json()
    entry = _schedule(client, supervisor_headers, fleet["units"][0]["id"], task["id"], utcnow().date()).json()

    body = client.post(f"/api/pms-schedule-entries/{entry['id']}/complete", headers=operator_headers).json()

    assert body["completed"]["status"] == "Completed"
    assert body["next_entry"] is None


def test_listing_flags_overdue_entries(client, fleet, weekly_task, operator_headers, supervisor_headers):
    unit_id = fleet["units"][0]["id"]
    today = utcnow().date()
    _schedule(client, supervisor_headers, unit_id, weekly_task["id"], today - timedelta(days=3))
    _schedule(client, supervisor_headers, unit_id, weekly_task["id"], today)
    _schedule(client, supervisor_headers, unit_id, weekly_task["id"], today + timedelta(days=4))

    listed = client.get("/api/pms-schedule-entries", headers=operator_headers).json()

    assert [e["status"] for e in listed] == ["Overdue", "Pending", "Pending"]
    assert listed[0]["mhe_unit_code"] == "FL001"
    assert listed[0]["task_name"] == "Weekly Lubrication"
    assert listed[0]["task_category"] == "Mechanical"

    overdue = client.get(
        "/api/pms-schedule-entries", params={"status": "Overdue"}, headers=operator_headers
    ).json()
    assert len(overdue) == 1

    upcoming = client.get(
        "/api/pms-schedule-entries",
        params={"due_from": today.isoformat(), "due_to": (today + timedelta(days=1)).isoformat()},
        headers=operator_headers,
    ).json()
    assert [e["due_date"] for e in upcoming] == [today.isoformat()]


def test_refresh_overdue_leaves_other_statuses(db_session, client, fleet, weekly_task, supervisor_headers):
    unit_id = fleet["units"][0]["id"]
    past = date(2025, 1, 1)
    in_progress = _schedule(client, supervisor_headers, unit_id, weekly_task["id"], past).json()
    client.put(
        f"/api/pms-schedule-entries/{in_progress['id']}",
        json={"status": "In Progress"},
        headers=supervisor_headers,
    )
    _schedule(client, supervisor_headers, unit_id, weekly_task["id"], past)

    assert PmsService.refresh_overdue(db_session, today=date(2025, 1, 2)) == 1
    db_session.commit()

    statuses = sorted(entry.status.value for entry in db_session.query(PmsScheduleEntry).all())
    assert statuses == ["In Progress", "Overdue"]


def test_refresh_overdue_defaults_to_the_utc_day(
    db_session, client, fleet, weekly_task, supervisor_headers, monkeypatch
):
    unit_id = fleet["units"][0]["id"]
    _schedule(client, supervisor_headers, unit_id, weekly_task["id"], date(2025, 3, 9))
    _schedule(client, supervisor_headers, unit_id, weekly_task["id"], date(2025, 3, 10))
    monkeypatch.setattr(pms_service, "utcnow", lambda: datetime(2025, 3, 10, 23, 30))

    assert PmsService.refresh_overdue(db_session) == 1
    db_session.commit()

    by_due = {e.due_date: e.status for e in db_session.query(PmsScheduleEntry).all()}
    assert by_due == {date(2025, 3, 9): PmsStatus.OVERDUE, date(2025, 3, 10): PmsStatus.PENDING}


def test_planning_is_supervisor_only(client, fleet, weekly_task, operator_headers, supervisor_headers):
    forbidden = _schedule(client, operator_headers, fleet["units"][0]["id"], weekly_task["id"], utcnow().date())
    assert forbidden.status_code == 403

    missing_task = _schedule(client, supervisor_headers, fleet["units"][0]["id"], "missing", utcnow().date())
    assert missing_task.status_code == 404
    assert missing_task.json() == {"message": "PMS task master not found"}


def test_deleting_task_master_removes_its_entries(db_session, client, fleet, weekly_task, supervisor_headers):
    _schedule(client, supervisor_headers, fleet["units"][0]["id"], weekly_task["id"], utcnow().date())

    assert client.delete(f"/api/pms-task-masters/{weekly_task['id']}", headers=supervisor_headers).status_code == 204

    db_session.expire_all()
    assert db_session.query(PmsScheduleEntry).count() == 0
