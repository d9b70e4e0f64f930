from forkcheck.models import ChecklistMasterItem, MheUnit, PmsTaskMaster, UserRole
from forkcheck.security import verify_password
from forkcheck.seed import (
    DEFAULT_CHECKLIST,
    ensure_supervisor,
    seed_checklist_items,
    seed_demo_fleet,
    seed_pms_tasks,
)


def test_seeding_is_idempotent(db_session):
    assert seed_checklist_items(db_session) == len(DEFAULT_CHECKLIST)
    assert seed_pms_tasks(db_session) == 5
    assert seed_demo_fleet(db_session) == 4

    assert seed_checklist_items(db_session) == 0
    assert seed_pms_tasks(db_session) == 0
    assert seed_demo_fleet(db_session) == 0

    assert db_session.query(ChecklistMasterItem).count() == len(DEFAULT_CHECKLIST)
    assert db_session.query(PmsTaskMaster).count() == 5
    assert db_session.query(MheUnit).count() == 4


def test_checklist_keeps_declared_order(db_session):
    seed_checklist_items(db_session)

    items = db_session.query(ChecklistMasterItem).order_by(ChecklistMasterItem.sort_order).all()
    assert [i.qr_code_data for i in items] == [d["qr_code_data"] for d in DEFAULT_CHECKLIST]


def test_ensure_supervisor(db_session):
    user = ensure_supervisor(db_session, "admin", "changeme")
    assert user.role == UserRole.SUPERVISOR
    assert verify_password("changeme", user.password_hash)

    # Existing accounts are left untouched
    again = ensure_supervisor(db_session, "admin", "other-password")
    assert again.id == user.id
    assert verify_password("changeme", again.password_hash)
