"""
Reference data for a fresh installation.
Every function is idempotent: existing rows (matched by natural key) are left alone.
"""

import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from forkcheck.models import (
    ChecklistMasterItem,
    Department,
    FrequencyUnit,
    MheStatus,
    MheUnit,
    PmsTaskMaster,
    User,
    UserRole,
)
from forkcheck.security import hash_password

logger = logging.getLogger(__name__)

DEFAULT_CHECKLIST: List[Dict] = [
    {"qr_code_data": "TIRES_FRONT_LEFT", "part_name": "Front Left Tire",
     "description": "Inspect for wear, damage, and proper inflation.",
     "question": "Is the Front Left Tire in good condition?"},
    {"qr_code_data": "TIRES_FRONT_RIGHT", "part_name": "Front Right Tire",
     "description": "Inspect for wear, damage, and proper inflation.",
     "question": "Is the Front Right Tire in good condition?"},
    {"qr_code_data": "BRAKES_MAIN", "part_name": "Brakes",
     "description": "Test brake pedal and parking brake functionality.",
     "question": "Are the brakes functioning correctly?"},
    {"qr_code_data": "LIGHTS_HEAD", "part_name": "Headlights",
     "description": "Ensure headlights are clean and operational.",
     "question": "Are the headlights working?"},
    {"qr_code_data": "FORKS_MAIN", "part_name": "Forks",
     "description": "Check for cracks, bends, or excessive wear.",
     "question": "Are the forks in good condition?"},
    {"qr_code_data": "HORN_OPERATIONAL", "part_name": "Horn",
     "description": "Test horn for proper operation.",
     "question": "Is the horn working correctly?"},
    {"qr_code_data": "SEATBELT_CONDITION", "part_name": "Seatbelt",
     "description": "Inspect seatbelt for wear and tear, ensure it latches securely.",
     "question": "Is the seatbelt in good condition and functional?"},
    {"qr_code_data": "FLUID_LEVELS", "part_name": "Fluid Levels",
     "description": "Check hydraulic fluid, engine oil (if applicable), and coolant levels.",
     "question": "Are all fluid levels adequate?"},
    {"qr_code_data": "STEERING_SYSTEM", "part_name": "Steering",
     "description": "Check for smooth and responsive steering operation.",
     "question": "Is the steering system operating smoothly?"},
    {"qr_code_data": "SAFETY_DECALS", "part_name": "Safety Decals",
     "description": "Ensure all safety warning decals are present and legible.",
     "question": "Are all safety decals in place and readable?"},
]

DEFAULT_PMS_TASKS: List[Dict] = [
    {"name": "Daily Pre-Operational Check",
     "description": "Visual inspection, fluid checks, safety features.",
     "frequency_unit": FrequencyUnit.DAYS, "frequency_value": 1,
     "category": "General Safety", "estimated_duration_minutes": 15},
    {"name": "Weekly Lubrication",
     "description": "Lubricate key moving parts as per manual.",
     "frequency_unit": FrequencyUnit.WEEKS, "frequency_value": 1,
     "category": "Mechanical", "estimated_duration_minutes": 30},
    {"name": "Monthly Hydraulic System Check",
     "description": "Inspect hoses, connections, and fluid levels. Check for leaks.",
     "frequency_unit": FrequencyUnit.MONTHS, "frequency_value": 1,
     "category": "Hydraulics", "estimated_duration_minutes": 60},
    {"name": "Engine Oil & Filter Change (ICE)",
     "description": "Change engine oil and filter for Internal Combustion Engine models.",
     "frequency_unit": FrequencyUnit.OPERATING_HOURS, "frequency_value": 250,
     "category": "Engine", "estimated_duration_minutes": 90},
    {"name": "Battery Watering & Check (Electric)",
     "description": "Check and top-up battery water levels, clean terminals.",
     "frequency_unit": FrequencyUnit.WEEKS, "frequency_value": 1,
     "category": "Electrical", "estimated_duration_minutes": 45},
]

DEMO_FLEET: Dict[str, List[Dict]] = {
    "Warehouse": [
        {"unit_code": "FL001", "name": "Forklift 1", "type": "Electric Counterbalance"},
        {"unit_code": "FL002", "name": "Forklift 2", "type": "Electric Counterbalance"},
    ],
    "Shipping": [
        {"unit_code": "FL003", "name": "Forklift 3", "type": "Diesel Counterbalance"},
        {"unit_code": "RT001", "name": "Reach Truck 1", "type": "Reach Truck"},
    ],
}


def seed_checklist_items(db: Session) -> int:
    created = 0
    for position, data in enumerate(DEFAULT_CHECKLIST, start=1):
        exists = db.query(ChecklistMasterItem).filter(
            ChecklistMasterItem.qr_code_data == data["qr_code_data"]
        ).first()
        if not exists:
            db.add(ChecklistMasterItem(sort_order=position, **data))
            created += 1
    db.commit()
    logger.info(f"Checklist items created: {created}")
    return created


def seed_pms_tasks(db: Session) -> int:
    created = 0
    for data in DEFAULT_PMS_TASKS:
        if not db.query(PmsTaskMaster).filter(PmsTaskMaster.name == data["name"]).first():
            db.add(PmsTaskMaster(**data))
            created += 1
    db.commit()
    logger.info(f"PMS task masters created: {created}")
    return created


def ensure_supervisor(db: Session, username: str, password: str) -> User:
    user = db.query(User).filter(User.username == username).first()
    if user:
        logger.info(f"User '{username}' already exists")
        return user

    user = User(username=username, password_hash=hash_password(password), role=UserRole.SUPERVISOR)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Supervisor '{username}' created")
    return user


def seed_demo_fleet(db: Session) -> int:
    """A couple of departments with units, for trying the dashboards."""
    created = 0
    for department_name, units in DEMO_FLEET.items():
        department = db.query(Department).filter(Department.name == department_name).first()
        if not department:
            department = Department(name=department_name)
            db.add(department)
            db.flush()
        for data in units:
            if not db.query(MheUnit).filter(MheUnit.unit_code == data["unit_code"]).first():
                db.add(MheUnit(department_id=department.id, status=MheStatus.ACTIVE, **data))
                created += 1
    db.commit()
    logger.info(f"Demo MHE units created: {created}")
    return created
