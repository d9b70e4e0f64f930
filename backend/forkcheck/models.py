"""
SQLAlchemy ORM models for the Forklift Check system.
Defines database schema with relationships and constraints.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, Boolean,
    ForeignKey, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from forkcheck.database import Base


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum_values(enum_cls):
    # Persist the enum values ("In Progress"), not the member names
    return [member.value for member in enum_cls]


# ==================== ENUMS ====================

class UserRole(str, enum.Enum):
    """User roles for RBAC"""
    OPERATOR = "operator"
    SUPERVISOR = "supervisor"


class MheStatus(str, enum.Enum):
    """MHE unit operational status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class ReportStatus(str, enum.Enum):
    """Overall inspection result"""
    SAFE = "Safe"
    UNSAFE = "Unsafe"


class FrequencyUnit(str, enum.Enum):
    """PMS task recurrence unit"""
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    OPERATING_HOURS = "operating_hours"


class PmsStatus(str, enum.Enum):
    """PMS schedule entry workflow status"""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    OVERDUE = "Overdue"
    SKIPPED = "Skipped"


# ==================== USERS ====================

class User(Base):
    """Application account (operator or supervisor)"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(UserRole, values_callable=_enum_values, name="user_role"),
        nullable=False
    )

    inspection_reports = relationship("InspectionReport", back_populates="user", cascade="all, delete-orphan")
    downtime_logs = relationship("DowntimeLog", back_populates="user", cascade="all, delete-orphan")
    serviced_entries = relationship("PmsScheduleEntry", back_populates="serviced_by")

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"


# ==================== MASTER DATA ====================

class Department(Base):
    """Organisational department owning MHE units"""
    __tablename__ = "departments"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(200), unique=True, nullable=False, index=True)
    description = Column(Text)

    mhe_units = relationship("MheUnit", back_populates="department")

    def __repr__(self):
        return f"<Department(id={self.id}, name='{self.name}')>"


class MheUnit(Base):
    """
    Material handling equipment unit (forklift, reach truck...).
    Central entity linked to inspections, downtime and PMS.
    """
    __tablename__ = "mhe_units"

    id = Column(String(36), primary_key=True, default=generate_id)
    unit_code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    department_id = Column(String(36), ForeignKey("departments.id", ondelete="SET NULL"), index=True)
    type = Column(String(100))
    status = Column(
        SQLEnum(MheStatus, values_callable=_enum_values, name="mhe_status"),
        default=MheStatus.ACTIVE,
        nullable=False
    )

    department = relationship("Department", back_populates="mhe_units")
    inspection_reports = relationship("InspectionReport", back_populates="unit", cascade="all, delete-orphan")
    downtime_logs = relationship("DowntimeLog", back_populates="unit", cascade="all, delete-orphan")
    pms_entries = relationship("PmsScheduleEntry", back_populates="unit", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<MheUnit(id={self.id}, unit_code='{self.unit_code}', status='{self.status}')>"


class ChecklistMasterItem(Base):
    """Reusable inspection question template"""
    __tablename__ = "checklist_master_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    qr_code_data = Column(String(255), index=True)
    part_name = Column(String(200), nullable=False)
    description = Column(Text)
    question = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Ordering of the checklist walk
    sort_order = Column(Integer, default=0, nullable=False)

    report_items = relationship("InspectionReportItem", back_populates="checklist_item")

    def __repr__(self):
        return f"<ChecklistMasterItem(id={self.id}, part_name='{self.part_name}')>"


# ==================== INSPECTIONS ====================

class InspectionReport(Base):
    """Submitted inspection of one unit; status derives from its items"""
    __tablename__ = "inspection_reports"

    id = Column(String(36), primary_key=True, default=generate_id)
    unit_id = Column(String(36), ForeignKey("mhe_units.id", ondelete="CASCADE"), nullable=False, index=True)
    unit_code = Column(String(50), nullable=False, index=True)
    date = Column(DateTime, default=utcnow, nullable=False, index=True)
    operator_username = Column(String(100), nullable=False)
    status = Column(
        SQLEnum(ReportStatus, values_callable=_enum_values, name="report_status"),
        nullable=False,
        index=True
    )
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    unit = relationship("MheUnit", back_populates="inspection_reports")
    user = relationship("User", back_populates="inspection_reports")
    items = relationship(
        "InspectionReportItem",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="InspectionReportItem.position"
    )
    downtime_logs = relationship("DowntimeLog", back_populates="source_report")

    def __repr__(self):
        return f"<InspectionReport(id={self.id}, unit_code='{self.unit_code}', status='{self.status}')>"


class InspectionReportItem(Base):
    """
    One checklist answer inside a report.
    Part name and question are snapshots frozen at submission time.
    """
    __tablename__ = "inspection_report_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    report_id = Column(String(36), ForeignKey("inspection_reports.id", ondelete="CASCADE"), nullable=False, index=True)
    checklist_item_id = Column(
        String(36),
        ForeignKey("checklist_master_items.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    position = Column(Integer, default=0, nullable=False)
    part_name_snapshot = Column(String(200), nullable=False)
    question_snapshot = Column(Text, nullable=False)
    is_safe = Column(Boolean, nullable=False)
    photo_url = Column(Text)  # base64 data URI
    timestamp = Column(DateTime)
    remarks = Column(Text)

    report = relationship("InspectionReport", back_populates="items")
    checklist_item = relationship("ChecklistMasterItem", back_populates="report_items")


# ==================== DOWNTIME ====================

class DowntimeLog(Base):
    """Period during which a unit is out of service"""
    __tablename__ = "downtime_logs"

    id = Column(String(36), primary_key=True, default=generate_id)
    unit_id = Column(String(36), ForeignKey("mhe_units.id", ondelete="CASCADE"), nullable=False, index=True)
    unit_code = Column(String(50), nullable=False, index=True)
    reason = Column(Text, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime)
    logged_at = Column(DateTime, default=utcnow, nullable=False)
    source_report_id = Column(
        String(36),
        ForeignKey("inspection_reports.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    unit = relationship("MheUnit", back_populates="downtime_logs")
    user = relationship("User", back_populates="downtime_logs")
    source_report = relationship("InspectionReport", back_populates="downtime_logs")
    unsafe_items = relationship("DowntimeUnsafeItem", back_populates="downtime_log", cascade="all, delete-orphan")

    @property
    def duration_hours(self):
        if self.end_time is None or self.end_time <= self.start_time:
            return None
        return (self.end_time - self.start_time).total_seconds() / 3600

    def __repr__(self):
        return f"<DowntimeLog(id={self.id}, unit_code='{self.unit_code}', start_time='{self.start_time}')>"


class DowntimeUnsafeItem(Base):
    """Unsafe part carried over from the inspection that triggered downtime"""
    __tablename__ = "downtime_unsafe_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    downtime_log_id = Column(String(36), ForeignKey("downtime_logs.id", ondelete="CASCADE"), nullable=False, index=True)
    part_name = Column(String(200), nullable=False)
    remarks = Column(Text)
    photo_url = Column(Text)

    downtime_log = relationship("DowntimeLog", back_populates="unsafe_items")


# ==================== PREVENTIVE MAINTENANCE ====================

class PmsTaskMaster(Base):
    """Preventive maintenance task template"""
    __tablename__ = "pms_task_masters"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(200), unique=True, nullable=False, index=True)
    description = Column(Text)
    frequency_unit = Column(
        SQLEnum(FrequencyUnit, values_callable=_enum_values, name="frequency_unit"),
        nullable=False
    )
    frequency_value = Column(Integer, nullable=False)
    category = Column(String(100))
    estimated_duration_minutes = Column(Integer)
    is_active = Column(Boolean, default=True, nullable=False)

    schedule_entries = relationship("PmsScheduleEntry", back_populates="task", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<PmsTaskMaster(id={self.id}, name='{self.name}')>"


class PmsScheduleEntry(Base):
    """Scheduled occurrence of a PMS task on a unit"""
    __tablename__ = "pms_schedule_entries"

    id = Column(String(36), primary_key=True, default=generate_id)
    mhe_unit_id = Column(String(36), ForeignKey("mhe_units.id", ondelete="CASCADE"), nullable=False, index=True)
    pms_task_master_id = Column(String(36), ForeignKey("pms_task_masters.id", ondelete="CASCADE"), nullable=False, index=True)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(
        SQLEnum(PmsStatus, values_callable=_enum_values, name="pms_status"),
        default=PmsStatus.PENDING,
        nullable=False,
        index=True
    )
    completion_date = Column(Date)
    serviced_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    serviced_by_username = Column(String(100))
    notes = Column(Text)

    unit = relationship("MheUnit", back_populates="pms_entries")
    task = relationship("PmsTaskMaster", back_populates="schedule_entries")
    serviced_by = relationship("User", back_populates="serviced_entries")

    def __repr__(self):
        return f"<PmsScheduleEntry(id={self.id}, due_date='{self.due_date}', status='{self.status}')>"
