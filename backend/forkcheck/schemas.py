"""
Pydantic schemas for request/response validation and serialization.
Provides data validation, type checking, and API documentation.
"""

from datetime import date, datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from forkcheck.models import (
    FrequencyUnit,
    MheStatus,
    PmsStatus,
    ReportStatus,
    UserRole,
)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store every timestamp as naive UTC so comparisons never mix kinds."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def reject_null(value, info):
    """Partial updates may omit a required column but never clear it."""
    if value is None:
        raise ValueError(f"{info.field_name} cannot be null.")
    return value


# ==================== USER / AUTH SCHEMAS ====================

class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str
    role: UserRole

    @field_validator("username")
    @classmethod
    def strip_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Username is required.")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        from forkcheck.config import settings
        if len(v) < settings.MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long."
            )
        return v


class UserResponse(ORMModel):
    id: str
    username: str
    role: UserRole


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(UserResponse):
    access_token: str
    token_type: str = "bearer"


# ==================== DEPARTMENT SCHEMAS ====================

class DepartmentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None


class DepartmentCreate(DepartmentBase):
    pass


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None

    check_required = field_validator("name")(reject_null)


class DepartmentResponse(DepartmentBase, ORMModel):
    id: str


# ==================== MHE UNIT SCHEMAS ====================

class MheUnitBase(BaseModel):
    unit_code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    department_id: Optional[str] = None
    type: Optional[str] = Field(None, max_length=100)
    status: MheStatus = MheStatus.ACTIVE


class MheUnitCreate(MheUnitBase):
    pass


class MheUnitUpdate(BaseModel):
    unit_code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    department_id: Optional[str] = None
    type: Optional[str] = Field(None, max_length=100)
    status: Optional[MheStatus] = None

    check_required = field_validator("unit_code", "name", "status")(reject_null)


class MheUnitResponse(MheUnitBase, ORMModel):
    id: str
    department_name: Optional[str] = None


# ==================== CHECKLIST SCHEMAS ====================

class ChecklistItemBase(BaseModel):
    qr_code_data: Optional[str] = Field(None, max_length=255)
    part_name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    question: str = Field(..., min_length=1)
    is_active: bool = True
    sort_order: int = 0


class ChecklistItemCreate(ChecklistItemBase):
    pass


class ChecklistItemUpdate(BaseModel):
    qr_code_data: Optional[str] = Field(None, max_length=255)
    part_name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    question: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None

    check_required = field_validator("part_name", "question", "is_active", "sort_order")(reject_null)


class ChecklistItemResponse(ChecklistItemBase, ORMModel):
    id: str


# ==================== INSPECTION REPORT SCHEMAS ====================

class InspectionReportItemCreate(BaseModel):
    """
    One answered checklist item.
    part_name/question may be omitted when checklist_item_id is given;
    the server snapshots them from the master item.
    """
    checklist_item_id: Optional[str] = None
    part_name: Optional[str] = Field(None, max_length=200)
    question: Optional[str] = None
    is_safe: bool
    photo_url: Optional[str] = None
    timestamp: Optional[datetime] = None
    remarks: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v):
        return to_naive_utc(v)


class InspectionReportItemResponse(ORMModel):
    id: str
    checklist_item_id: Optional[str] = None
    part_name_snapshot: str
    question_snapshot: str
    is_safe: bool
    photo_url: Optional[str] = None
    timestamp: Optional[datetime] = None
    remarks: Optional[str] = None


class InspectionReportCreate(BaseModel):
    unit_id: Optional[str] = None
    unit_code: Optional[str] = None
    date: Optional[datetime] = None
    items: List[InspectionReportItemCreate] = Field(..., min_length=1)

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def require_unit(self):
        if not self.unit_id and not self.unit_code:
            raise ValueError("Either unit_id or unit_code is required.")
        return self


class InspectionReportResponse(ORMModel):
    id: str
    unit_id: str
    unit_code: str
    date: datetime
    operator_username: str
    status: ReportStatus
    user_id: str
    items: List[InspectionReportItemResponse] = []


class InspectionReportCreated(InspectionReportResponse):
    """Create response, with the downtime log opened for an unsafe result"""
    downtime_log_id: Optional[str] = None


# ==================== DOWNTIME SCHEMAS ====================

class DowntimeUnsafeItemBase(BaseModel):
    part_name: str = Field(..., min_length=1, max_length=200)
    remarks: Optional[str] = None
    photo_url: Optional[str] = None


class DowntimeUnsafeItemResponse(DowntimeUnsafeItemBase, ORMModel):
    id: str


class DowntimeLogCreate(BaseModel):
    unit_id: Optional[str] = None
    unit_code: Optional[str] = None
    reason: str = Field(..., min_length=1)
    start_time: datetime
    end_time: Optional[datetime] = None
    source_report_id: Optional[str] = None
    unsafe_items: List[DowntimeUnsafeItemBase] = []

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def validate_log(self):
        if not self.unit_id and not self.unit_code:
            raise ValueError("Either unit_id or unit_code is required.")
        if self.end_time and self.end_time < self.start_time:
            raise ValueError("End time cannot be before start time.")
        return self


class DowntimeLogUpdate(BaseModel):
    reason: Optional[str] = Field(None, min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)


class DowntimeLogResponse(ORMModel):
    id: str
    unit_id: str
    unit_code: str
    reason: str
    start_time: datetime
    end_time: Optional[datetime] = None
    logged_at: datetime
    source_report_id: Optional[str] = None
    user_id: str
    duration_hours: Optional[float] = None
    unsafe_items: List[DowntimeUnsafeItemResponse] = []


# ==================== PMS SCHEMAS ====================

class PmsTaskMasterBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    frequency_unit: FrequencyUnit
    frequency_value: int = Field(..., gt=0)
    category: Optional[str] = Field(None, max_length=100)
    estimated_duration_minutes: Optional[int] = Field(None, ge=0)
    is_active: bool = True


class PmsTaskMasterCreate(PmsTaskMasterBase):
    pass


class PmsTaskMasterUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    frequency_unit: Optional[FrequencyUnit] = None
    frequency_value: Optional[int] = Field(None, gt=0)
    category: Optional[str] = Field(None, max_length=100)
    estimated_duration_minutes: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    check_required = field_validator("name", "frequency_unit", "frequency_value", "is_active")(reject_null)


class PmsTaskMasterResponse(PmsTaskMasterBase, ORMModel):
    id: str


class PmsScheduleEntryCreate(BaseModel):
    mhe_unit_id: str
    pms_task_master_id: str
    due_date: date
    status: PmsStatus = PmsStatus.PENDING
    notes: Optional[str] = None


class PmsScheduleEntryUpdate(BaseModel):
    due_date: Optional[date] = None
    status: Optional[PmsStatus] = None
    completion_date: Optional[date] = None
    notes: Optional[str] = None


class PmsScheduleEntryResponse(ORMModel):
    id: str
    mhe_unit_id: str
    pms_task_master_id: str
    due_date: date
    status: PmsStatus
    completion_date: Optional[date] = None
    serviced_by_user_id: Optional[str] = None
    serviced_by_username: Optional[str] = None
    notes: Optional[str] = None


class PmsScheduleDisplayEntry(PmsScheduleEntryResponse):
    """Schedule entry joined with its unit and task for listing"""
    mhe_unit_code: str
    mhe_unit_name: str
    task_name: str
    task_description: Optional[str] = None
    task_category: Optional[str] = None
    task_frequency_display: str


class PmsCompletionRequest(BaseModel):
    completion_date: Optional[date] = None
    notes: Optional[str] = None


class PmsCompletionResponse(BaseModel):
    completed: PmsScheduleDisplayEntry
    next_entry: Optional[PmsScheduleEntryResponse] = None


# ==================== SAFETY ANALYSIS SCHEMAS ====================

class InspectionRecord(BaseModel):
    checklist_item_id: str = Field(..., min_length=1)
    photo_url: str = Field(..., description="data:<mimetype>;base64,<encoded_data>")
    is_safe: bool
    timestamp: str
    part_name: Optional[str] = None

    @field_validator("photo_url")
    @classmethod
    def validate_data_uri(cls, v):
        if not v.startswith("data:") or ";base64," not in v:
            raise ValueError("photo_url must be a base64 data URI (data:<mimetype>;base64,<data>).")
        return v


class SafetyAnalysisRequest(BaseModel):
    inspection_records: List[InspectionRecord] = Field(..., min_length=1)


class SafetyAnalysisResponse(BaseModel):
    is_safe: bool
    reason: str


class InspectionSummaryResponse(BaseModel):
    summary: str


# ==================== DASHBOARD SCHEMAS ====================

class DepartmentUninspectedResponse(ORMModel):
    department_id: str
    department_name: str
    uninspected_count: int
    unit_codes: List[str]


class UnitLatestStatusResponse(ORMModel):
    unit_id: str
    unit_code: str
    status: Optional[ReportStatus] = None


class DepartmentDailyMetricResponse(ORMModel):
    department_id: str
    department_name: str
    total_mhes: int
    safe_today: int
    unsafe_today: int
    not_inspected_today: int


class MonthlyTrendPointResponse(ORMModel):
    month: str
    label: str
    safe: int
    unsafe: int


class DailyInspectionCountResponse(ORMModel):
    date: date
    day: str
    inspections: int


class UnitDowntimeResponse(ORMModel):
    unit_code: str
    downtime_hours: float
