"""
Routers package - API endpoint definitions.
"""

from forkcheck.routers import (
    auth,
    users,
    departments,
    mhe_units,
    checklist_items,
    inspection_reports,
    downtime_logs,
    pms_task_masters,
    pms_schedule_entries,
    safety,
    dashboard
)

__all__ = [
    "auth",
    "users",
    "departments",
    "mhe_units",
    "checklist_items",
    "inspection_reports",
    "downtime_logs",
    "pms_task_masters",
    "pms_schedule_entries",
    "safety",
    "dashboard"
]
