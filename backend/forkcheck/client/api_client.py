"""
Forklift Check API Client
Synchronous httpx client for the REST API, with an explicit login session
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel

from forkcheck.client.config import ClientSettings
from forkcheck.client.errors import AuthenticationError, NetworkError, error_from_response

logger = logging.getLogger(__name__)


@dataclass
class ApiSession:
    """Logged-in user; created by login, dropped by logout"""
    user_id: str
    username: str
    role: str
    access_token: str

    @property
    def is_supervisor(self) -> bool:
        return self.role == "supervisor"


def to_json_payload(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_none=True)
    return data


def _params(**kwargs) -> Dict[str, Any]:
    params = {}
    for key, value in kwargs.items():
        if value is None or value is False:
            continue
        params[key] = value.isoformat() if isinstance(value, date) else value
    return params


class ForkcheckClient:
    """
    Client for the Forklift Check REST API.

    Every call is a single attempt: errors surface immediately as typed
    exceptions and nothing is retried.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[ApiSession] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        settings = ClientSettings()
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.session = session
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.TIMEOUT_SECONDS,
            transport=transport,
        )

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ==================== TRANSPORT ====================

    def _headers(self, authenticated: bool) -> Dict[str, str]:
        if not authenticated:
            return {}
        if self.session is None:
            raise AuthenticationError("Not logged in", 401)
        return {"Authorization": f"Bearer {self.session.access_token}"}

    def _request(
        self,
        method: str,
        path: str,
        authenticated: bool = True,
        **kwargs
    ) -> Any:
        headers = self._headers(authenticated)
        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError(f"Could not reach the server at {self.base_url}: {e}") from e

        if response.is_error:
            error = error_from_response(response)
            logger.info(f"{method} {path} -> {error}")
            raise error

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ==================== AUTH & USERS ====================

    def login(self, username: str, password: str) -> ApiSession:
        data = self._request(
            "POST", "/auth/login",
            authenticated=False,
            json={"username": username, "password": password}
        )
        self.session = ApiSession(
            user_id=data["id"],
            username=data["username"],
            role=data["role"],
            access_token=data["access_token"],
        )
        return self.session

    def logout(self):
        self.session = None

    def signup(self, username: str, password: str, role: str = "operator") -> Dict:
        return self._request(
            "POST", "/users",
            authenticated=False,
            json={"username": username, "password": password, "role": role}
        )

    def username_exists(self, username: str) -> bool:
        users = self._request("GET", "/users", authenticated=False, params={"username": username})
        return bool(users)

    def current_user(self) -> Dict:
        return self._request("GET", "/users/me")

    def delete_user(self, user_id: str):
        self._request("DELETE", f"/users/{user_id}")

    # ==================== MASTER DATA ====================

    def list_departments(self) -> List[Dict]:
        return self._request("GET", "/departments")

    def create_department(self, data) -> Dict:
        return self._request("POST", "/departments", json=to_json_payload(data))

    def update_department(self, department_id: str, data) -> Dict:
        return self._request("PUT", f"/departments/{department_id}", json=to_json_payload(data))

    def delete_department(self, department_id: str):
        self._request("DELETE", f"/departments/{department_id}")

    def list_mhe_units(
        self,
        department_id: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None
    ) -> List[Dict]:
        return self._request(
            "GET", "/mhe-units",
            params=_params(department_id=department_id, status=status, search=search)
        )

    def get_mhe_unit(self, unit_id: str) -> Dict:
        return self._request("GET", f"/mhe-units/{unit_id}")

    def find_mhe_unit(self, unit_code: str) -> Optional[Dict]:
        """Exact (case-insensitive) unit code lookup."""
        wanted = unit_code.strip().lower()
        for unit in self.list_mhe_units(search=unit_code.strip()):
            if unit["unit_code"].lower() == wanted:
                return unit
        return None

    def create_mhe_unit(self, data) -> Dict:
        return self._request("POST", "/mhe-units", json=to_json_payload(data))

    def update_mhe_unit(self, unit_id: str, data) -> Dict:
        return self._request("PUT", f"/mhe-units/{unit_id}", json=to_json_payload(data))

    def delete_mhe_unit(self, unit_id: str):
        self._request("DELETE", f"/mhe-units/{unit_id}")

    def list_checklist_items(self, active_only: bool = False) -> List[Dict]:
        return self._request("GET", "/checklist-items", params=_params(active_only=active_only))

    def create_checklist_item(self, data) -> Dict:
        return self._request("POST", "/checklist-items", json=to_json_payload(data))

    def update_checklist_item(self, item_id: str, data) -> Dict:
        return self._request("PUT", f"/checklist-items/{item_id}", json=to_json_payload(data))

    def delete_checklist_item(self, item_id: str):
        self._request("DELETE", f"/checklist-items/{item_id}")

    # ==================== INSPECTIONS ====================

    def list_inspection_reports(
        self,
        unit_id: Optional[str] = None,
        unit_code: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Dict]:
        return self._request(
            "GET", "/inspection-reports",
            params=_params(
                unitId=unit_id, unit_code=unit_code, status=status,
                start_date=start_date, end_date=end_date
            )
        )

    def get_inspection_report(self, report_id: str) -> Dict:
        return self._request("GET", f"/inspection-reports/{report_id}")

    def create_inspection_report(self, data) -> Dict:
        return self._request("POST", "/inspection-reports", json=to_json_payload(data))

    def delete_inspection_report(self, report_id: str):
        self._request("DELETE", f"/inspection-reports/{report_id}")

    def analyze_safety(self, data) -> Dict:
        return self._request("POST", "/safety/analyze", json=to_json_payload(data))

    def summarize_inspection(self, data) -> Dict:
        return self._request("POST", "/safety/summarize", json=to_json_payload(data))

    # ==================== DOWNTIME ====================

    def list_downtime_logs(
        self,
        unit_id: Optional[str] = None,
        source_report_id: Optional[str] = None,
        open_only: bool = False
    ) -> List[Dict]:
        return self._request(
            "GET", "/downtime-logs",
            params=_params(unitId=unit_id, sourceReportId=source_report_id, open_only=open_only)
        )

    def create_downtime_log(self, data) -> Dict:
        return self._request("POST", "/downtime-logs", json=to_json_payload(data))

    def update_downtime_log(self, log_id: str, data) -> Dict:
        return self._request("PUT", f"/downtime-logs/{log_id}", json=to_json_payload(data))

    def delete_downtime_log(self, log_id: str):
        self._request("DELETE", f"/downtime-logs/{log_id}")

    def delete_downtime_logs_for_report(self, report_id: str) -> int:
        result = self._request("DELETE", "/downtime-logs", params={"sourceReportId": report_id})
        return result["deleted"]

    # ==================== PMS ====================

    def list_pms_task_masters(self) -> List[Dict]:
        return self._request("GET", "/pms-task-masters")

    def create_pms_task_master(self, data) -> Dict:
        return self._request("POST", "/pms-task-masters", json=to_json_payload(data))

    def list_pms_schedule(
        self,
        mhe_unit_id: Optional[str] = None,
        status: Optional[str] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None
    ) -> List[Dict]:
        return self._request(
            "GET", "/pms-schedule-entries",
            params=_params(mhe_unit_id=mhe_unit_id, status=status, due_from=due_from, due_to=due_to)
        )

    def create_pms_schedule_entry(self, data) -> Dict:
        return self._request("POST", "/pms-schedule-entries", json=to_json_payload(data))

    def complete_pms_entry(
        self,
        entry_id: str,
        completion_date: Optional[date] = None,
        notes: Optional[str] = None
    ) -> Dict:
        body = {"completion_date": completion_date.isoformat() if completion_date else None, "notes": notes}
        return self._request("POST", f"/pms-schedule-entries/{entry_id}/complete", json=body)

    # ==================== DASHBOARD ====================

    def uninspected_units(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Dict]:
        return self._request(
            "GET", "/dashboard/uninspected",
            params=_params(start_date=start_date, end_date=end_date)
        )

    def daily_metrics(self, day: Optional[date] = None) -> List[Dict]:
        return self._request("GET", "/dashboard/daily-metrics", params=_params(day=day))

    def downtime_overview(self) -> List[Dict]:
        return self._request("GET", "/dashboard/downtime-overview")

    def unit_history(self, unit_code: str) -> List[Dict]:
        return self._request("GET", f"/dashboard/unit-history/{unit_code}")
