"""
Data sources for the operator client.

OnlineRepository talks to the API and keeps a local JSON copy of the master
data; OfflineRepository works from that copy and queues reports until the
API can be reached again. Which one is used is decided by configuration.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from forkcheck.client.api_client import ForkcheckClient, to_json_payload
from forkcheck.client.config import ClientSettings, DataSource
from forkcheck.client.errors import ConflictError, NotFoundError, ValidationError
from forkcheck.services.safety_analysis import FAIL_SAFE_REASON

logger = logging.getLogger(__name__)

CHECKLIST_ITEMS = "checklist_items"
MHE_UNITS = "mhe_units"
PENDING_REPORTS = "pending_reports"
REJECTED_REPORTS = "rejected_reports"


class LocalCache:
    """One JSON document per collection inside the cache directory"""

    def __init__(self, cache_dir: Union[str, Path]):
        self.cache_dir = Path(cache_dir).expanduser()

    def _path(self, name: str) -> Path:
        return self.cache_dir / f"{name}.json"

    def read(self, name: str, default: Any = None) -> Any:
        path = self._path(name)
        if not path.exists():
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring corrupt cache file {path}: {e}")
            return default

    def write(self, name: str, data: Any):
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(name)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)
        tmp_path.replace(path)

    def clear(self, name: str):
        self._path(name).unlink(missing_ok=True)


class OnlineRepository:
    """API-backed data source that refreshes the local cache on every read"""

    source = DataSource.ONLINE

    def __init__(self, client: ForkcheckClient, cache: LocalCache):
        self.client = client
        self.cache = cache

    def list_checklist_items(self) -> List[Dict]:
        items = self.client.list_checklist_items(active_only=True)
        self.cache.write(CHECKLIST_ITEMS, items)
        return items

    def find_mhe_unit(self, unit_code: str) -> Optional[Dict]:
        units = self.client.list_mhe_units()
        self.cache.write(MHE_UNITS, units)
        wanted = unit_code.strip().lower()
        return next((u for u in units if u["unit_code"].lower() == wanted), None)

    def analyze_safety(self, request) -> Dict:
        return self.client.analyze_safety(request)

    def submit_report(self, payload) -> Dict:
        return self.client.create_inspection_report(payload)

    def sync_pending(self) -> int:
        """
        Upload reports queued while offline.
        A report the server refuses for good (400, 404, 409) moves to the
        rejected collection so it cannot block the rest of the queue; any
        other failure stops the sync and is raised.
        """
        pending = self.cache.read(PENDING_REPORTS, [])
        uploaded = 0
        while pending:
            entry = pending[0]
            try:
                self.client.create_inspection_report(entry["payload"])
                uploaded += 1
            except (ValidationError, NotFoundError, ConflictError) as e:
                logger.warning(f"Queued report for {entry['payload'].get('unit_code')} rejected: {e}")
                rejected = self.cache.read(REJECTED_REPORTS, [])
                rejected.append({**entry, "error": str(e)})
                self.cache.write(REJECTED_REPORTS, rejected)
            pending.pop(0)
            self.cache.write(PENDING_REPORTS, pending)
        if uploaded:
            logger.info(f"Uploaded {uploaded} queued inspection reports")
        return uploaded

    def rejected_reports(self) -> List[Dict]:
        return self.cache.read(REJECTED_REPORTS, [])


class OfflineRepository:
    """Cache-backed data source; reports are queued, never lost"""

    source = DataSource.OFFLINE

    def __init__(self, cache: LocalCache):
        self.cache = cache

    def list_checklist_items(self) -> List[Dict]:
        return [item for item in self.cache.read(CHECKLIST_ITEMS, []) if item.get("is_active", True)]

    def find_mhe_unit(self, unit_code: str) -> Optional[Dict]:
        wanted = unit_code.strip().lower()
        units = self.cache.read(MHE_UNITS, [])
        return next((u for u in units if u["unit_code"].lower() == wanted), None)

    def analyze_safety(self, request) -> Dict:
        # No analysis backend offline: never report a unit as safe
        return {"is_safe": False, "reason": FAIL_SAFE_REASON}

    def submit_report(self, payload) -> Dict:
        pending = self.cache.read(PENDING_REPORTS, [])
        entry = {
            "queued_at": datetime.now(timezone.utc).isoformat(),
            "payload": to_json_payload(payload),
        }
        pending.append(entry)
        self.cache.write(PENDING_REPORTS, pending)
        logger.info(f"Report queued offline ({len(pending)} pending)")
        return {"queued": True, "pending": len(pending)}

    def pending_reports(self) -> List[Dict]:
        return self.cache.read(PENDING_REPORTS, [])


def open_data_source(
    settings: Optional[ClientSettings] = None,
    client: Optional[ForkcheckClient] = None
) -> Union[OnlineRepository, OfflineRepository]:
    """Build the repository selected by FORKCHECK_DATA_SOURCE."""
    settings = settings or ClientSettings()
    cache = LocalCache(settings.CACHE_DIR)

    if settings.DATA_SOURCE == DataSource.OFFLINE:
        return OfflineRepository(cache)

    client = client or ForkcheckClient(
        base_url=settings.API_BASE_URL,
        timeout=settings.TIMEOUT_SECONDS
    )
    return OnlineRepository(client, cache)
