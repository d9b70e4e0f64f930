import json

import httpx
import pytest

from forkcheck.client import (
    ApiSession,
    AuthenticationError,
    ClientSettings,
    ConflictError,
    DataSource,
    ForkcheckClient,
    LocalCache,
    NetworkError,
    NotFoundError,
    OfflineRepository,
    OnlineRepository,
    PermissionDeniedError,
    ServerError,
    ValidationError,
    open_data_source,
)
from forkcheck.schemas import InspectionReportCreate
from forkcheck.services.safety_analysis import FAIL_SAFE_REASON

BASE_URL = "http://forkcheck.test/api"

SESSION = ApiSession(user_id="u1", username="driver", role="operator", access_token="tok")


def _client(handler, session=SESSION):
    return ForkcheckClient(base_url=BASE_URL, session=session, transport=httpx.MockTransport(handler))


def _report_payload():
    return InspectionReportCreate(
        unit_code="FL001",
        items=[{"checklist_item_id": "c1", "is_safe": True, "photo_url": "data:image/png;base64,AA"}],
    )


class TestForkcheckClient:
    def test_login_keeps_session(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={
                "id": "u9", "username": "boss", "role": "supervisor", "access_token": "jwt-9",
            })

        client = _client(handler, session=None)
        session = client.login("boss", "secret123")

        assert seen == {"body": {"username": "boss", "password": "secret123"}, "auth": None}
        assert session.is_supervisor
        assert client.session.access_token == "jwt-9"

        client.logout()
        with pytest.raises(AuthenticationError, match="Not logged in"):
            client.list_departments()

    def test_bearer_token_and_query_params(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=[])

        _client(handler).list_downtime_logs(unit_id="unit-1", open_only=True)

        assert seen["auth"] == "Bearer tok"
        assert seen["url"].path == "/api/downtime-logs"
        assert dict(seen["url"].params) == {"unitId": "unit-1", "open_only": "true"}

    @pytest.mark.parametrize("status, error_cls", [
        (400, ValidationError),
        (401, AuthenticationError),
        (403, PermissionDeniedError),
        (404, NotFoundError),
        (409, ConflictError),
        (500, ServerError),
        (503, ServerError),
    ])
    def test_error_mapping(self, status, error_cls):
        client = _client(lambda request: httpx.Response(status, json={"message": "Nope."}))

        with pytest.raises(error_cls) as excinfo:
            client.get_mhe_unit("u1")

        assert excinfo.value.status_code == status
        assert excinfo.value.message == "Nope."
        assert str(excinfo.value) == f"Nope. (HTTP {status})"

    def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError, match="Could not reach the server"):
            _client(handler).list_checklist_items()

    def test_no_content_returns_none(self):
        assert _client(lambda request: httpx.Response(204)).delete_mhe_unit("u1") is None

    def test_pydantic_payloads_are_serialized(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": "r1"})

        _client(handler).create_inspection_report(_report_payload())

        assert seen["body"]["unit_code"] == "FL001"
        assert "unit_id" not in seen["body"]
        assert seen["body"]["items"][0]["is_safe"] is True

    def test_bulk_downtime_delete_returns_count(self):
        client = _client(lambda request: httpx.Response(200, json={"deleted": 2}))
        assert client.delete_downtime_logs_for_report("r1") == 2

    def test_find_mhe_unit_matches_exact_code(self):
        units = [{"unit_code": "FL0011"}, {"unit_code": "FL001"}]
        client = _client(lambda request: httpx.Response(200, json=units))

        assert client.find_mhe_unit("fl001") == {"unit_code": "FL001"}
        assert client.find_mhe_unit("FL9") is None


class TestRepositories:
    def test_online_repository_refreshes_cache(self, tmp_path):
        items = [{"id": "c1", "part_name": "Brakes", "question": "OK?", "is_active": True}]
        cache = LocalCache(tmp_path)
        repo = OnlineRepository(_client(lambda request: httpx.Response(200, json=items)), cache)

        assert repo.list_checklist_items() == items
        assert cache.read("checklist_items") == items

    def test_offline_repository_reads_cache_and_queues(self, tmp_path):
        cache = LocalCache(tmp_path)
        cache.write("checklist_items", [
            {"id": "c1", "part_name": "Brakes", "question": "OK?", "is_active": True},
            {"id": "c2", "part_name": "Horn", "question": "OK?", "is_active": False},
        ])
        cache.write("mhe_units", [{"id": "u1", "unit_code": "FL001"}])
        repo = OfflineRepository(cache)

        assert [i["id"] for i in repo.list_checklist_items()] == ["c1"]
        assert repo.find_mhe_unit(" fl001 ")["id"] == "u1"
        assert repo.analyze_safety(None) == {"is_safe": False, "reason": FAIL_SAFE_REASON}

        assert repo.submit_report(_report_payload()) == {"queued": True, "pending": 1}
        assert repo.submit_report(_report_payload()) == {"queued": True, "pending": 2}
        assert repo.pending_reports()[0]["payload"]["unit_code"] == "FL001"

    def test_sync_uploads_queued_reports(self, tmp_path):
        cache = LocalCache(tmp_path)
        OfflineRepository(cache).submit_report(_report_payload())
        uploaded = []

        def handler(request):
            uploaded.append(json.loads(request.content))
            return httpx.Response(201, json={"id": "r1"})

        repo = OnlineRepository(_client(handler), cache)

        assert repo.sync_pending() == 1
        assert uploaded[0]["unit_code"] == "FL001"
        assert cache.read("pending_reports") == []

    def test_sync_stops_at_first_failure(self, tmp_path):
        cache = LocalCache(tmp_path)
        OfflineRepository(cache).submit_report(_report_payload())
        repo = OnlineRepository(_client(lambda request: httpx.Response(500, json={"message": "down"})), cache)

        with pytest.raises(ServerError):
            repo.sync_pending()
        assert len(cache.read("pending_reports")) == 1

    def test_refused_report_does_not_block_the_queue(self, tmp_path):
        cache = LocalCache(tmp_path)
        offline = OfflineRepository(cache)
        offline.submit_report(_report_payload())
        offline.submit_report(_report_payload())
        answers = iter([
            httpx.Response(404, json={"message": "MHE unit not found"}),
            httpx.Response(201, json={"id": "r2"}),
        ])
        repo = OnlineRepository(_client(lambda request: next(answers)), cache)

        assert repo.sync_pending() == 1
        assert cache.read("pending_reports") == []
        rejected = repo.rejected_reports()
        assert len(rejected) == 1
        assert rejected[0]["error"] == "MHE unit not found (HTTP 404)"
        assert rejected[0]["payload"]["unit_code"] == "FL001"

    def test_corrupt_cache_reads_as_default(self, tmp_path):
        (tmp_path / "mhe_units.json").write_text("{not json", encoding="utf-8")
        assert LocalCache(tmp_path).read("mhe_units", []) == []

    def test_open_data_source(self, tmp_path):
        offline = open_data_source(ClientSettings(DATA_SOURCE=DataSource.OFFLINE, CACHE_DIR=tmp_path))
        assert isinstance(offline, OfflineRepository)

        client = _client(lambda request: httpx.Response(200, json=[]))
        online = open_data_source(ClientSettings(DATA_SOURCE="online", CACHE_DIR=tmp_path), client=client)
        assert isinstance(online, OnlineRepository)
        assert online.client is client
