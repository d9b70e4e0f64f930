import json

import pytest

from forkcheck.main import app
from forkcheck.schemas import InspectionRecord, SafetyAnalysisResponse
from forkcheck.services.llm.base import LLMResponse
from forkcheck.services.safety_analysis import (
    FAIL_SAFE_REASON,
    SafetyAnalysisService,
    get_safety_service,
    local_summary,
)
from tests.conftest import PHOTO


class FakeLLM:
    """Stands in for the provider factory; records every call"""

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def generate(self, messages, temperature=None, max_tokens=None, json_mode=False):
        self.calls.append({"messages": messages, "json_mode": json_mode})
        if self.error:
            raise self.error
        return LLMResponse(content=self.content, model_name="fake-model", provider_name="fake")


def _record(item_id, is_safe, part_name=None, photo=PHOTO):
    return InspectionRecord(
        checklist_item_id=item_id,
        photo_url=photo,
        is_safe=is_safe,
        timestamp="2025-03-01T08:00:00Z",
        part_name=part_name,
    )


def _verdict(is_safe, reason):
    return json.dumps({"is_safe": is_safe, "reason": reason})


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_all_safe(self):
        llm = FakeLLM(_verdict(True, "Every part looks fine."))
        service = SafetyAnalysisService(llm=llm)

        result = await service.analyze([_record("c1", True), _record("c2", True)])

        assert result.is_safe is True
        assert result.reason == "Every part looks fine."
        assert result.provider == "fake"
        assert result.fallback is False
        assert llm.calls[0]["json_mode"] is True

    @pytest.mark.asyncio
    async def test_unsafe_item_with_agreeing_model(self):
        service = SafetyAnalysisService(llm=FakeLLM(_verdict(False, "The Horn (c2) does not sound.")))

        result = await service.analyze([_record("c1", True, "Brakes"), _record("c2", False, "Horn")])

        assert result.is_safe is False
        assert result.reason == "The Horn (c2) does not sound."

    @pytest.mark.asyncio
    async def test_model_cannot_clear_an_unsafe_item(self):
        service = SafetyAnalysisService(llm=FakeLLM(_verdict(True, "Looks fine to me.")))

        result = await service.analyze([_record("c1", True, "Brakes"), _record("c2", False, "Horn")])

        assert result.is_safe is False
        assert result.reason.startswith("Unsafe items: Horn (item c2).")

    @pytest.mark.asyncio
    async def test_model_cannot_fail_an_all_safe_inspection(self):
        service = SafetyAnalysisService(llm=FakeLLM(_verdict(False, "Photo 2 is blurry.")))

        result = await service.analyze([_record("c1", True), _record("c2", True)])

        assert result.is_safe is True
        assert result.reason == "All 2 checklist items were marked safe. Model note: Photo 2 is blurry."

    @pytest.mark.asyncio
    async def test_unsafe_reason_always_names_an_item(self):
        service = SafetyAnalysisService(llm=FakeLLM(_verdict(False, "Do not operate.")))

        result = await service.analyze([_record("c7", False)])

        assert result.reason == "Unsafe items: item c7. Do not operate."

    @pytest.mark.asyncio
    async def test_code_fenced_json_is_accepted(self):
        fenced = "```json\n" + _verdict(True, "All good.") + "\n```"
        service = SafetyAnalysisService(llm=FakeLLM(fenced))

        result = await service.analyze([_record("c1", True)])

        assert result.is_safe is True
        assert result.reason == "All good."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("llm", [
        FakeLLM(error=RuntimeError("connection refused")),
        FakeLLM("I think it is probably fine"),
        FakeLLM(json.dumps({"verdict": "safe"})),
    ])
    async def test_delegate_failures_fail_safe(self, llm):
        service = SafetyAnalysisService(llm=llm)

        result = await service.analyze([_record("c1", True), _record("c2", True)])

        assert result.is_safe is False
        assert result.reason == FAIL_SAFE_REASON
        assert result.fallback is True

    @pytest.mark.asyncio
    async def test_empty_records_rejected(self):
        with pytest.raises(ValueError):
            await SafetyAnalysisService(llm=FakeLLM("{}")).analyze([])


class TestPrompt:
    def test_unsafe_photos_are_attached_first(self):
        records = [_record(f"c{i}", is_safe=(i != 4), photo=f"data:image/png;base64,P{i}") for i in range(1, 5)]
        service = SafetyAnalysisService(max_photos=2)

        system, user = service.build_analysis_messages(records)

        assert system.role == "system"
        assert user.images == ["data:image/png;base64,P1", "data:image/png;base64,P4"]
        assert "Item ID: c4" in user.content
        assert "Photo: not attached" in user.content
        assert "Safe: false" in user.content

    def test_parse_verdict_rejects_non_json(self):
        with pytest.raises(ValueError, match="Malformed safety verdict"):
            SafetyAnalysisService.parse_verdict("not json")

    def test_reconcile_keeps_item_naming_reason(self):
        records = [_record("c2", False, "Horn")]
        is_safe, reason = SafetyAnalysisService.reconcile(
            records, SafetyAnalysisResponse(is_safe=False, reason="horn is broken")
        )
        assert (is_safe, reason) == (False, "horn is broken")

    def test_reconcile_matches_whole_words_only(self):
        records = [_record("1", False), _record("2", True)]
        is_safe, reason = SafetyAnalysisService.reconcile(
            records, SafetyAnalysisResponse(is_safe=False, reason="Inspection of 12 parts shows a defect.")
        )
        assert is_safe is False
        assert reason == "Unsafe items: item 1. Inspection of 12 parts shows a defect."


class TestSummary:
    @pytest.mark.asyncio
    async def test_summary_from_model(self):
        service = SafetyAnalysisService(llm=FakeLLM("  Safe. 2 items inspected.  "))
        assert await service.summarize([_record("c1", True), _record("c2", True)]) == "Safe. 2 items inspected."

    @pytest.mark.asyncio
    async def test_summary_falls_back_locally(self):
        service = SafetyAnalysisService(llm=FakeLLM(error=RuntimeError("offline")))

        summary = await service.summarize([_record("c1", True), _record("c2", False), _record("c3", False)])

        assert summary == (
            "The forklift appears to be unsafe based on 2 items. "
            "3 items inspected. Unsafe checklist item IDs: c2, c3."
        )

    def test_local_summary_safe(self):
        assert local_summary([_record("c1", True)]) == (
            "The forklift appears to be safe. 1 item inspected, all marked safe."
        )


class TestSafetyApi:
    @pytest.fixture
    def fake_llm(self):
        llm = FakeLLM(_verdict(True, "Nothing wrong."))
        app.dependency_overrides[get_safety_service] = lambda: SafetyAnalysisService(llm=llm)
        return llm

    def _body(self, *flags):
        return {
            "inspection_records": [
                {"checklist_item_id": f"c{i}", "photo_url": PHOTO, "is_safe": flag, "timestamp": "2025-03-01T08:00:00Z"}
                for i, flag in enumerate(flags, start=1)
            ]
        }

    def test_analyze(self, client, fake_llm, operator_headers):
        response = client.post("/api/safety/analyze", json=self._body(True, False), headers=operator_headers)

        assert response.status_code == 200
        assert response.json()["is_safe"] is False
        assert response.json()["reason"].startswith("Unsafe items: item c2.")

    def test_summarize(self, client, fake_llm, operator_headers):
        fake_llm.content = "All fine."
        response = client.post("/api/safety/summarize", json=self._body(True), headers=operator_headers)
        assert response.json() == {"summary": "All fine."}

    def test_photo_must_be_a_data_uri(self, client, fake_llm, operator_headers):
        body = self._body(True)
        body["inspection_records"][0]["photo_url"] = "https://example.com/photo.jpg"

        response = client.post("/api/safety/analyze", json=body, headers=operator_headers)

        assert response.status_code == 400
        assert "base64 data URI" in response.json()["message"]

    def test_requires_login(self, client, fake_llm):
        assert client.post("/api/safety/analyze", json=self._body(True)).status_code == 401
