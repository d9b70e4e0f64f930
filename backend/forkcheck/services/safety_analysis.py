"""
Safety Analysis Service
Asks an external LLM whether an inspected forklift is safe to operate.

The model only contributes the explanation: "any unsafe item means unsafe"
decides the verdict, and any delegate failure yields the fail-safe verdict.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pydantic import ValidationError

from forkcheck.config import settings
from forkcheck.schemas import InspectionRecord, SafetyAnalysisResponse
from forkcheck.services.llm.base import LLMMessage

logger = logging.getLogger(__name__)

FAIL_SAFE_REASON = (
    "Automated safety analysis is unavailable. "
    "Treat this unit as unsafe and contact your supervisor."
)

ANALYSIS_SYSTEM_PROMPT = (
    "You are an AI expert in forklift safety analysis.\n"
    "You are provided with a list of inspection records for a forklift. Each record "
    "includes the inspected part, whether the operator marked it safe or unsafe, and "
    "may reference an attached photo of the part.\n"
    "If all parts are marked as safe, the forklift is considered safe. If any part is "
    "marked as unsafe, the forklift is unsafe and you must clearly explain why, naming "
    "every unsafe item.\n"
    'Respond with a JSON object only: {"is_safe": <true|false>, "reason": "<explanation>"}'
)

SUMMARY_SYSTEM_PROMPT = (
    "You are an AI assistant that summarizes forklift inspection records.\n"
    "Provide a concise summary stating: 1. the overall safety status, "
    "2. the total number of items inspected, 3. if unsafe, the checklist item IDs "
    "that were marked as unsafe. Answer in plain text."
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class SafetyAssessment:
    """Verdict returned to the inspection workflow"""
    is_safe: bool
    reason: str
    provider: Optional[str] = None
    fallback: bool = False


def item_label(record: InspectionRecord) -> str:
    if record.part_name:
        return f"{record.part_name} (item {record.checklist_item_id})"
    return f"item {record.checklist_item_id}"


def mentions(text: str, term: Optional[str]) -> bool:
    """Whole-word, case-insensitive match so item 1 is not found inside 12."""
    if not term:
        return False
    return re.search(rf"(?<!\w){re.escape(term)}(?!\w)", text, re.IGNORECASE) is not None


def failing_records(records: Sequence[InspectionRecord]) -> List[InspectionRecord]:
    return [r for r in records if not r.is_safe]


def expected_verdict(records: Sequence[InspectionRecord]) -> bool:
    """Overall safety is the AND of every per-item flag."""
    return all(r.is_safe for r in records)


def local_summary(records: Sequence[InspectionRecord]) -> str:
    """Deterministic summary used when the LLM cannot be reached."""
    unsafe = failing_records(records)
    total = len(records)
    noun = "item" if total == 1 else "items"
    if not unsafe:
        return f"The forklift appears to be safe. {total} {noun} inspected, all marked safe."
    unsafe_noun = "item" if len(unsafe) == 1 else "items"
    ids = ", ".join(r.checklist_item_id for r in unsafe)
    return (
        f"The forklift appears to be unsafe based on {len(unsafe)} {unsafe_noun}. "
        f"{total} {noun} inspected. Unsafe checklist item IDs: {ids}."
    )


class SafetyAnalysisService:
    """
    Thin delegate around the LLM provider factory.

    `llm` is anything exposing `async generate(messages, temperature,
    max_tokens, json_mode)`; the global provider factory is used when omitted.
    """

    def __init__(self, llm=None, max_photos: int = 5):
        self._llm = llm
        self.max_photos = max_photos

    async def _get_llm(self):
        if self._llm is None:
            from forkcheck.services.llm.provider_factory import get_llm_factory
            self._llm = await get_llm_factory()
        return self._llm

    def build_analysis_messages(self, records: Sequence[InspectionRecord]) -> List[LLMMessage]:
        """
        Serialize the records into the prompt.
        Vision backends cap images per request, so unsafe items' photos go first.
        """
        prioritized = sorted(range(len(records)), key=lambda i: records[i].is_safe)
        attached = prioritized[:self.max_photos]
        photo_numbers = {index: n for n, index in enumerate(sorted(attached), start=1)}

        lines = ["Here are the inspection records:"]
        for index, record in enumerate(records):
            photo = (
                f"attached image #{photo_numbers[index]}"
                if index in photo_numbers else "not attached"
            )
            lines.append(
                f"- Item ID: {record.checklist_item_id}\n"
                f"  Part: {record.part_name or 'unknown'}\n"
                f"  Safe: {str(record.is_safe).lower()}\n"
                f"  Timestamp: {record.timestamp}\n"
                f"  Photo: {photo}"
            )
        lines.append(
            "Based on this information, determine if the forklift is safe for operation "
            "and provide a reason for your assessment."
        )

        images = [records[index].photo_url for index in sorted(attached)]
        return [
            LLMMessage(role="system", content=ANALYSIS_SYSTEM_PROMPT),
            LLMMessage(role="user", content="\n".join(lines), images=images),
        ]

    @staticmethod
    def parse_verdict(content: str) -> SafetyAnalysisResponse:
        """Parse the model's JSON answer; raises ValueError on malformed output."""
        cleaned = _CODE_FENCE.sub("", content.strip())
        try:
            return SafetyAnalysisResponse.model_validate(json.loads(cleaned))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ValueError(f"Malformed safety verdict: {content[:200]!r}") from e

    @staticmethod
    def reconcile(
        records: Sequence[InspectionRecord],
        verdict: SafetyAnalysisResponse
    ) -> tuple[bool, str]:
        """Apply the AND rule over the model verdict and guarantee an unsafe reason names an item."""
        is_safe = expected_verdict(records)
        if verdict.is_safe != is_safe:
            logger.warning(
                f"Model verdict is_safe={verdict.is_safe} overridden by operator flags (is_safe={is_safe})"
            )

        if is_safe:
            reason = f"All {len(records)} checklist items were marked safe."
            if not verdict.is_safe and verdict.reason:
                reason += f" Model note: {verdict.reason}"
            elif verdict.reason:
                reason = verdict.reason
            return True, reason

        unsafe = failing_records(records)
        reason = verdict.reason if not verdict.is_safe else ""
        mentions_item = any(
            mentions(reason, r.checklist_item_id) or mentions(reason, r.part_name)
            for r in unsafe
        )
        if not mentions_item:
            prefix = "Unsafe items: " + ", ".join(item_label(r) for r in unsafe) + "."
            reason = f"{prefix} {reason}".strip()
        return False, reason

    async def analyze(self, records: Sequence[InspectionRecord]) -> SafetyAssessment:
        """Return the safety verdict; never fails open."""
        if not records:
            raise ValueError("At least one inspection record is required")

        try:
            llm = await self._get_llm()
            response = await llm.generate(
                self.build_analysis_messages(records),
                json_mode=True
            )
            verdict = self.parse_verdict(response.content)
        except Exception as e:
            logger.error(f"Safety analysis delegate failed, using fail-safe verdict: {e}")
            return SafetyAssessment(is_safe=False, reason=FAIL_SAFE_REASON, fallback=True)

        is_safe, reason = self.reconcile(records, verdict)
        return SafetyAssessment(
            is_safe=is_safe,
            reason=reason,
            provider=getattr(response, "provider_name", None)
        )

    async def summarize(self, records: Sequence[InspectionRecord]) -> str:
        """Concise inspection summary, falling back to a local one."""
        lines = [
            f"- Checklist Item ID: {r.checklist_item_id}, Safe: {str(r.is_safe).lower()}"
            for r in records
        ]
        messages = [
            LLMMessage(role="system", content=SUMMARY_SYSTEM_PROMPT),
            LLMMessage(role="user", content="Inspection Records:\n" + "\n".join(lines) + "\n\nGenerate the summary."),
        ]
        try:
            llm = await self._get_llm()
            response = await llm.generate(messages)
            summary = response.content.strip()
            if summary:
                return summary
            logger.warning("Empty summary from LLM, using local summary")
        except Exception as e:
            logger.error(f"Inspection summary delegate failed: {e}")
        return local_summary(records)


# Singleton instance
safety_analysis_service = SafetyAnalysisService(max_photos=settings.LLM_MAX_PHOTOS)


def get_safety_service() -> SafetyAnalysisService:
    """FastAPI dependency returning the shared safety-analysis service"""
    return safety_analysis_service
