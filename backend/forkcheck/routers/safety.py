"""
Safety router - AI assessment of completed inspections.
"""

from fastapi import APIRouter, Depends

from forkcheck.schemas import (
    InspectionSummaryResponse,
    SafetyAnalysisRequest,
    SafetyAnalysisResponse,
)
from forkcheck.security import AuthUser, get_auth_user
from forkcheck.services.safety_analysis import SafetyAnalysisService, get_safety_service

router = APIRouter()


@router.post("/analyze", response_model=SafetyAnalysisResponse)
async def analyze_safety(
    request: SafetyAnalysisRequest,
    service: SafetyAnalysisService = Depends(get_safety_service),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """
    Decide whether the inspected forklift is safe to operate.

    Any unsafe item makes the unit unsafe. When the analysis backend is
    unreachable the answer is unsafe with an instruction to contact a supervisor.
    """
    assessment = await service.analyze(request.inspection_records)
    return SafetyAnalysisResponse(is_safe=assessment.is_safe, reason=assessment.reason)


@router.post("/summarize", response_model=InspectionSummaryResponse)
async def summarize_inspection(
    request: SafetyAnalysisRequest,
    service: SafetyAnalysisService = Depends(get_safety_service),
    auth_user: AuthUser = Depends(get_auth_user)
):
    """Short plain-text summary of an inspection."""
    summary = await service.summarize(request.inspection_records)
    return InspectionSummaryResponse(summary=summary)
