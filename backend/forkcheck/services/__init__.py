"""
Services package - Business logic layer.
"""

from forkcheck.services.inspection_service import InspectionService
from forkcheck.services.inspection_workflow import InspectionWorkflow, WorkflowError
from forkcheck.services.pms_service import PmsService
from forkcheck.services.safety_analysis import SafetyAnalysisService, SafetyAssessment

__all__ = [
    "InspectionService",
    "InspectionWorkflow",
    "WorkflowError",
    "PmsService",
    "SafetyAnalysisService",
    "SafetyAssessment",
]
