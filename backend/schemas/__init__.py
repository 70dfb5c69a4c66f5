"""
Pydantic schemas for the Segmentation Backend API.
"""

from .rules import RuleModel
from .segments import SegmentEstimateRequest
from .smart_lists import SmartListPreviewRequest
from .workflows import WorkflowAction, WorkflowPreviewRequest

__all__ = [
    # Rules
    "RuleModel",
    # Segments
    "SegmentEstimateRequest",
    # Smart lists
    "SmartListPreviewRequest",
    # Workflows
    "WorkflowAction",
    "WorkflowPreviewRequest",
]
