"""Segment-related Pydantic schemas."""

from pydantic import BaseModel

from .rules import RuleModel


class SegmentEstimateRequest(BaseModel):
    user_id: str
    rules: list[RuleModel] = []
