"""Workflow Pydantic schemas."""

from typing import Any, Optional
from pydantic import BaseModel


class WorkflowAction(BaseModel):
    type: str = ""
    config: dict[str, Any] = {}
    order: int = 0


class WorkflowPreviewRequest(BaseModel):
    user_id: str
    trigger_type: Optional[str] = None
    trigger_condition: dict[str, Any] = {}
    actions: list[WorkflowAction] = []
