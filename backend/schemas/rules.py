"""Rule Pydantic schemas shared by the segment, smart list and workflow endpoints."""

from typing import Any, Optional
from pydantic import BaseModel


class RuleModel(BaseModel):
    # Malformed rules evaluate as non-matching instead of failing validation
    field: str = ""
    operator: str = ""
    value: Any = ""
    campaign_id: Optional[str] = None
