"""Smart list Pydantic schemas."""

from pydantic import BaseModel

from .rules import RuleModel


class SmartListPreviewRequest(BaseModel):
    user_id: str
    filter_type: str = "manual"
    rules: list[RuleModel] = []
    contact_ids: list[str] = []
