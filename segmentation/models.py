"""
Data Models for the Segmentation Engine

Contains the dataclasses passed between the engine stages. All of them are
built from the loosely-typed dicts stored in Supabase, so every constructor
here tolerates missing or malformed keys instead of raising.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class Rule:
    """A single field/operator/value condition.

    Attributes:
        field: Field name from the call site's field table (e.g. "company")
        operator: Operator name (e.g. "contains", "within_days", "has")
        value: Literal typed into the rule builder, always a string
        campaign_id: Optional campaign scope for behavioral fields
    """

    field: str
    operator: str
    value: str = ""
    campaign_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Rule":
        """Build a Rule from a persisted rule dict."""
        if isinstance(data, Rule):
            return data
        if not isinstance(data, dict):
            return cls(field="", operator="")

        value = data.get("value")
        campaign_id = data.get("campaign_id")
        return cls(
            field=str(data.get("field") or ""),
            operator=str(data.get("operator") or ""),
            value="" if value is None else str(value),
            campaign_id=str(campaign_id) if campaign_id else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"field": self.field, "operator": self.operator, "value": self.value}
        if self.campaign_id:
            data["campaign_id"] = self.campaign_id
        return data


def parse_rules(raw_rules: Any) -> Tuple[Rule, ...]:
    """Convert a persisted `rules` array into Rules, dropping nothing."""
    if not raw_rules or not isinstance(raw_rules, (list, tuple)):
        return ()
    return tuple(Rule.from_dict(r) for r in raw_rules)


@dataclass(frozen=True)
class ListDefinition:
    """Membership definition of a segment, smart list or workflow audience.

    Attributes:
        filter_type: "manual" (explicit contact_ids) or "automatic" (rules)
        rules: AND-combined rules used in automatic mode
        contact_ids: Explicit member ids used in manual mode
    """

    filter_type: str = "automatic"
    rules: Tuple[Rule, ...] = ()
    contact_ids: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_manual(self) -> bool:
        return self.filter_type == "manual"

    @classmethod
    def from_dict(cls, data: Any) -> "ListDefinition":
        """Build a definition from the persisted `{rules, filter_type, contact_ids}` shape."""
        if isinstance(data, ListDefinition):
            return data
        if isinstance(data, (list, tuple)):
            return cls(rules=parse_rules(data))
        if not isinstance(data, dict):
            return cls()

        raw_ids = data.get("contact_ids") or []
        if not isinstance(raw_ids, (list, tuple, set, frozenset)):
            raw_ids = []

        return cls(
            filter_type=str(data.get("filter_type") or "automatic"),
            rules=parse_rules(data.get("rules")),
            contact_ids=frozenset(str(i) for i in raw_ids if i is not None),
        )

    @classmethod
    def manual(cls, contact_ids: Iterable[str]) -> "ListDefinition":
        return cls(filter_type="manual", contact_ids=frozenset(str(i) for i in contact_ids))


@dataclass
class Classification:
    """Result of one classification pass."""

    matched: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.matched)
