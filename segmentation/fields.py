"""
Field Tables and Field Accessor

Every call site (segment builder, smart lists, workflow triggers) declares the
fields its rule builder offers. Each field carries its type, which decides the
operators it accepts and how its value is read off a contact record.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

TEXT = "text"
ENUM = "enum"
ARRAY = "array"
DATE = "date"
BEHAVIOR = "behavior"
NUMBER = "number"

FIELD_TYPES = (TEXT, ENUM, ARRAY, DATE, BEHAVIOR, NUMBER)

# Behavioral fields join on this record attribute
JOIN_KEY = "email"

IndexKey = Tuple[str, Optional[str]]


@dataclass(frozen=True)
class FieldSpec:
    """One entry of a call site's field table.

    Attributes:
        name: Field name used in rules
        field_type: One of FIELD_TYPES
        label: Human-readable label for the rule builder
        key: Record attribute read for this field (defaults to name)
    """

    name: str
    field_type: str
    label: str
    key: Optional[str] = None

    def __post_init__(self):
        if self.field_type not in FIELD_TYPES:
            raise ValueError(f"Unknown field type '{self.field_type}' for field '{self.name}'")

    @property
    def record_key(self) -> str:
        return self.key or self.name


def _table(*specs: FieldSpec) -> Dict[str, FieldSpec]:
    return {spec.name: spec for spec in specs}


SEGMENT_FIELDS = _table(
    FieldSpec("status", ENUM, "Subscription Status"),
    FieldSpec("first_name", TEXT, "First Name"),
    FieldSpec("last_name", TEXT, "Last Name"),
    FieldSpec("email", TEXT, "Email"),
    FieldSpec("company", TEXT, "Company"),
    FieldSpec("tags", ARRAY, "Tags"),
    FieldSpec("source", TEXT, "Lead Source"),
    FieldSpec("last_engaged", DATE, "Last Engaged Date"),
    FieldSpec("subscribed_at", DATE, "Subscription Date"),
    FieldSpec("opened_email", BEHAVIOR, "Opened Email"),
    FieldSpec("clicked_link", BEHAVIOR, "Clicked Link"),
    FieldSpec("bounced_email", BEHAVIOR, "Email Bounced"),
    FieldSpec("engagement_score", NUMBER, "Engagement Score"),
)

SMART_LIST_FIELDS = _table(
    FieldSpec("contact_type", TEXT, "Contact Type"),
    FieldSpec("status", TEXT, "Status"),
    FieldSpec("tags", ARRAY, "Tags"),
    FieldSpec("company", TEXT, "Company"),
    FieldSpec("source", TEXT, "Source"),
)

WORKFLOW_TRIGGER_FIELDS = _table(
    FieldSpec("lead_score", NUMBER, "Lead Score"),
    FieldSpec("lead_status", ENUM, "Lead Status", key="status"),
    FieldSpec("deal_value", NUMBER, "Deal Value"),
    FieldSpec("lead_source", TEXT, "Lead Source", key="source"),
    FieldSpec("last_activity", DATE, "Last Activity", key="last_engaged"),
    FieldSpec("tags", ARRAY, "Tags"),
    FieldSpec("opened_email", BEHAVIOR, "Opened Email"),
    FieldSpec("clicked_link", BEHAVIOR, "Clicked Link"),
)

FIELD_TABLES = {
    "segment": SEGMENT_FIELDS,
    "smart_list": SMART_LIST_FIELDS,
    "workflow": WORKFLOW_TRIGGER_FIELDS,
}

# Enumerated values offered by the rule builders
STATUS_OPTIONS = ("subscribed", "unsubscribed", "bounced", "complained")
LEAD_STATUS_OPTIONS = ("new", "contacted", "qualified", "proposal", "negotiation", "won", "lost")


def field_table(context: str) -> Dict[str, FieldSpec]:
    """Return the field table for a call site. Raises KeyError if unknown."""
    return FIELD_TABLES[context]


def normalize_email(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip().lower()
    return value or None


def resolve(
    record: Mapping[str, Any],
    spec: FieldSpec,
    indexes: Optional[Mapping[IndexKey, FrozenSet[str]]] = None,
    campaign_id: Optional[str] = None,
) -> Any:
    """
    Read a field off a record in the shape the operator evaluator expects.

    Text fields come back lowercased, behavioral fields come back as a bool
    (membership of the record's email in the matching behavioral index, so a
    record without an email is never a member), and everything else is
    returned raw. A missing attribute resolves to None.
    """
    if spec.field_type == BEHAVIOR:
        email = normalize_email(record.get(JOIN_KEY))
        if email is None:
            return False
        index = (indexes or {}).get((spec.name, campaign_id), frozenset())
        return email in index

    value = record.get(spec.record_key)
    if value is None:
        return None

    if spec.field_type == TEXT:
        if isinstance(value, (list, tuple, set, dict)):
            return None
        return str(value).lower()

    return value
