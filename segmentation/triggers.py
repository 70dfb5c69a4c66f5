"""
Workflow Trigger Translation

Workflows store a trigger type plus a small condition dict, and If/Then
condition actions store their own config. Both are translated here into
ordinary rules over WORKFLOW_TRIGGER_FIELDS so the same evaluator decides a
workflow's audience.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from .models import Rule
from .operators import EARLIEST, parse_int

WORKFLOW_ACTION_TYPES = (
    "assign_lead",
    "send_email",
    "create_task",
    "update_status",
    "add_tag",
    "create_notification",
    "wait",
    "condition",
)

# Triggers that fire on the event itself and carry no conditions
EVENT_TRIGGERS = ("user_signup", "user_purchase", "contact_created")

DEFAULT_NO_RESPONSE_DAYS = 3


def _text(condition: Mapping[str, Any], key: str) -> str:
    value = condition.get(key)
    return "" if value is None else str(value).strip()


def _inactivity_rule(days: Any, now: Optional[datetime]) -> Rule:
    """Contacts whose last activity is older than `days` days."""
    if days is None or not str(days).strip():
        # Blank stays blank so the rule is skipped
        return Rule("last_activity", "before", "")

    parsed = parse_int(days)
    if parsed is None or parsed < 0:
        # Nothing is active before the earliest date, so this never matches
        return Rule("last_activity", "before", EARLIEST.isoformat())

    now = now or datetime.now(timezone.utc)
    try:
        cutoff = now - timedelta(days=parsed)
    except OverflowError:
        cutoff = EARLIEST
    return Rule("last_activity", "before", cutoff.isoformat())


def trigger_rules(
    trigger_type: Optional[str],
    condition: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> List[Rule]:
    """
    Convert a workflow trigger into rules.

    Args:
        trigger_type: Trigger type from the workflow builder (e.g. "lead_score")
        condition: Trigger condition dict (operator/value, status, source, days, tag)
        now: Reference time for inactivity triggers

    Returns:
        Rules over WORKFLOW_TRIGGER_FIELDS. Event triggers and unknown types
        have no conditions and return an empty list.
    """
    condition = condition if isinstance(condition, Mapping) else {}

    if trigger_type in ("lead_score", "deal_value"):
        return [Rule(trigger_type, _text(condition, "operator") or "equals", _text(condition, "value"))]

    if trigger_type == "lead_status":
        return [Rule("lead_status", "equals", _text(condition, "status"))]

    if trigger_type == "lead_source":
        return [Rule("lead_source", "equals", _text(condition, "source"))]

    if trigger_type in ("no_activity", "user_inactivity"):
        return [_inactivity_rule(condition.get("days"), now)]

    if trigger_type == "tag_added":
        return [Rule("tags", "contains", _text(condition, "tag"))]

    if trigger_type in ("email_opened", "email_clicked"):
        field = "opened_email" if trigger_type == "email_opened" else "clicked_link"
        return [Rule(field, "has", campaign_id=_text(condition, "campaign_id") or None)]

    return []


def condition_rules(config: Optional[Mapping[str, Any]], now: Optional[datetime] = None) -> List[Rule]:
    """Convert an If/Then condition action config into rules."""
    config = config if isinstance(config, Mapping) else {}
    condition_type = config.get("condition_type")

    if condition_type == "has_tag":
        return [Rule("tags", "contains", _text(config, "tag"))]
    if condition_type == "contact_status":
        return [Rule("lead_status", "equals", _text(config, "contact_status"))]
    if condition_type == "opp_value_gt":
        return [Rule("deal_value", "greater_than", _text(config, "opp_value"))]
    if condition_type == "email_opened":
        return [Rule("opened_email", "has")]
    if condition_type == "link_clicked":
        return [Rule("clicked_link", "has")]
    if condition_type == "no_response":
        return [_inactivity_rule(config.get("no_response_days") or DEFAULT_NO_RESPONSE_DAYS, now)]
    return []


def workflow_rules(workflow: Mapping[str, Any], now: Optional[datetime] = None) -> List[Rule]:
    """Rules selecting the audience of a persisted workflow."""
    return trigger_rules(workflow.get("trigger_type"), workflow.get("trigger_condition"), now)


def validate_workflow(trigger_type: Optional[str], actions: Optional[List[Dict[str, Any]]]) -> List[str]:
    """Return human-readable problems with a workflow definition (empty if valid)."""
    issues = []
    if not trigger_type:
        issues.append("Trigger is not set")
    if not actions:
        issues.append("Add at least one action")

    for position, action in enumerate(actions or [], start=1):
        action_type = action.get("type") if isinstance(action, Mapping) else None
        config = (action.get("config") if isinstance(action, Mapping) else None) or {}

        if action_type not in WORKFLOW_ACTION_TYPES:
            issues.append(f"Action {position}: unknown action type '{action_type}'")
            continue

        if action_type == "send_email" and not config.get("template_id"):
            if not config.get("subject"):
                issues.append(f"Action {position} (send_email): Subject is required for custom emails")
            if not config.get("body"):
                issues.append(f"Action {position} (send_email): Body is required for custom emails")
        elif action_type == "wait":
            wait_days = parse_int(config.get("wait_days"))
            if wait_days is None or wait_days < 1:
                issues.append(f"Action {position} (wait): Wait duration must be at least 1")
        elif action_type == "add_tag" and not config.get("tag"):
            issues.append(f"Action {position} (add_tag): Tag name is required")
        elif action_type == "condition":
            condition_type = config.get("condition_type")
            if not condition_type:
                issues.append(f"Action {position} (condition): Condition type is required")
            elif condition_type == "has_tag" and not config.get("tag"):
                issues.append(f"Action {position} (condition): Tag is required")
            elif condition_type == "opp_value_gt" and not config.get("opp_value"):
                issues.append(f"Action {position} (condition): Value is required")
            elif condition_type == "contact_status" and not config.get("contact_status"):
                issues.append(f"Action {position} (condition): Status is required")

    return issues
