"""
Operator Evaluator

Decides whether a resolved field value satisfies a rule's operator and
literal. The operator table below is the complete vocabulary; anything the
rule builder sends that is not valid for the field's type falls back to that
type's equality check rather than raising.
"""

import logging
import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Tuple

from .fields import ARRAY, BEHAVIOR, DATE, ENUM, NUMBER, TEXT

logger = logging.getLogger(__name__)

OPERATORS_BY_TYPE = {
    TEXT: ("equals", "not_equals", "contains", "starts_with", "ends_with"),
    ENUM: ("equals", "not_equals", "in"),
    ARRAY: ("contains", "not_contains"),
    DATE: ("before", "after", "within_days"),
    BEHAVIOR: ("has", "has_not"),
    NUMBER: ("equals", "greater_than", "less_than", "between"),
}

# Spellings used by older rule builders
OPERATOR_ALIASES = {
    "equal_to": "equals",
    "eq": "equals",
    "neq": "not_equals",
    "gt": "greater_than",
    "lt": "less_than",
}

BEHAVIOR_OPERATORS = OPERATORS_BY_TYPE[BEHAVIOR]

EARLIEST = datetime.min.replace(tzinfo=timezone.utc)

# Fractional seconds, as long as PostgREST sends them (trailing zeros dropped)
FRACTION_PATTERN = re.compile(r"\.(\d+)(?=(?:[+-]\d{2}:?\d{2})?$)")


def canonical_operator(operator: str) -> str:
    operator = (operator or "").strip().lower()
    return OPERATOR_ALIASES.get(operator, operator)


def operators_for(field_type: str) -> Tuple[str, ...]:
    return OPERATORS_BY_TYPE.get(field_type, ("equals",))


# =============================================================================
# VALUE PARSERS
# =============================================================================

def parse_number(value: Any) -> Optional[float]:
    """Parse a numeric operand. Returns None for anything non-numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp operand.

    Accepts datetime/date objects and ISO-8601 strings (a trailing "Z" is
    read as UTC). Naive values are taken to be UTC; date-only values are
    midnight UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text[-1] in "Zz":
            text = text[:-1] + "+00:00"
        # fromisoformat on 3.10 only takes exactly 3 or 6 fraction digits
        text = FRACTION_PATTERN.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_range(value: Any) -> Optional[Tuple[float, float]]:
    """Parse a "lo,hi" range for `between`. Bounds may be given in either order."""
    if not isinstance(value, str) or "," not in value:
        return None
    parts = value.split(",")
    if len(parts) != 2:
        return None
    low, high = parse_number(parts[0]), parse_number(parts[1])
    if low is None or high is None:
        return None
    return (low, high) if low <= high else (high, low)


def _split_literals(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _array_elements(value: Any) -> Optional[List[str]]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        return None
    return [e.lower() if isinstance(e, str) else str(e).lower() for e in value if e is not None]


def _enum_text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


# =============================================================================
# PER-TYPE SEMANTICS
# =============================================================================

def _text(left: str, operator: str, right: str) -> bool:
    right = right.lower()
    if operator == "equals":
        return left == right
    if operator == "not_equals":
        return left != right
    if operator == "contains":
        return right in left
    if operator == "starts_with":
        return left.startswith(right)
    if operator == "ends_with":
        return left.endswith(right)
    return left == right


def _enum(left: Any, operator: str, right: str) -> bool:
    left = _enum_text(left)
    if operator == "in":
        return left in _split_literals(right)
    if operator == "not_equals":
        return left != right
    return left == right


def _array(elements: Iterable[str], operator: str, right: str) -> bool:
    present = right.strip().lower() in set(elements)
    if operator == "not_contains":
        return not present
    return present


def _date(left: Any, operator: str, right: str, now: Optional[datetime]) -> bool:
    timestamp = parse_datetime(left)
    if timestamp is None:
        return False

    if operator == "within_days":
        days = parse_int(right)
        if days is None or days < 0:
            return False
        current = parse_datetime(now) if now is not None else datetime.now(timezone.utc)
        try:
            cutoff = current - timedelta(days=days)
        except OverflowError:
            cutoff = EARLIEST
        return timestamp >= cutoff

    boundary = parse_datetime(right)
    if boundary is None:
        return False
    if operator == "before":
        return timestamp < boundary
    if operator == "after":
        return timestamp > boundary
    return timestamp.astimezone(timezone.utc).date() == boundary.astimezone(timezone.utc).date()


def _behavior(left: Any, operator: str) -> bool:
    if not isinstance(left, bool):
        return False
    if operator == "has_not":
        return not left
    return left


def _number(left: Any, operator: str, right: str) -> bool:
    number = parse_number(left)
    if number is None:
        return False

    if operator == "between":
        bounds = parse_range(right)
        if bounds is None:
            return False
        return bounds[0] <= number <= bounds[1]

    operand = parse_number(right)
    if operand is None:
        return False
    if operator == "greater_than":
        return number > operand
    if operator == "less_than":
        return number < operand
    return number == operand


# =============================================================================
# ENTRY POINT
# =============================================================================

def matches(
    left: Any,
    operator: str,
    right: Any,
    field_type: str,
    now: Optional[datetime] = None,
) -> bool:
    """
    Evaluate one comparison.

    Args:
        left: Resolved field value (see fields.resolve)
        operator: Operator name, aliases accepted
        right: Rule literal
        field_type: Type of the field the value was read from
        now: Reference time for `within_days` (defaults to current UTC time)

    Returns:
        True if the value satisfies the operator. A missing value, an
        unparseable literal or an unknown type never matches.
    """
    if left is None:
        return False

    operator = canonical_operator(operator)
    right = "" if right is None else str(right)
    valid = operators_for(field_type)

    if operator not in valid:
        if field_type == TEXT and operator == "not_contains":
            # Saved smart list rules use not_contains as substring negation
            return right.lower() not in str(left).lower()
        if field_type == ARRAY and operator in OPERATORS_BY_TYPE[TEXT]:
            elements = _array_elements(left)
            if elements is None:
                return False
            return _text(",".join(elements), operator, right)
        logger.debug(f"Operator '{operator}' not valid for {field_type} field, using equals")
        operator = "equals"

    try:
        if field_type == TEXT:
            return _text(str(left).lower(), operator, right)
        if field_type == ENUM:
            return _enum(left, operator, right)
        if field_type == ARRAY:
            elements = _array_elements(left)
            return elements is not None and _array(elements, operator, right)
        if field_type == DATE:
            return _date(left, operator, right, now)
        if field_type == BEHAVIOR:
            return _behavior(left, operator)
        if field_type == NUMBER:
            return _number(left, operator, right)
    except (TypeError, ValueError, OverflowError) as e:
        logger.debug(f"Comparison failed ({field_type} {operator}): {e}")
        return False

    return False
