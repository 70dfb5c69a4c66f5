"""
Rule Set Evaluator

A RuleSet is an AND-combination of rules. Evaluation stops at the first
failing rule. Malformed rules fail closed; a rule whose value has not been
entered yet is skipped so a half-written rule does not empty the audience.
"""

import logging
from datetime import datetime
from typing import Any, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from .fields import BEHAVIOR, SEGMENT_FIELDS, FieldSpec, IndexKey, resolve
from .models import Rule
from .operators import matches

logger = logging.getLogger(__name__)


def is_incomplete(rule: Rule, spec: FieldSpec) -> bool:
    """A non-behavioral rule with no value entered yet."""
    return spec.field_type != BEHAVIOR and not rule.value.strip()


def rule_matches(
    record: Mapping[str, Any],
    rule: Rule,
    fields: Mapping[str, FieldSpec] = SEGMENT_FIELDS,
    indexes: Optional[Mapping[IndexKey, FrozenSet[str]]] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Evaluate a single rule against a record. Never raises."""
    try:
        spec = fields.get(rule.field)
        if spec is None:
            return False
        if is_incomplete(rule, spec):
            return True

        value = resolve(record, spec, indexes, rule.campaign_id)
        return matches(value, rule.operator, rule.value, spec.field_type, now)
    except Exception as e:
        logger.debug(f"Rule {rule!r} failed to evaluate: {e}")
        return False


def evaluate(
    record: Mapping[str, Any],
    rules: Sequence[Rule],
    indexes: Optional[Mapping[IndexKey, FrozenSet[str]]] = None,
    fields: Mapping[str, FieldSpec] = SEGMENT_FIELDS,
    now: Optional[datetime] = None,
) -> bool:
    """
    Check a record against every rule (AND semantics).

    An empty rule list matches everything. Rules are checked in order and the
    first non-matching rule ends the evaluation.
    """
    return all(rule_matches(record, rule, fields, indexes, now) for rule in rules)


def find_incomplete_rules(
    rules: Iterable[Rule],
    fields: Mapping[str, FieldSpec] = SEGMENT_FIELDS,
) -> List[int]:
    """Indices of rules that are currently skipped because no value was entered."""
    incomplete = []
    for position, rule in enumerate(rules):
        spec = fields.get(rule.field)
        if spec is not None and is_incomplete(rule, spec):
            incomplete.append(position)
    return incomplete
