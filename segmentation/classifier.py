"""
Membership Classifier

Applies a segment, smart list or workflow definition to a contact
collection. Manual definitions select by explicit id; automatic definitions
run the rule set after building any behavioral indexes it needs. Each call is
a full recompute over its inputs.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from .behavior import build_indexes
from .evaluator import evaluate
from .fields import SEGMENT_FIELDS, FieldSpec
from .models import Classification, ListDefinition

logger = logging.getLogger(__name__)


def classify(
    records: Optional[Iterable[Any]],
    definition: Any,
    metrics: Optional[Iterable[Mapping[str, Any]]] = None,
    fields: Mapping[str, FieldSpec] = SEGMENT_FIELDS,
    now: Optional[datetime] = None,
) -> Classification:
    """
    Classify records against a membership definition.

    Args:
        records: Contact dicts (anything that is not a mapping is skipped)
        definition: ListDefinition, persisted `{filter_type, rules, contact_ids}`
                    dict, or a bare list of rules (automatic)
        metrics: Campaign metric rows, only needed for behavioral rules
        fields: Field table of the calling site
        now: Reference time shared by every record in this pass

    Returns:
        Classification with the matched records in input order
    """
    definition = ListDefinition.from_dict(definition)
    records = [r for r in (records or ()) if isinstance(r, Mapping)]

    if definition.is_manual:
        matched = [
            r for r in records
            if r.get("id") is not None and str(r["id"]) in definition.contact_ids
        ]
        logger.debug(f"Manual list matched {len(matched)}/{len(records)} records")
        return Classification(matched=matched)

    rules = definition.rules
    if not rules:
        return Classification(matched=list(records))

    now = now or datetime.now(timezone.utc)
    indexes = build_indexes(rules, metrics, fields)
    matched = [r for r in records if evaluate(r, rules, indexes, fields, now)]

    logger.debug(f"{len(rules)} rules matched {len(matched)}/{len(records)} records")
    return Classification(matched=matched)


def count_matches(
    records: Optional[Iterable[Any]],
    definition: Any,
    metrics: Optional[Iterable[Mapping[str, Any]]] = None,
    fields: Mapping[str, FieldSpec] = SEGMENT_FIELDS,
    now: Optional[datetime] = None,
) -> int:
    """Estimated audience size: the count projection of classify()."""
    return classify(records, definition, metrics, fields, now).count
