"""
Behavioral Join Resolver

Behavioral fields ("opened an email", "clicked a link", "bounced") are not
stored on the contact. They are derived by projecting the campaign metrics
collection into a set of recipient emails once per pass, so each contact
check is a set lookup instead of a scan over every metric.
"""

from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional

from .fields import BEHAVIOR, FieldSpec, IndexKey, normalize_email
from .models import Rule

MetricPredicate = Callable[[Mapping[str, Any]], bool]


def _opened(metric: Mapping[str, Any]) -> bool:
    return bool(metric.get("opened_at"))


def _clicked(metric: Mapping[str, Any]) -> bool:
    return bool(metric.get("clicked_at"))


def _bounced(metric: Mapping[str, Any]) -> bool:
    return bool(metric.get("bounced"))


BEHAVIOR_PREDICATES: Dict[str, MetricPredicate] = {
    "opened_email": _opened,
    "clicked_link": _clicked,
    "bounced_email": _bounced,
}


def build_index(
    metrics: Optional[Iterable[Mapping[str, Any]]],
    predicate: MetricPredicate,
    campaign_id: Optional[str] = None,
) -> FrozenSet[str]:
    """
    Collect the recipient emails of every metric satisfying `predicate`.

    Args:
        metrics: Campaign metric rows (recipient_email, opened_at, clicked_at, bounced, campaign_id)
        predicate: Metric filter, see BEHAVIOR_PREDICATES
        campaign_id: If set, only metrics from this campaign are considered

    Returns:
        Frozen set of normalized recipient emails
    """
    emails = set()
    for metric in metrics or ():
        if not isinstance(metric, Mapping):
            continue
        if campaign_id is not None and str(metric.get("campaign_id")) != campaign_id:
            continue
        if not predicate(metric):
            continue
        email = normalize_email(metric.get("recipient_email"))
        if email:
            emails.add(email)
    return frozenset(emails)


def build_indexes(
    rules: Iterable[Rule],
    metrics: Optional[Iterable[Mapping[str, Any]]],
    fields: Mapping[str, FieldSpec],
) -> Dict[IndexKey, FrozenSet[str]]:
    """Build one index per distinct (behavioral field, campaign scope) referenced by `rules`."""
    wanted = set()
    for rule in rules:
        spec = fields.get(rule.field)
        if spec is None or spec.field_type != BEHAVIOR:
            continue
        if rule.field in BEHAVIOR_PREDICATES:
            wanted.add((rule.field, rule.campaign_id))

    if not wanted:
        return {}

    # Materialize once in case metrics is a one-shot iterator
    metrics = list(metrics or ())
    return {
        (name, campaign_id): build_index(metrics, BEHAVIOR_PREDICATES[name], campaign_id)
        for name, campaign_id in wanted
    }


def references_behavior(rules: Iterable[Rule], fields: Mapping[str, FieldSpec]) -> bool:
    """True if any rule needs campaign metrics to be evaluated."""
    return any(
        fields.get(rule.field) is not None and fields[rule.field].field_type == BEHAVIOR
        for rule in rules
    )
