"""Tests for segmentation/classifier.py - Manual and automatic membership."""

import pytest

from segmentation.classifier import classify, count_matches
from segmentation.fields import SEGMENT_FIELDS, SMART_LIST_FIELDS
from segmentation.models import ListDefinition, Rule


def ids(result):
    return [r["id"] for r in result.matched]


class TestAutomatic:
    """Test rule-based classification."""

    def test_empty_rules_match_everything(self, contacts):
        assert ids(classify(contacts, [])) == ["c1", "c2", "c3"]
        assert ids(classify(contacts, {"filter_type": "automatic"})) == ["c1", "c2", "c3"]

    def test_count_equals_matched_length(self, contacts, metrics, now):
        definitions = [
            [],
            [Rule("status", "equals", "subscribed")],
            [Rule("opened_email", "has_not")],
            [Rule("tags", "contains", "vip"), Rule("company", "equals", "acme")],
        ]
        for definition in definitions:
            result = classify(contacts, definition, metrics, now=now)
            assert result.count == len(result.matched)
            assert count_matches(contacts, definition, metrics, now=now) == result.count

    def test_case_insensitive_text(self):
        """"Acme" and "ACME" both match a contains rule for "acme"."""
        records = [{"id": 1, "company": "Acme"}, {"id": 2, "company": "ACME"}]
        result = classify(records, [Rule("company", "contains", "acme")])
        assert result.count == 2

    def test_behavioral_join(self):
        """Only the record whose email opened a campaign has opened_email."""
        records = [{"id": 1, "email": "a@x.com"}, {"id": 2, "email": "b@x.com"}]
        metrics = [{"recipient_email": "a@x.com", "opened_at": "2024-05-01T00:00:00Z"}]
        assert ids(classify(records, [Rule("opened_email", "has")], metrics)) == [1]
        assert ids(classify(records, [Rule("opened_email", "has_not")], metrics)) == [2]

    def test_behavioral_join_normalizes_email(self, contacts, metrics):
        """Metric emails differ in case from contact emails."""
        result = classify(contacts, [Rule("clicked_link", "has")], metrics)
        assert ids(result) == ["c2"]

    def test_campaign_scoped_behavior(self, contacts, metrics):
        rules = [Rule("opened_email", "has", campaign_id="camp2")]
        assert ids(classify(contacts, rules, metrics)) == ["c2"]

    def test_no_metrics(self, contacts):
        """Without metrics nobody has opened and everyone has not."""
        assert classify(contacts, [Rule("opened_email", "has")]).count == 0
        assert classify(contacts, [Rule("opened_email", "has_not")]).count == 3

    def test_record_without_email_has_not_opened(self, metrics):
        records = [{"id": 1, "email": "a@x.com"}, {"id": 2}, {"id": 3, "email": None}]
        assert ids(classify(records, [Rule("opened_email", "has")], metrics)) == [1]
        assert ids(classify(records, [Rule("opened_email", "has_not")], metrics)) == [2, 3]

    def test_smart_list_not_contains_on_text(self, contacts):
        """Contacts whose company lacks the text, missing companies excluded."""
        result = classify(contacts, [Rule("company", "not_contains", "acm")], fields=SMART_LIST_FIELDS)
        assert ids(result) == ["c2"]

    def test_preserves_input_order(self, contacts):
        result = classify(list(reversed(contacts)), [Rule("status", "equals", "subscribed")])
        assert ids(result) == ["c3", "c1"]

    def test_smart_list_fields(self, contacts):
        """Smart lists type status as text, so matching ignores case."""
        result = classify(contacts, [Rule("status", "equals", "SUBSCRIBED")], fields=SMART_LIST_FIELDS)
        assert ids(result) == ["c1", "c3"]

    def test_date_rule_uses_one_reference_time(self, contacts, now):
        result = classify(contacts, [Rule("last_engaged", "within_days", "7")], now=now)
        assert ids(result) == ["c1"]

    def test_number_string_attribute(self, contacts):
        result = classify(contacts, [Rule("engagement_score", "less_than", "50")])
        assert ids(result) == ["c2"]

    def test_invalid_records_skipped(self, contacts):
        records = contacts + [None, "junk", 42]
        assert classify(records, []).count == 3


class TestManual:
    """Test explicit-id classification."""

    def test_manual_ignores_rules(self, contacts):
        definition = {
            "filter_type": "manual",
            "contact_ids": ["c2", "c3"],
            "rules": [{"field": "company", "operator": "equals", "value": "acme"}],
        }
        assert ids(classify(contacts, definition)) == ["c2", "c3"]

    def test_manual_ids_compared_as_strings(self):
        records = [{"id": 7}, {"id": 8}, {"email": "no-id@x.com"}]
        assert ids(classify(records, ListDefinition.manual([7]))) == [7]

    def test_manual_empty(self, contacts):
        assert classify(contacts, ListDefinition.manual([])).count == 0

    def test_unknown_ids_ignored(self, contacts):
        assert ids(classify(contacts, ListDefinition.manual(["c1", "ghost"]))) == ["c1"]


class TestDefinitionParsing:
    """Test tolerant parsing of persisted definitions."""

    @pytest.mark.parametrize("definition", [None, "automatic", 42])
    def test_malformed_definition_is_empty_rule_set(self, contacts, definition):
        assert classify(contacts, definition).count == 3

    def test_malformed_rule_matches_nothing(self, contacts):
        """A rule that is not a dict has no field and can never match."""
        assert classify(contacts, {"rules": ["bogus"]}).count == 0

    def test_rule_value_coerced_to_string(self, contacts):
        definition = {"rules": [{"field": "engagement_score", "operator": "greater_than", "value": 50}]}
        assert ids(classify(contacts, definition, fields=SEGMENT_FIELDS)) == ["c1"]

    def test_no_records(self):
        assert classify(None, []).count == 0
