"""Tests for segmentation/triggers.py - Workflow trigger translation and validation."""

from datetime import timedelta

import pytest

from segmentation.classifier import classify
from segmentation.fields import WORKFLOW_TRIGGER_FIELDS
from segmentation.models import Rule
from segmentation.triggers import (
    EVENT_TRIGGERS,
    condition_rules,
    trigger_rules,
    validate_workflow,
    workflow_rules,
)


def audience(contacts, rules, metrics=None, now=None):
    return [c["id"] for c in classify(contacts, rules, metrics, WORKFLOW_TRIGGER_FIELDS, now).matched]


class TestTriggerRules:
    """Test trigger-to-rule translation."""

    def test_lead_score(self, contacts):
        rules = trigger_rules("lead_score", {"operator": "greater_than", "value": 50})
        assert rules == [Rule("lead_score", "greater_than", "50")]
        assert audience(contacts, rules) == ["c1"]

    def test_deal_value_defaults_to_equals(self, contacts):
        rules = trigger_rules("deal_value", {"value": "200"})
        assert rules == [Rule("deal_value", "equals", "200")]
        assert audience(contacts, rules) == ["c2"]

    def test_lead_status_reads_status(self, contacts):
        rules = trigger_rules("lead_status", {"status": "unsubscribed"})
        assert audience(contacts, rules) == ["c2"]

    def test_lead_source_is_case_insensitive(self, contacts):
        rules = trigger_rules("lead_source", {"source": "WEBSITE"})
        assert audience(contacts, rules) == ["c1", "c3"]

    def test_tag_added(self, contacts):
        assert audience(contacts, trigger_rules("tag_added", {"tag": "vip"})) == ["c1"]

    @pytest.mark.parametrize("trigger_type", ["no_activity", "user_inactivity"])
    def test_inactivity(self, contacts, now, trigger_type):
        """Contacts idle for longer than `days` days."""
        rules = trigger_rules(trigger_type, {"days": 7}, now)
        assert rules[0].field == "last_activity"
        assert rules[0].operator == "before"
        assert rules[0].value == (now - timedelta(days=7)).isoformat()
        assert audience(contacts, rules, now=now) == ["c2"]

    def test_inactivity_without_days_is_incomplete(self, contacts, now):
        rules = trigger_rules("no_activity", {}, now)
        assert rules == [Rule("last_activity", "before", "")]
        assert audience(contacts, rules, now=now) == ["c1", "c2", "c3"]

    @pytest.mark.parametrize("days", ["soon", "2024-01-01", -3])
    def test_inactivity_with_invalid_days_matches_nothing(self, contacts, now, days):
        rules = trigger_rules("no_activity", {"days": days}, now)
        assert audience(contacts, rules, now=now) == []

    @pytest.mark.parametrize("days", ["1000000", 100000000000])
    def test_inactivity_beyond_calendar_range(self, contacts, now, days):
        """Nobody can be idle for longer than the calendar goes back."""
        rules = trigger_rules("no_activity", {"days": days}, now)
        assert rules == [Rule("last_activity", "before", "0001-01-01T00:00:00+00:00")]
        assert audience(contacts, rules, now=now) == []

    def test_email_opened_scoped_to_campaign(self, contacts, metrics):
        rules = trigger_rules("email_opened", {"campaign_id": "camp1"})
        assert rules == [Rule("opened_email", "has", campaign_id="camp1")]
        assert audience(contacts, rules, metrics) == ["c1"]

    def test_email_clicked_any_campaign(self, contacts, metrics):
        rules = trigger_rules("email_clicked", {})
        assert audience(contacts, rules, metrics) == ["c2"]

    @pytest.mark.parametrize("trigger_type", list(EVENT_TRIGGERS) + ["mystery", None])
    def test_event_and_unknown_triggers_have_no_rules(self, trigger_type):
        assert trigger_rules(trigger_type, {"value": "x"}) == []

    def test_malformed_condition(self):
        assert trigger_rules("tag_added", "newsletter") == [Rule("tags", "contains", "")]

    def test_workflow_rules(self, now):
        workflow = {"trigger_type": "lead_status", "trigger_condition": {"status": "won"}}
        assert workflow_rules(workflow, now) == [Rule("lead_status", "equals", "won")]


class TestConditionRules:
    """Test If/Then condition translation."""

    def test_has_tag(self, contacts):
        rules = condition_rules({"condition_type": "has_tag", "tag": "Newsletter"})
        assert audience(contacts, rules) == ["c1", "c2"]

    def test_contact_status(self):
        rules = condition_rules({"condition_type": "contact_status", "contact_status": "won"})
        assert rules == [Rule("lead_status", "equals", "won")]

    def test_opp_value_gt(self, contacts):
        rules = condition_rules({"condition_type": "opp_value_gt", "opp_value": "1000"})
        assert audience(contacts, rules) == ["c1"]

    def test_engagement_conditions(self, contacts, metrics):
        assert audience(contacts, condition_rules({"condition_type": "email_opened"}), metrics) == ["c1", "c2"]
        assert audience(contacts, condition_rules({"condition_type": "link_clicked"}), metrics) == ["c2"]

    def test_no_response_defaults_to_three_days(self, now):
        rules = condition_rules({"condition_type": "no_response"}, now)
        assert rules[0].value == (now - timedelta(days=3)).isoformat()

    def test_unknown_condition(self):
        assert condition_rules({"condition_type": "weather"}) == []
        assert condition_rules(None) == []


class TestValidateWorkflow:
    """Test workflow definition checks."""

    def test_valid(self):
        actions = [
            {"type": "send_email", "config": {"template_id": "t1"}},
            {"type": "wait", "config": {"wait_days": 2}},
            {"type": "add_tag", "config": {"tag": "warm"}},
        ]
        assert validate_workflow("lead_score", actions) == []

    def test_missing_trigger_and_actions(self):
        assert validate_workflow(None, []) == ["Trigger is not set", "Add at least one action"]

    def test_custom_email_needs_subject_and_body(self):
        issues = validate_workflow("tag_added", [{"type": "send_email", "config": {}}])
        assert issues == [
            "Action 1 (send_email): Subject is required for custom emails",
            "Action 1 (send_email): Body is required for custom emails",
        ]

    def test_wait_must_be_positive(self):
        issues = validate_workflow("tag_added", [{"type": "wait", "config": {"wait_days": 0}}])
        assert issues == ["Action 1 (wait): Wait duration must be at least 1"]

    def test_unknown_action_type(self):
        issues = validate_workflow("tag_added", [{"type": "assign_lead"}, {"type": "teleport"}])
        assert issues == ["Action 2: unknown action type 'teleport'"]

    def test_condition_requirements(self):
        actions = [
            {"type": "condition", "config": {}},
            {"type": "condition", "config": {"condition_type": "has_tag"}},
            {"type": "condition", "config": {"condition_type": "email_opened"}},
        ]
        assert validate_workflow("tag_added", actions) == [
            "Action 1 (condition): Condition type is required",
            "Action 2 (condition): Tag is required",
        ]
