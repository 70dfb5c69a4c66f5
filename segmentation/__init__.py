"""
Contact Segmentation Engine

Rule matching shared by the segment builder, smart lists and workflow
triggers. Pure functions over in-memory collections; fetching contacts and
campaign metrics is the caller's job.

Components:
- models: Data classes (Rule, ListDefinition, Classification)
- fields: Per-call-site field tables and the field accessor
- operators: Operator table and comparison semantics
- behavior: Behavioral indexes built from campaign metrics
- evaluator: AND evaluation of a rule set against one record
- classifier: Manual/automatic membership over a record collection
- triggers: Workflow trigger and condition translation into rules
"""

from .models import Rule, ListDefinition, Classification, parse_rules
from .fields import (
    FieldSpec,
    SEGMENT_FIELDS,
    SMART_LIST_FIELDS,
    WORKFLOW_TRIGGER_FIELDS,
    FIELD_TABLES,
    field_table,
    resolve,
)
from .operators import OPERATORS_BY_TYPE, OPERATOR_ALIASES, matches, operators_for
from .behavior import BEHAVIOR_PREDICATES, build_index, build_indexes, references_behavior
from .evaluator import evaluate, rule_matches, find_incomplete_rules
from .classifier import classify, count_matches
from .triggers import (
    WORKFLOW_ACTION_TYPES,
    trigger_rules,
    condition_rules,
    workflow_rules,
    validate_workflow,
)

__all__ = [
    # Models
    "Rule",
    "ListDefinition",
    "Classification",
    "parse_rules",
    # Fields
    "FieldSpec",
    "SEGMENT_FIELDS",
    "SMART_LIST_FIELDS",
    "WORKFLOW_TRIGGER_FIELDS",
    "FIELD_TABLES",
    "field_table",
    "resolve",
    # Operators
    "OPERATORS_BY_TYPE",
    "OPERATOR_ALIASES",
    "matches",
    "operators_for",
    # Behavior
    "BEHAVIOR_PREDICATES",
    "build_index",
    "build_indexes",
    "references_behavior",
    # Evaluation
    "evaluate",
    "rule_matches",
    "find_incomplete_rules",
    "classify",
    "count_matches",
    # Workflows
    "WORKFLOW_ACTION_TYPES",
    "trigger_rules",
    "condition_rules",
    "workflow_rules",
    "validate_workflow",
]
