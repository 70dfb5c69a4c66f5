"""Shared pytest fixtures for segmentation testing."""

import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from async_supabase import SupabaseError


# =============================================================================
# Test Data Constants
# =============================================================================

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

USER_ID = "11111111-2222-3333-4444-555555555555"
OTHER_USER_ID = "99999999-8888-7777-6666-555555555555"


def days_ago(days: float) -> str:
    return (NOW - timedelta(days=days)).isoformat()


CONTACTS = [
    {
        "id": "c1",
        "user_id": USER_ID,
        "email": "a@x.com",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "status": "subscribed",
        "contact_type": "lead",
        "company": "ACME",
        "source": "website",
        "tags": ["VIP", "newsletter"],
        "last_engaged": days_ago(2),
        "subscribed_at": "2023-01-15T00:00:00Z",
        "engagement_score": 80,
        "lead_score": 90,
        "deal_value": 5000,
    },
    {
        "id": "c2",
        "user_id": USER_ID,
        "email": "b@x.com",
        "first_name": "Bob",
        "last_name": "Stone",
        "status": "unsubscribed",
        "contact_type": "customer",
        "company": "Globex",
        "source": "referral",
        "tags": ["newsletter"],
        "last_engaged": days_ago(30),
        "subscribed_at": "2024-03-01",
        "engagement_score": "45",
        "lead_score": 40,
        "deal_value": 200,
    },
    {
        "id": "c3",
        "user_id": USER_ID,
        "email": "c@x.com",
        "first_name": "Cy",
        "status": "subscribed",
        "contact_type": "lead",
        "source": "Website",
        "tags": [],
    },
]

METRICS = [
    {
        "campaign_id": "camp1",
        "recipient_email": "a@x.com",
        "opened_at": "2024-05-20T10:00:00Z",
        "clicked_at": None,
        "bounced": False,
    },
    {
        "campaign_id": "camp2",
        "recipient_email": "B@x.com",
        "opened_at": "2024-05-21T10:00:00Z",
        "clicked_at": "2024-05-21T10:05:00Z",
        "bounced": False,
    },
    {
        "campaign_id": "camp1",
        "recipient_email": "c@x.com",
        "opened_at": None,
        "clicked_at": None,
        "bounced": True,
    },
]


# =============================================================================
# In-memory entity store
# =============================================================================

class FakeSupabaseClient:
    """
    In-memory stand-in for AsyncSupabaseClient.

    Understands the subset of PostgREST used by the backend: `col=eq.value`
    filters, limit/offset, and POST/PATCH/DELETE on a table.
    """

    def __init__(self, tables: Optional[Dict[str, List[Dict]]] = None):
        self.tables = copy.deepcopy(tables or {})
        self.calls: List[tuple] = []
        self.failing_tables = set()

    async def request(self, endpoint: str, method: str = 'GET', body: Any = None) -> Any:
        self.calls.append((method, endpoint))
        table, _, query = endpoint.partition('?')

        if table in self.failing_tables:
            raise SupabaseError(503, f"{table} unavailable")

        filters, limit, offset = {}, None, 0
        for part in filter(None, query.split('&')):
            key, _, value = part.partition('=')
            if key == 'limit':
                limit = int(value)
            elif key == 'offset':
                offset = int(value)
            elif value.startswith('eq.'):
                filters[key] = value[3:]

        rows = self.tables.setdefault(table, [])
        matching = [
            r for r in rows
            if all(str(r.get(k)).lower() == v.lower() for k, v in filters.items())
        ]

        if method == 'GET':
            matching = matching[offset:]
            return matching[:limit] if limit is not None else matching
        if method == 'POST':
            new_rows = body if isinstance(body, list) else [body]
            rows.extend(copy.deepcopy(new_rows))
            return new_rows
        if method == 'PATCH':
            for row in matching:
                row.update(body)
            return matching
        if method == 'DELETE':
            self.tables[table] = [r for r in rows if r not in matching]
            return None
        raise ValueError(f"Unsupported method {method}")

    async def close(self):
        pass

    def requested_tables(self) -> List[str]:
        return [endpoint.partition('?')[0] for _, endpoint in self.calls]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def contacts() -> List[Dict]:
    return copy.deepcopy(CONTACTS)


@pytest.fixture
def metrics() -> List[Dict]:
    return copy.deepcopy(METRICS)


@pytest.fixture
def store(contacts, metrics) -> FakeSupabaseClient:
    """Entity store seeded with contacts, metrics, one list/segment/workflow of each kind."""
    return FakeSupabaseClient({
        "contacts": contacts,
        "email_campaign_metrics": [{**m, "user_id": USER_ID} for m in metrics],
        "email_segments": [
            {
                "id": "seg1",
                "user_id": USER_ID,
                "name": "Engaged subscribers",
                "criteria": {"rules": [
                    {"field": "status", "operator": "equals", "value": "subscribed"},
                    {"field": "opened_email", "operator": "has", "value": ""},
                ]},
                "estimated_count": 0,
            },
        ],
        "smart_lists": [
            {
                "id": "list-manual",
                "user_id": USER_ID,
                "name": "Hand picked",
                "filter_type": "manual",
                "contact_ids": ["c2"],
                "rules": [{"field": "company", "operator": "equals", "value": "acme"}],
            },
            {
                "id": "list-auto",
                "user_id": USER_ID,
                "name": "Leads",
                "filter_type": "automatic",
                "rules": [{"field": "contact_type", "operator": "equals", "value": "LEAD"}],
            },
        ],
        "workflows": [
            {
                "id": "wf-score",
                "user_id": USER_ID,
                "name": "Hot leads",
                "is_active": True,
                "trigger_type": "lead_score",
                "trigger_condition": {"operator": "greater_than", "value": "50"},
                "actions": [{"type": "assign_lead", "config": {}, "order": 0}],
            },
            {
                "id": "wf-tag",
                "user_id": USER_ID,
                "name": "Newsletter welcome",
                "is_active": True,
                "trigger_type": "tag_added",
                "trigger_condition": {"tag": "newsletter"},
                "actions": [{"type": "send_email", "config": {"template_id": "t1"}, "order": 0}],
            },
            {
                "id": "wf-signup",
                "user_id": USER_ID,
                "name": "Sign-up",
                "is_active": True,
                "trigger_type": "user_signup",
                "trigger_condition": {},
                "actions": [],
            },
            {
                "id": "wf-off",
                "user_id": USER_ID,
                "name": "Disabled",
                "is_active": False,
                "trigger_type": "tag_added",
                "trigger_condition": {"tag": "vip"},
                "actions": [],
            },
        ],
        "workflow_executions": [],
    })
