"""
Async Supabase client for the hosted entity store.
Uses aiohttp for requests to the Supabase REST API.

Contacts, campaign metrics, segments, smart lists and workflows live in
Supabase tables; this module only fetches and updates rows. All membership
logic lives in the segmentation package.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

import aiohttp

logger = logging.getLogger(__name__)

# PostgREST caps responses at 1000 rows by default
PAGE_SIZE = 1000
INSERT_BATCH_SIZE = 100


class SupabaseError(Exception):
    """Raised when Supabase answers with a non-2xx status."""

    def __init__(self, status: int, body: str):
        super().__init__(f"Supabase error ({status}): {body}")
        self.status = status
        self.body = body


class AsyncSupabaseClient:
    """Async client for Supabase REST API operations."""

    def __init__(self, url: str, anon_key: str):
        self.url = url
        self.anon_key = anon_key
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    def _get_headers(self) -> Dict[str, str]:
        return {
            'apikey': self.anon_key,
            'Authorization': f'Bearer {self.anon_key}',
            'Content-Type': 'application/json',
            'Prefer': 'return=representation'
        }

    async def request(
        self,
        endpoint: str,
        method: str = 'GET',
        body: Any = None,
    ) -> Optional[Any]:
        """Make an async request to Supabase REST API."""
        if not self.url or not self.anon_key:
            raise SupabaseError(500, "Supabase not configured")

        session = await self._get_session()
        url = f"{self.url}/rest/v1/{endpoint}"

        kwargs = {'headers': self._get_headers()}
        if body is not None:
            kwargs['data'] = json.dumps(body)

        async with session.request(method, url, **kwargs) as response:
            if not response.ok:
                error_text = await response.text()
                raise SupabaseError(response.status, error_text)

            text = await response.text()
            return json.loads(text) if text else None


async def _fetch_all(client: AsyncSupabaseClient, endpoint: str) -> List[Dict]:
    """Page through a select until a short page comes back."""
    rows: List[Dict] = []
    offset = 0
    while True:
        page = await client.request(f"{endpoint}&limit={PAGE_SIZE}&offset={offset}", 'GET') or []
        rows.extend(page)
        if len(page) < PAGE_SIZE:
            return rows
        offset += PAGE_SIZE


async def _fetch_one(client: AsyncSupabaseClient, endpoint: str) -> Optional[Dict]:
    result = await client.request(f"{endpoint}&limit=1", 'GET')
    return result[0] if result else None


# =============================================================================
# CONTACTS AND METRICS
# =============================================================================

async def get_contacts(client: AsyncSupabaseClient, user_id: str) -> List[Dict]:
    """Retrieve every contact owned by a user."""
    contacts = await _fetch_all(client, f"contacts?user_id=eq.{user_id}&select=*&order=created_at.asc")
    logger.info(f"Fetched {len(contacts)} contacts for user {user_id[:8]}")
    return contacts


async def get_campaign_metrics(
    client: AsyncSupabaseClient,
    user_id: str,
    campaign_id: Optional[str] = None
) -> List[Dict]:
    """
    Retrieve email campaign delivery metrics for a user.
    Optionally restricted to one campaign.
    """
    endpoint = (
        f"email_campaign_metrics?user_id=eq.{user_id}"
        f"&select=campaign_id,recipient_email,opened_at,clicked_at,bounced"
    )
    if campaign_id:
        endpoint += f"&campaign_id=eq.{campaign_id}"

    metrics = await _fetch_all(client, endpoint)
    logger.info(f"Fetched {len(metrics)} campaign metrics for user {user_id[:8]}")
    return metrics


# =============================================================================
# SEGMENTS, SMART LISTS, WORKFLOWS
# =============================================================================

async def get_segment(client: AsyncSupabaseClient, segment_id: str) -> Optional[Dict]:
    """Retrieve an email segment (its `criteria.rules` hold the rule set)."""
    return await _fetch_one(client, f"email_segments?id=eq.{segment_id}&select=*")


async def update_segment_estimate(
    client: AsyncSupabaseClient,
    segment_id: str,
    estimated_count: int
) -> Optional[Dict]:
    """Persist the latest audience size of a segment."""
    result = await client.request(
        f"email_segments?id=eq.{segment_id}",
        'PATCH',
        {'estimated_count': estimated_count}
    )
    return result[0] if result else None


async def get_smart_list(client: AsyncSupabaseClient, list_id: str) -> Optional[Dict]:
    """Retrieve a smart list (filter_type, rules, contact_ids)."""
    return await _fetch_one(client, f"smart_lists?id=eq.{list_id}&select=*")


async def get_workflow(client: AsyncSupabaseClient, workflow_id: str) -> Optional[Dict]:
    """Retrieve a workflow (trigger_type, trigger_condition, actions)."""
    return await _fetch_one(client, f"workflows?id=eq.{workflow_id}&select=*")


async def get_active_workflows(client: AsyncSupabaseClient) -> List[Dict]:
    """Retrieve every active workflow across users."""
    return await _fetch_all(client, "workflows?is_active=eq.true&select=*&order=created_at.asc")


# =============================================================================
# WORKFLOW EXECUTIONS
# =============================================================================

async def get_executed_contact_ids(client: AsyncSupabaseClient, workflow_id: str) -> Set[str]:
    """Contact ids that already have an execution for this workflow."""
    rows = await _fetch_all(
        client,
        f"workflow_executions?workflow_id=eq.{workflow_id}&select=contact_id"
    )
    return {str(r['contact_id']) for r in rows if r.get('contact_id') is not None}


async def record_workflow_executions(
    client: AsyncSupabaseClient,
    workflow: Dict,
    contacts: Iterable[Dict],
) -> Dict[str, int]:
    """
    Insert pending workflow executions in batches.

    A failed batch is logged and skipped; the remaining batches still run.
    """
    rows = [
        {
            'workflow_id': workflow['id'],
            'user_id': workflow.get('user_id'),
            'contact_id': contact['id'],
            'contact_email': contact.get('email'),
            'trigger_type': workflow.get('trigger_type'),
            'status': 'pending',
        }
        for contact in contacts
        if contact.get('id') is not None
    ]

    batches = [rows[i:i + INSERT_BATCH_SIZE] for i in range(0, len(rows), INSERT_BATCH_SIZE)]
    results = await asyncio.gather(
        *(client.request('workflow_executions', 'POST', batch) for batch in batches),
        return_exceptions=True
    )

    saved = 0
    for batch, result in zip(batches, results):
        if isinstance(result, Exception):
            logger.error(f"Error inserting workflow executions batch: {result}")
            continue
        saved += len(batch)

    return {'executions_saved': saved, 'executions_failed': len(rows) - saved}
