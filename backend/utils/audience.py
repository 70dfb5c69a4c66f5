"""
Audience helper functions shared by the segment, smart list and workflow routers.
"""

import logging
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Sequence, Tuple

import aiohttp
from fastapi import HTTPException

from async_supabase import AsyncSupabaseClient, SupabaseError, get_contacts, get_campaign_metrics
from segmentation import FieldSpec, Rule, references_behavior

logger = logging.getLogger(__name__)


def invalid_user_response(**extra: Any) -> Dict[str, Any]:
    """Empty result returned for a malformed user_id so the UI still renders."""
    return {"contacts": [], "count": 0, **extra, "error": "Invalid user_id"}


async def call_store(awaitable: Awaitable[Any]) -> Any:
    """Await an entity store call, turning store failures into a 502."""
    try:
        return await awaitable
    except SupabaseError as e:
        logger.error(f"Entity store error: {e}")
        raise HTTPException(status_code=502, detail=f"Entity store error: {e.body[:200]}")
    except aiohttp.ClientError as e:
        logger.error(f"Entity store unreachable: {e}")
        raise HTTPException(status_code=502, detail="Entity store unreachable")


def owned_or_404(entity: Optional[Dict], user_id: str, kind: str) -> Dict:
    """Return the entity if it exists and belongs to the user."""
    if not entity:
        raise HTTPException(status_code=404, detail=f"{kind} not found")
    owner = entity.get("user_id")
    if owner is not None and str(owner) != user_id:
        raise HTTPException(status_code=404, detail=f"{kind} not found")
    return entity


async def load_audience_inputs(
    client: AsyncSupabaseClient,
    user_id: str,
    rules: Sequence[Rule],
    fields: Mapping[str, FieldSpec],
) -> Tuple[List[Dict], List[Dict]]:
    """
    Fetch the contacts to classify and, only if a behavioral rule needs them,
    the user's campaign metrics.
    """
    contacts = await call_store(get_contacts(client, user_id))

    metrics: List[Dict] = []
    if references_behavior(rules, fields):
        metrics = await call_store(get_campaign_metrics(client, user_id))

    return contacts, metrics


def segment_rules_payload(segment: Dict) -> Any:
    """Segments keep their rules under `criteria.rules`; older rows store `rules` directly."""
    criteria = segment.get("criteria")
    if isinstance(criteria, dict) and "rules" in criteria:
        return criteria.get("rules")
    return segment.get("rules")
