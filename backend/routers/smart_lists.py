"""
Smart list endpoints.
"""

import logging

from fastapi import APIRouter

from schemas.smart_lists import SmartListPreviewRequest
from backend_config import is_valid_uuid
from dependencies import get_async_supabase
from utils.audience import call_store, invalid_user_response, load_audience_inputs, owned_or_404

from async_supabase import get_smart_list
from segmentation import SMART_LIST_FIELDS, ListDefinition, classify

from analytics import track_smart_list_resolved

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/smart-lists", tags=["Smart Lists"])


async def _resolve(user_id: str, definition: ListDefinition):
    client = get_async_supabase()
    contacts, metrics = await load_audience_inputs(client, user_id, definition.rules, SMART_LIST_FIELDS)
    return classify(contacts, definition, metrics, SMART_LIST_FIELDS)


@router.post("/preview")
async def preview_smart_list(request: SmartListPreviewRequest):
    """Members of an unsaved smart list, as edited in the list dialog."""
    if not is_valid_uuid(request.user_id):
        return invalid_user_response()

    definition = ListDefinition.from_dict({
        "filter_type": request.filter_type,
        "rules": [rule.model_dump() for rule in request.rules],
        "contact_ids": request.contact_ids,
    })
    result = await _resolve(request.user_id, definition)

    await track_smart_list_resolved(request.user_id, None, definition.filter_type, result.count)
    return {"contacts": result.matched, "count": result.count}


@router.get("/{list_id}/contacts")
async def get_smart_list_contacts(list_id: str, user_id: str):
    """Members of a saved smart list (manual or rule-based)."""
    if not is_valid_uuid(user_id):
        return invalid_user_response(list_id=list_id)

    smart_list = owned_or_404(
        await call_store(get_smart_list(get_async_supabase(), list_id)), user_id, "Smart list"
    )
    definition = ListDefinition.from_dict(smart_list)
    result = await _resolve(user_id, definition)

    logger.info(f"Smart list {list_id} ({definition.filter_type}): {result.count} contacts")
    await track_smart_list_resolved(user_id, list_id, definition.filter_type, result.count)

    return {"list_id": list_id, "filter_type": definition.filter_type, "contacts": result.matched, "count": result.count}
