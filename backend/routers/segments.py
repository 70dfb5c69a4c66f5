"""
Email segment endpoints.
"""

import logging
import time

from fastapi import APIRouter

from schemas.segments import SegmentEstimateRequest
from backend_config import is_valid_uuid
from dependencies import get_async_supabase
from utils.audience import (
    call_store,
    invalid_user_response,
    load_audience_inputs,
    owned_or_404,
    segment_rules_payload,
)

from async_supabase import get_segment, update_segment_estimate
from segmentation import SEGMENT_FIELDS, classify, find_incomplete_rules, parse_rules

from analytics import track_segment_estimated

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/segments", tags=["Segments"])


@router.post("/estimate")
async def estimate_segment(request: SegmentEstimateRequest):
    """
    Live audience size for the rules currently in the segment builder.

    Rules with no value entered yet are skipped and reported back in
    `incomplete_rules` so the builder can flag them.
    """
    rules = parse_rules([rule.model_dump() for rule in request.rules])
    incomplete = find_incomplete_rules(rules, SEGMENT_FIELDS)

    if not is_valid_uuid(request.user_id):
        return {"count": 0, "total_contacts": 0, "incomplete_rules": incomplete, "error": "Invalid user_id"}

    start_time = time.time()
    contacts, metrics = await load_audience_inputs(
        get_async_supabase(), request.user_id, rules, SEGMENT_FIELDS
    )
    count = classify(contacts, rules, metrics, SEGMENT_FIELDS).count
    duration_ms = int((time.time() - start_time) * 1000)

    logger.info(f"Segment estimate for {request.user_id[:8]}: {count}/{len(contacts)} contacts, {len(rules)} rules")
    await track_segment_estimated(request.user_id, len(rules), len(contacts), count, duration_ms)

    return {
        "count": count,
        "total_contacts": len(contacts),
        "incomplete_rules": incomplete,
    }


@router.get("/{segment_id}/contacts")
async def get_segment_contacts(segment_id: str, user_id: str):
    """Contacts currently matching a saved segment."""
    if not is_valid_uuid(user_id):
        return invalid_user_response(segment_id=segment_id)

    client = get_async_supabase()
    segment = owned_or_404(await call_store(get_segment(client, segment_id)), user_id, "Segment")

    rules = parse_rules(segment_rules_payload(segment))
    contacts, metrics = await load_audience_inputs(client, user_id, rules, SEGMENT_FIELDS)
    result = classify(contacts, rules, metrics, SEGMENT_FIELDS)

    return {"segment_id": segment_id, "contacts": result.matched, "count": result.count}


@router.post("/{segment_id}/refresh")
async def refresh_segment_estimate(segment_id: str, user_id: str):
    """Recompute a saved segment's audience size and store it as `estimated_count`."""
    if not is_valid_uuid(user_id):
        return {"segment_id": segment_id, "estimated_count": 0, "error": "Invalid user_id"}

    client = get_async_supabase()
    segment = owned_or_404(await call_store(get_segment(client, segment_id)), user_id, "Segment")

    rules = parse_rules(segment_rules_payload(segment))
    contacts, metrics = await load_audience_inputs(client, user_id, rules, SEGMENT_FIELDS)
    count = classify(contacts, rules, metrics, SEGMENT_FIELDS).count

    await call_store(update_segment_estimate(client, segment_id, count))
    logger.info(f"Segment {segment_id} estimate refreshed: {count}")

    return {"segment_id": segment_id, "estimated_count": count}
