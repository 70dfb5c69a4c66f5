"""
Segmentation Analytics Module
Server-side Amplitude integration for tracking audience events
"""

import time
import asyncio
import logging
from typing import Optional, Dict, Any, List, Set

import aiohttp

from backend_config import AMPLITUDE_API_KEY

logger = logging.getLogger(__name__)

AMPLITUDE_ENDPOINT = 'https://api2.amplitude.com/2/httpapi'
FLUSH_INTERVAL_SECONDS = 30
FLUSH_BATCH_SIZE = 10

# Event queue for batching
_event_queue: List[Dict] = []
_queue_lock = asyncio.Lock()
_flush_task: Optional[asyncio.Task] = None

# Size-triggered flushes that have not finished yet
_pending_flushes: Set[asyncio.Task] = set()


def _should_retry(status: int) -> bool:
    """Rate limits and server errors are retried; other rejections are dropped."""
    return status == 429 or status >= 500


async def _requeue(events: List[Dict]):
    global _event_queue
    async with _queue_lock:
        _event_queue = events + _event_queue


async def _flush_events():
    """Flush queued events to Amplitude."""
    global _event_queue

    async with _queue_lock:
        if not _event_queue:
            return
        events_to_send = _event_queue.copy()
        _event_queue = []

    if not AMPLITUDE_API_KEY:
        logger.debug(f"No API key - would send {len(events_to_send)} events")
        return

    payload = {
        'api_key': AMPLITUDE_API_KEY,
        'events': events_to_send
    }

    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(
                AMPLITUDE_ENDPOINT,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=10)
            ) as response:
                if response.status == 200:
                    logger.info(f"Flushed {len(events_to_send)} events")
                    return
                text = await response.text()
                logger.warning(f"Amplitude error {response.status}: {text[:200]}")
                retry = _should_retry(response.status)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning(f"Analytics flush failed: {e}")
        retry = True

    if retry:
        await _requeue(events_to_send)
    else:
        logger.warning(f"Dropped {len(events_to_send)} events rejected by Amplitude")


async def _flush_loop():
    """Background task to flush events periodically."""
    while True:
        await asyncio.sleep(FLUSH_INTERVAL_SECONDS)
        await _flush_events()


def init_analytics():
    """Initialize analytics module. Call on app startup."""
    global _flush_task
    if _flush_task is None:
        try:
            loop = asyncio.get_event_loop()
            _flush_task = loop.create_task(_flush_loop())
            logger.info("Analytics background flush task started")
        except RuntimeError:
            logger.warning("No event loop - analytics flush task not started")


async def track_event(
    event_name: str,
    user_id: str,
    properties: Optional[Dict[str, Any]] = None,
):
    """
    Track an event asynchronously.

    Args:
        event_name: Name of the event
        user_id: Owner of the contacts (UUID)
        properties: Event-specific properties
    """
    event = {
        'user_id': str(user_id),
        'event_type': event_name,
        'time': int(time.time() * 1000),
        'event_properties': {
            **(properties or {}),
            'source': 'backend'
        },
        'platform': 'Backend'
    }

    async with _queue_lock:
        _event_queue.append(event)
        queued = len(_event_queue)

    logger.debug(f"Queued: {event_name} for {str(user_id)[:8]}...")

    # Immediate flush if queue is large
    if queued >= FLUSH_BATCH_SIZE:
        task = asyncio.create_task(_flush_events())
        _pending_flushes.add(task)
        task.add_done_callback(_pending_flushes.discard)


# =============================================================================
# PREDEFINED EVENT TRACKING FUNCTIONS
# =============================================================================

async def track_segment_estimated(
    user_id: str,
    rule_count: int,
    total_contacts: int,
    matched: int,
    duration_ms: int
):
    """Track a live audience size estimate."""
    await track_event(
        'segment_estimated',
        user_id,
        {
            'rule_count': rule_count,
            'total_contacts': total_contacts,
            'matched': matched,
            'match_rate': round(matched / max(total_contacts, 1), 3),
            'duration_ms': duration_ms
        }
    )


async def track_smart_list_resolved(
    user_id: str,
    list_id: Optional[str],
    filter_type: str,
    matched: int
):
    """Track when a smart list's members are resolved."""
    await track_event(
        'smart_list_resolved',
        user_id,
        {
            'list_id': list_id,
            'filter_type': filter_type,
            'matched': matched
        }
    )


async def track_workflow_audience_matched(
    user_id: str,
    workflow_id: Optional[str],
    trigger_type: Optional[str],
    matched: int
):
    """Track when a workflow trigger is matched against contacts."""
    await track_event(
        'workflow_audience_matched',
        user_id,
        {
            'workflow_id': workflow_id,
            'trigger_type': trigger_type,
            'matched': matched
        }
    )


async def track_workflow_executions_created(
    user_id: str,
    workflow_id: str,
    executions: int
):
    """Track pending executions recorded by the trigger worker."""
    await track_event(
        'workflow_executions_created',
        user_id,
        {
            'workflow_id': workflow_id,
            'executions': executions
        }
    )


# Ensure events are flushed on shutdown
async def shutdown_analytics():
    """Flush remaining events before shutdown."""
    global _flush_task
    if _flush_task is not None:
        _flush_task.cancel()
        _flush_task = None
    if _pending_flushes:
        await asyncio.gather(*_pending_flushes, return_exceptions=True)
    await _flush_events()
    logger.info("Analytics shutdown complete")
