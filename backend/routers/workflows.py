"""
Workflow trigger endpoints.
"""

import logging

from fastapi import APIRouter

from schemas.workflows import WorkflowPreviewRequest
from backend_config import is_valid_uuid
from dependencies import get_async_supabase
from utils.audience import call_store, invalid_user_response, load_audience_inputs, owned_or_404

from async_supabase import get_workflow
from segmentation import WORKFLOW_TRIGGER_FIELDS, classify, trigger_rules, validate_workflow, workflow_rules

from analytics import track_workflow_audience_matched

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["Workflows"])


@router.post("/preview")
async def preview_workflow(request: WorkflowPreviewRequest):
    """
    How many contacts a workflow trigger would currently select, plus any
    problems with the workflow definition.
    """
    rules = trigger_rules(request.trigger_type, request.trigger_condition)
    issues = validate_workflow(request.trigger_type, [a.model_dump() for a in request.actions])

    if not is_valid_uuid(request.user_id):
        return invalid_user_response(rules=[r.to_dict() for r in rules], issues=issues)

    contacts, metrics = await load_audience_inputs(
        get_async_supabase(), request.user_id, rules, WORKFLOW_TRIGGER_FIELDS
    )
    result = classify(contacts, rules, metrics, WORKFLOW_TRIGGER_FIELDS)

    await track_workflow_audience_matched(request.user_id, None, request.trigger_type, result.count)
    return {
        "count": result.count,
        "rules": [r.to_dict() for r in rules],
        "issues": issues,
    }


@router.get("/{workflow_id}/audience")
async def get_workflow_audience(workflow_id: str, user_id: str):
    """Contacts currently matching a saved workflow's trigger."""
    if not is_valid_uuid(user_id):
        return invalid_user_response(workflow_id=workflow_id)

    client = get_async_supabase()
    workflow = owned_or_404(await call_store(get_workflow(client, workflow_id)), user_id, "Workflow")

    rules = workflow_rules(workflow)
    contacts, metrics = await load_audience_inputs(client, user_id, rules, WORKFLOW_TRIGGER_FIELDS)
    result = classify(contacts, rules, metrics, WORKFLOW_TRIGGER_FIELDS)

    logger.info(f"Workflow {workflow_id} ({workflow.get('trigger_type')}): {result.count} contacts")
    await track_workflow_audience_matched(user_id, workflow_id, workflow.get("trigger_type"), result.count)

    return {"workflow_id": workflow_id, "contacts": result.matched, "count": result.count}
