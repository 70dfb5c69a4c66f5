"""
Workflow Trigger Worker

Runs periodically to:
1. Load every active workflow
2. Match each condition-based trigger against the owner's contacts
3. Record a pending execution for contacts not yet enrolled
4. Log errors but continue with the next workflow

Event triggers (sign-up, purchase, contact created) carry no conditions and
fire from the event itself, so they are skipped here.

Usage:
    python -m backend.workers.workflow_trigger

    Or run as a cron job with --once.
"""

import sys
import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

# Add repository root and backend/ to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent))

import aiohttp

from async_supabase import (
    AsyncSupabaseClient,
    SupabaseError,
    get_active_workflows,
    get_campaign_metrics,
    get_contacts,
    get_executed_contact_ids,
    record_workflow_executions,
)
from analytics import track_workflow_executions_created, shutdown_analytics
from backend_config import (
    SUPABASE_URL,
    SUPABASE_SERVICE_ROLE_KEY,
    WORKFLOW_TRIGGER_INTERVAL,
    LOG_LEVEL,
    LOG_FORMAT,
)
from segmentation import WORKFLOW_TRIGGER_FIELDS, classify, references_behavior, workflow_rules

logger = logging.getLogger(__name__)


class WorkflowTriggerWorker:
    """Worker that enrolls matching contacts into active workflows."""

    def __init__(self, client: Optional[AsyncSupabaseClient] = None):
        self.client = client or AsyncSupabaseClient(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
        self.running = False

    async def run_once(self, now: Optional[datetime] = None) -> dict:
        """Process every active workflow once."""
        stats = {"workflows": 0, "matched": 0, "executions_created": 0, "failed": 0}
        now = now or datetime.now(timezone.utc)

        workflows = await get_active_workflows(self.client)
        if not workflows:
            logger.debug("No active workflows found")
            return stats

        by_user: Dict[str, List[dict]] = defaultdict(list)
        for workflow in workflows:
            if workflow.get("user_id") and workflow.get("id"):
                by_user[str(workflow["user_id"])].append(workflow)

        logger.info(f"Found {len(workflows)} active workflows for {len(by_user)} users")

        for user_id, user_workflows in by_user.items():
            try:
                contacts = await get_contacts(self.client, user_id)
            except (SupabaseError, aiohttp.ClientError) as e:
                logger.error(f"Could not load contacts for user {user_id}: {e}")
                stats["failed"] += len(user_workflows)
                continue

            metrics = None
            for workflow in user_workflows:
                workflow_id = workflow["id"]

                try:
                    rules = workflow_rules(workflow, now)
                    if not rules:
                        continue
                    stats["workflows"] += 1

                    if metrics is None and references_behavior(rules, WORKFLOW_TRIGGER_FIELDS):
                        metrics = await get_campaign_metrics(self.client, user_id)

                    result = classify(contacts, rules, metrics, WORKFLOW_TRIGGER_FIELDS, now)
                    stats["matched"] += result.count

                    executed = await get_executed_contact_ids(self.client, workflow_id)
                    new_contacts = [c for c in result.matched if str(c.get("id")) not in executed]
                    if not new_contacts:
                        continue

                    saved = await record_workflow_executions(self.client, workflow, new_contacts)
                    stats["executions_created"] += saved["executions_saved"]

                    await track_workflow_executions_created(user_id, workflow_id, saved["executions_saved"])
                    logger.info(
                        f"Workflow {workflow_id} ({workflow.get('trigger_type')}): "
                        f"{saved['executions_saved']} new executions"
                    )

                except Exception:
                    stats["failed"] += 1
                    logger.exception(f"Unexpected error processing workflow {workflow_id}")

        return stats

    async def run_loop(self, interval_seconds: int = WORKFLOW_TRIGGER_INTERVAL):
        """Run the worker in a loop."""
        self.running = True
        logger.info(f"Starting workflow trigger worker (interval: {interval_seconds}s)")

        while self.running:
            try:
                stats = await self.run_once()
                if stats["workflows"] > 0:
                    logger.info(
                        f"Trigger batch complete: "
                        f"workflows={stats['workflows']}, "
                        f"matched={stats['matched']}, "
                        f"executions_created={stats['executions_created']}, "
                        f"failed={stats['failed']}"
                    )
            except Exception as e:
                logger.exception(f"Trigger loop error: {e}")

            # Sleep until next check
            for _ in range(interval_seconds):
                if not self.running:
                    break
                await asyncio.sleep(1)

        logger.info("Workflow trigger worker stopped")

    def stop(self):
        """Stop the worker loop."""
        self.running = False

    async def close(self):
        await self.client.close()


async def _run(args) -> None:
    worker = WorkflowTriggerWorker()
    try:
        if args.once:
            stats = await worker.run_once()
            logger.info(f"Results: {stats}")
        else:
            await worker.run_loop(interval_seconds=args.interval)
    finally:
        await shutdown_analytics()
        await worker.close()


def main():
    """Entry point for the workflow trigger worker."""
    import argparse

    parser = argparse.ArgumentParser(description="Workflow Trigger Worker")
    parser.add_argument(
        "--interval",
        type=int,
        default=WORKFLOW_TRIGGER_INTERVAL,
        help=f"Seconds between runs (default: {WORKFLOW_TRIGGER_INTERVAL})",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run once and exit (for testing or cron)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")


if __name__ == "__main__":
    main()
