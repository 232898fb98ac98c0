from celery import shared_task
from django.db import DatabaseError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
import logging

from .tiers import (
    TierAssignmentLocked,
    assign_feed_tiers,
    assign_sidebar_slots,
    feed_tier_lock,
)

logger = logging.getLogger(__name__)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=10),
    retry=retry_if_exception_type(DatabaseError),
    reraise=True,
)
def run_tier_assignment(include_sidebar=True, dry_run=False):
    result = {'feed': assign_feed_tiers(dry_run=dry_run)}
    if include_sidebar:
        result['sidebar'] = assign_sidebar_slots(dry_run=dry_run)
    return result


@shared_task
def assign_feed_tiers_task(include_sidebar=True):
    """Nightly feed re-ranking"""
    try:
        with feed_tier_lock():
            return run_tier_assignment(include_sidebar=include_sidebar)
    except TierAssignmentLocked:
        logger.warning("Skipping feed tier assignment: another run holds the lock")
        return {'skipped': True}
