# apps/campaigns/tiers.py
"""Batch re-ranking of feed campaigns into performance tiers.

Feed layout: three tiers of four slots. Tier 1 holds the primary advertiser's
top four campaigns by clicks, tier 2 the secondary advertiser's top four, and
tier 3 the best four of everything else (including the two advertisers'
overflow). Candidates that do not make it into a tier are ended, never
deleted. The sidebar keeps the top two campaigns of each named advertiser.

Runs from the ``assign_feed_tiers`` management command and the nightly Celery
task; never on the request path.
"""
from contextlib import contextmanager
import logging

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError
from django.utils import timezone

from apps.advertisers.models import Advertiser
from .models import Campaign, FEED_TIERS, TIER_SIZE

logger = logging.getLogger(__name__)

SIDEBAR_PER_ADVERTISER = 2
LOCK_KEY = "campaigns:feed_tier_assignment"


class TierAssignmentError(Exception):
    pass


class TierAssignmentLocked(TierAssignmentError):
    pass


@contextmanager
def feed_tier_lock(timeout=None):
    """Only one tier assignment at a time across all workers."""
    timeout = timeout or settings.FEED_TIER_LOCK_TIMEOUT
    if not cache.add(LOCK_KEY, timezone.now().isoformat(), timeout):
        raise TierAssignmentLocked("Feed tier assignment is already running")
    try:
        yield
    finally:
        cache.delete(LOCK_KEY)


def by_clicks(campaigns):
    return sorted(campaigns, key=lambda c: (-(c.clicks or 0), c.pk))


def plan_feed_tiers(campaigns, primary_id, secondary_id, tier_size=TIER_SIZE):
    """Split feed campaigns into tiers 1-3 and the rest.

    Pure function over already-loaded campaigns; returns
    ``{'tiers': {1: [...], 2: [...], 3: [...]}, 'archive': [...]}``.
    """
    ranked = by_clicks(campaigns)
    primary = [c for c in ranked if c.advertiser_id == primary_id]
    secondary = [c for c in ranked if c.advertiser_id == secondary_id]
    others = [c for c in ranked if c.advertiser_id not in (primary_id, secondary_id)]

    tier1 = primary[:tier_size]
    tier2 = secondary[:tier_size]
    tier3 = by_clicks(primary[tier_size:] + secondary[tier_size:] + others)[:tier_size]

    selected = {c.pk for c in tier1 + tier2 + tier3}
    return {
        'tiers': {1: tier1, 2: tier2, 3: tier3},
        'archive': [c for c in ranked if c.pk not in selected],
    }


def plan_sidebar(campaigns, primary_id, secondary_id, per_advertiser=SIDEBAR_PER_ADVERTISER):
    ranked = by_clicks(campaigns)
    keep = (
        [c for c in ranked if c.advertiser_id == primary_id][:per_advertiser] +
        [c for c in ranked if c.advertiser_id == secondary_id][:per_advertiser]
    )
    kept = {c.pk for c in keep}
    return {
        'keep': keep,
        'archive': [c for c in ranked if c.pk not in kept],
    }


def resolve_tier_advertisers(primary=None, secondary=None):
    primary = primary or settings.FEED_TIER_PRIMARY_ADVERTISER
    secondary = secondary or settings.FEED_TIER_SECONDARY_ADVERTISER
    if primary == secondary:
        raise TierAssignmentError("Tier 1 and tier 2 advertisers must differ")

    ids = []
    for name in (primary, secondary):
        advertiser = Advertiser.objects.filter(name=name).order_by('id').first()
        if advertiser is None:
            raise TierAssignmentError(f"Advertiser '{name}' not found")
        ids.append(advertiser.pk)
    return ids[0], ids[1]


def _end_campaigns(campaigns, now):
    failures = 0
    for campaign in campaigns:
        try:
            Campaign.objects.filter(pk=campaign.pk).update(
                status=Campaign.STATUS_ENDED, updated_at=now
            )
        except DatabaseError as e:
            failures += 1
            logger.error(f"Could not end campaign {campaign.pk}: {str(e)}")
    return failures


def assign_feed_tiers(now=None, primary=None, secondary=None, dry_run=False):
    """Rank running feed campaigns by clicks and write tier/slot assignments.

    Idempotent: with unchanged clicks a second run produces the same tiers.
    A failed item is logged and counted; the rest of the batch still runs.
    """
    now = now or timezone.now()
    primary_id, secondary_id = resolve_tier_advertisers(primary, secondary)

    candidates = list(Campaign.objects.running(now).in_slot('feed'))
    plan = plan_feed_tiers(candidates, primary_id, secondary_id)

    result = {
        'tiers': {tier: [c.pk for c in plan['tiers'][tier]] for tier in FEED_TIERS},
        'archived': [c.pk for c in plan['archive']],
        'failures': 0,
        'dry_run': dry_run,
    }
    if dry_run:
        return result

    targets = {}
    for tier in FEED_TIERS:
        for index, campaign in enumerate(plan['tiers'][tier], start=1):
            targets[campaign.pk] = (tier, index)

    # Free every (tier, slot) pair that is about to change hands so the
    # unique feed tier/slot constraint holds after each single update.
    moving = [
        c.pk for c in candidates
        if c.pk in targets and (c.feed_tier, c.tier_slot) != targets[c.pk]
    ]
    (Campaign.objects.in_slot('feed')
        .filter(feed_tier__isnull=False)
        .exclude(pk__in=list(targets))
        .update(feed_tier=None, tier_slot=None, updated_at=now))
    Campaign.objects.filter(pk__in=moving).update(feed_tier=None, tier_slot=None)

    for pk, (tier, tier_slot) in targets.items():
        try:
            Campaign.objects.filter(pk=pk).update(
                feed_tier=tier, tier_slot=tier_slot, position=None, updated_at=now
            )
        except DatabaseError as e:
            result['failures'] += 1
            logger.error(f"Could not assign campaign {pk} to tier {tier} slot {tier_slot}: {str(e)}")

    result['failures'] += _end_campaigns(plan['archive'], now)

    logger.info(
        f"Feed tiers assigned: {len(targets)} placed, "
        f"{len(plan['archive'])} ended, {result['failures']} failures"
    )
    return result


def assign_sidebar_slots(now=None, primary=None, secondary=None, dry_run=False):
    """Keep the top two sidebar campaigns of each named advertiser, end the rest."""
    now = now or timezone.now()
    primary_id, secondary_id = resolve_tier_advertisers(primary, secondary)

    candidates = list(Campaign.objects.running(now).in_slot('sidebar-feed'))
    plan = plan_sidebar(candidates, primary_id, secondary_id)

    result = {
        'kept': [c.pk for c in plan['keep']],
        'archived': [c.pk for c in plan['archive']],
        'failures': 0,
        'dry_run': dry_run,
    }
    if not dry_run:
        result['failures'] = _end_campaigns(plan['archive'], now)
        logger.info(f"Sidebar: kept {len(plan['keep'])}, ended {len(plan['archive'])}")
    return result
