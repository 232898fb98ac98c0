# apps/campaigns/placement.py
"""Which campaign renders in which slot right now.

Every lookup goes through a circuit breaker: a database failure is logged and
the caller gets the "no campaign" result, so a broken ad query never breaks
the page around it.
"""
from .circuit_breaker import CircuitBreaker
from .models import (
    Campaign,
    FEED_DISPLAY_POSITIONS,
    FEED_TIER_POSITIONS,
    SINGLE_CTA_SLOTS,
    SLOT_LIMITS,
    TIER_SIZE,
    normalize_slot,
)

BANNER_SLOTS = ('top-banner',)
BANNER_ROTATION_SIZE = 2
FEED_PLACEMENTS = ('groups', 'bots')
UNPOSITIONED = 999

DEFAULT_BUTTON_TEXT = 'Visit Site'


def _feed_creative(campaign, with_video=False):
    data = {
        'id': str(campaign.pk),
        'name': campaign.name,
        'creative': campaign.creative or '',
        'destination_url': campaign.destination_url,
        'description': campaign.description or '',
        'button_text': campaign.button_text or DEFAULT_BUTTON_TEXT,
        'badge_text': campaign.badge_text or '',
        'verified': bool(campaign.verified),
    }
    if with_video:
        data['video_url'] = campaign.video_url or ''
    return data


@CircuitBreaker(fallback=None)
def get_single_slot_campaign(slot, now=None):
    """Newest live campaign for a text-only CTA slot, or None."""
    slot = normalize_slot(slot)
    if slot not in SINGLE_CTA_SLOTS:
        return None

    campaign = (
        Campaign.objects.live(now)
        .in_slot(slot)
        .only('id', 'destination_url', 'description', 'button_text')
        .order_by('-created_at', '-id')
        .first()
    )
    if campaign is None:
        return None

    return {
        'id': str(campaign.pk),
        'destination_url': campaign.destination_url or '',
        'description': campaign.description or '',
        'button_text': campaign.button_text or '',
    }


@CircuitBreaker(fallback=[])
def get_banner_campaigns(slot='top-banner', now=None):
    """Up to two live banner campaigns, newest first, for client-side rotation."""
    slot = normalize_slot(slot)
    if slot not in BANNER_SLOTS:
        return []

    campaigns = (
        Campaign.objects.live(now)
        .in_slot(slot)
        .only('id', 'creative', 'destination_url', 'slot')
        .order_by('-created_at', '-id')[:BANNER_ROTATION_SIZE]
    )
    return [{
        'id': str(c.pk),
        'creative': c.creative or '',
        'destination_url': c.destination_url or '',
        'slot': c.slot,
    } for c in campaigns]


@CircuitBreaker(fallback={'video': None, 'image': None})
def get_feed_preview(now=None):
    """One video creative and one image creative from the live feed campaigns."""
    video = None
    image = None

    for campaign in Campaign.objects.live(now).in_slot('feed').order_by('-created_at', '-id'):
        if campaign.video_url:
            if video is None:
                video = campaign
        elif campaign.creative and image is None:
            image = campaign
        if video is not None and image is not None:
            break

    return {
        'video': _feed_creative(video, with_video=True) if video else None,
        'image': _feed_creative(image) if image else None,
    }


@CircuitBreaker(fallback=[])
def get_active_campaigns(slot, now=None):
    """Live campaigns for any known slot, capped at the slot's capacity."""
    slot = normalize_slot(slot)
    limit = SLOT_LIMITS.get(slot)
    if limit is None:
        return []

    campaigns = Campaign.objects.live(now).in_slot(slot).order_by('-created_at', '-id')[:limit]
    return [{
        'id': str(c.pk),
        'creative': c.creative or '',
        'destination_url': c.destination_url or '',
        'slot': c.slot,
        'description': c.description or '',
        'button_text': c.button_text or '',
    } for c in campaigns]


def feed_sort_position(campaign):
    """Grid position of a feed campaign: its tier slot, else its stored position."""
    positions = FEED_TIER_POSITIONS.get(campaign.feed_tier)
    if positions and campaign.tier_slot and 1 <= campaign.tier_slot <= TIER_SIZE:
        return positions[campaign.tier_slot - 1]
    if campaign.position is not None:
        return campaign.position
    return UNPOSITIONED


@CircuitBreaker(fallback=[])
def get_active_feed_campaigns(placement, now=None):
    """Live feed ads for the groups or bots listing, in display order.

    Only campaigns that hold a tier slot or an explicit position are shown,
    and at most one ad per display position.
    """
    placement = normalize_slot(placement)
    if placement not in FEED_PLACEMENTS:
        return []

    campaigns = [
        c for c in Campaign.objects.live(now).in_slot('feed').filter(
            feed_placement__in=[placement, 'both']
        )
        if (c.feed_tier and c.tier_slot) or (c.position is not None and c.position >= 1)
    ]
    campaigns.sort(key=lambda c: (feed_sort_position(c), c.pk))

    return [{
        'id': str(c.pk),
        'name': c.name,
        'creative': c.creative,
        'destination_url': c.destination_url,
        'slot': c.slot,
        'position': FEED_DISPLAY_POSITIONS[i],
        'description': c.description or '',
        'category': c.category or 'All',
        'country': c.country or 'All',
        'button_text': c.button_text or DEFAULT_BUTTON_TEXT,
    } for i, c in enumerate(campaigns[:len(FEED_DISPLAY_POSITIONS)])]
