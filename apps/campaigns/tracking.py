# apps/campaigns/tracking.py
from django.db import DatabaseError, transaction
from django.db.models import F
import logging

from .models import Campaign, CampaignClick

logger = logging.getLogger(__name__)


def track_click(campaign_id, placement=None):
    """Count one click on a campaign and append a CampaignClick row.

    The counter is bumped with a single UPDATE ... SET clicks = clicks + 1 so
    concurrent clicks are never lost. Repeated calls are counted every time.
    Failures are logged and reported as False, never raised.
    """
    try:
        with transaction.atomic():
            updated = Campaign.objects.filter(pk=campaign_id).update(clicks=F('clicks') + 1)
            if not updated:
                logger.warning(f"Click for unknown campaign {campaign_id}")
                return False

            CampaignClick.objects.create(
                campaign_id=campaign_id,
                placement=(placement or '')[:50]
            )
        return True

    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid campaign id {campaign_id!r}: {e}")
        return False
    except DatabaseError as e:
        logger.error(f"Error recording click for campaign {campaign_id}: {str(e)}")
        return False
