import strawberry
from typing import List, Optional
from apps.campaigns import placement
from .types import BannerCampaignType, FeedCreativeType, FeedPreviewType, SlotCampaignType


def _feed_creative(data):
    return FeedCreativeType(**data) if data else None


@strawberry.type
class CampaignQueries:

    @strawberry.field
    def single_slot_campaign(self, slot: str) -> Optional[SlotCampaignType]:
        data = placement.get_single_slot_campaign(slot)
        return SlotCampaignType(**data) if data else None

    @strawberry.field
    def banner_campaigns(self, slot: str = 'top-banner') -> List[BannerCampaignType]:
        return [BannerCampaignType(**data) for data in placement.get_banner_campaigns(slot)]

    @strawberry.field
    def feed_preview(self) -> FeedPreviewType:
        data = placement.get_feed_preview()
        return FeedPreviewType(
            video=_feed_creative(data['video']),
            image=_feed_creative(data['image'])
        )
