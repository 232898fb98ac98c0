import strawberry
from typing import Optional


@strawberry.type
class SlotCampaignType:
    id: strawberry.ID
    destination_url: str
    description: str
    button_text: str


@strawberry.type
class BannerCampaignType:
    id: strawberry.ID
    creative: str
    destination_url: str
    slot: str


@strawberry.type
class FeedCreativeType:
    id: strawberry.ID
    name: str
    creative: str
    destination_url: str
    description: str
    button_text: str
    badge_text: str
    verified: bool
    video_url: Optional[str] = None


@strawberry.type
class FeedPreviewType:
    video: Optional[FeedCreativeType]
    image: Optional[FeedCreativeType]


@strawberry.type
class TrackClickResult:
    ok: bool
