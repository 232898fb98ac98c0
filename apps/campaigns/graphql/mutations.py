import strawberry
from typing import Optional
from apps.campaigns import tracking
from .types import TrackClickResult


@strawberry.type
class CampaignMutations:

    @strawberry.mutation
    def track_click(self, campaign_id: strawberry.ID, placement: Optional[str] = None) -> TrackClickResult:
        return TrackClickResult(ok=tracking.track_click(campaign_id, placement))
