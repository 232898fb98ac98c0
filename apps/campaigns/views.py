# apps/campaigns/views.py
from django.db import DatabaseError
from django.db.models import Count
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
import logging

from apps.authentication.permissions import IsPlacementAdmin
from . import placement, stats
from .circuit_breaker import circuit_status
from .models import Campaign, FEED_TIERS, SLOT_LIMITS, TIER_SIZE
from .serializers import CampaignSerializer, ClicksByDayQuerySerializer, TrackClickSerializer
from .tracking import track_click

logger = logging.getLogger(__name__)

TIER_LABELS = {
    1: 'Top (first 12 groups)',
    2: 'Middle (next 12)',
    3: 'Bottom (next 12)',
}


# Public endpoints: no auth, never a 5xx because of the database

@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def placement_campaign(request):
    """Active campaign for a single CTA slot (?slot=navbar-cta|join-cta|filter-cta)"""
    campaign = placement.get_single_slot_campaign(request.query_params.get('slot', ''))
    return Response({'campaign': campaign, 'campaigns': []})


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def top_banner(request):
    return Response(placement.get_banner_campaigns('top-banner'))


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def feed_preview(request):
    return Response(placement.get_feed_preview())


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def feed_campaigns(request):
    """Feed ads for the groups or bots listing (?placement=groups|bots)"""
    return Response(placement.get_active_feed_campaigns(request.query_params.get('placement', '')))


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def slot_campaigns(request, slot):
    return Response(placement.get_active_campaigns(slot))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def track(request):
    """Record a click on a placed campaign. Fire-and-forget from the browser."""
    serializer = TrackClickSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({
            'ok': False,
            'message': 'campaign_id required',
            'errors': serializer.errors
        }, status=status.HTTP_400_BAD_REQUEST)

    ok = track_click(
        serializer.validated_data['campaign_id'],
        serializer.validated_data.get('placement')
    )
    return Response({'ok': ok})


# Admin

class CampaignViewSet(viewsets.ModelViewSet):
    permission_classes = [IsPlacementAdmin]
    serializer_class = CampaignSerializer

    def get_queryset(self):
        qs = Campaign.objects.select_related('advertiser')
        advertiser = self.request.query_params.get('advertiser')
        if advertiser and advertiser.isdigit():
            qs = qs.filter(advertiser_id=advertiser)
        slot = self.request.query_params.get('slot')
        if slot:
            qs = qs.in_slot(slot.strip().lower())
        return qs

    @action(detail=False, methods=['get'])
    def capacity(self, request):
        """Live campaigns vs. capacity per slot"""
        counts = dict(
            Campaign.objects.live().values('slot')
            .annotate(count=Count('id'))
            .values_list('slot', 'count')
        )
        return Response([{
            'slot': slot,
            'max': limit,
            'active': counts.get(slot, 0),
            'remaining': limit - counts.get(slot, 0),
        } for slot, limit in SLOT_LIMITS.items()])

    @action(detail=False, methods=['get'], url_path='feed-tiers')
    def feed_tiers(self, request):
        counts = dict(
            Campaign.objects.live().in_slot('feed')
            .filter(feed_tier__in=FEED_TIERS)
            .values('feed_tier')
            .annotate(count=Count('id'))
            .values_list('feed_tier', 'count')
        )
        return Response([{
            'tier': tier,
            'label': TIER_LABELS[tier],
            'max': TIER_SIZE,
            'active': counts.get(tier, 0),
            'remaining': TIER_SIZE - counts.get(tier, 0),
        } for tier in FEED_TIERS])


@api_view(['GET'])
@permission_classes([IsPlacementAdmin])
def global_clicks(request):
    """All-time, today, 24h, 7d and 30d click counts"""
    try:
        return Response(stats.global_click_stats())
    except DatabaseError as e:
        logger.error(f"Error getting global click stats: {str(e)}")
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsPlacementAdmin])
def slot_clicks(request):
    try:
        return Response(stats.slot_click_totals())
    except DatabaseError as e:
        logger.error(f"Error getting slot click totals: {str(e)}")
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsPlacementAdmin])
def feed_clicks(request):
    try:
        return Response(stats.feed_campaign_click_stats())
    except DatabaseError as e:
        logger.error(f"Error getting feed click stats: {str(e)}")
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsPlacementAdmin])
def advertiser_clicks(request):
    try:
        return Response(stats.clicks_by_advertiser())
    except DatabaseError as e:
        logger.error(f"Error getting advertiser click stats: {str(e)}")
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsPlacementAdmin])
def clicks_by_day(request):
    """Daily click series: ?days=7|30 or ?from=YYYY-MM-DD&to=YYYY-MM-DD"""
    query = ClicksByDayQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    params = query.validated_data

    try:
        series = stats.click_stats_by_day(
            days=params['days'],
            from_date=params.get('from_date'),
            to_date=params.get('to_date')
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except DatabaseError as e:
        logger.error(f"Error getting clicks by day: {str(e)}")
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response(series)


@api_view(['GET'])
@permission_classes([IsPlacementAdmin])
def placement_health(request):
    """Circuit breaker state of the public placement lookups"""
    circuits = [
        circuit_status(placement.get_single_slot_campaign),
        circuit_status(placement.get_banner_campaigns),
        circuit_status(placement.get_feed_preview),
        circuit_status(placement.get_active_campaigns),
        circuit_status(placement.get_active_feed_campaigns),
    ]
    return Response({
        'circuit_breakers': circuits,
        'overall_health': 'OK' if all(c['status'] == 'closed' for c in circuits) else 'DEGRADED',
        'checked_at': timezone.now(),
    })
