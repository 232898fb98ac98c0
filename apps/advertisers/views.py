from django.db.models import Count
from rest_framework import viewsets
from apps.authentication.permissions import IsPlacementAdmin
from .models import Advertiser
from .serializers import AdvertiserSerializer


class AdvertiserViewSet(viewsets.ModelViewSet):
    """Admin CRUD for advertisers. Deleting one also deletes its campaigns."""
    permission_classes = [IsPlacementAdmin]
    serializer_class = AdvertiserSerializer

    def get_queryset(self):
        return Advertiser.objects.annotate(campaign_count=Count('campaigns'))
