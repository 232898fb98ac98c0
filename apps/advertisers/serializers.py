from rest_framework import serializers
from .models import Advertiser


class AdvertiserSerializer(serializers.ModelSerializer):
    campaign_count = serializers.SerializerMethodField()

    class Meta:
        model = Advertiser
        fields = (
            'id', 'name', 'email', 'company', 'notes', 'status',
            'campaign_count', 'created_at', 'updated_at',
        )
        read_only_fields = ('created_at', 'updated_at')

    def get_campaign_count(self, obj):
        # Annotated on list/retrieve, absent right after create
        return getattr(obj, 'campaign_count', 0)

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value
