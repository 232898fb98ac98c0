from rest_framework import serializers
from .models import (
    Campaign,
    SINGLE_CTA_SLOTS,
    SLOT_LIMITS,
    TIER_SIZE,
    FEED_TIERS,
    normalize_slot,
)


class CampaignSerializer(serializers.ModelSerializer):
    slot = serializers.CharField(max_length=30)
    advertiser_name = serializers.CharField(source='advertiser.name', read_only=True)

    class Meta:
        model = Campaign
        fields = (
            'id', 'advertiser', 'advertiser_name', 'name', 'slot',
            'position', 'feed_tier', 'tier_slot', 'feed_placement',
            'start_date', 'end_date', 'status', 'is_visible',
            'creative', 'video_url', 'destination_url', 'description',
            'button_text', 'badge_text', 'verified', 'category', 'country',
            'clicks', 'impressions', 'created_at', 'updated_at',
        )
        read_only_fields = ('clicks', 'impressions', 'created_at', 'updated_at')
        # Tier/slot uniqueness is checked in validate() against live campaigns only
        validators = []

    def validate_slot(self, value):
        slot = normalize_slot(value)
        if slot not in SLOT_LIMITS:
            raise serializers.ValidationError(f'Invalid slot: "{slot}"')
        return slot

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Campaign name is required.")
        return value

    def _current(self, attrs, field, default=None):
        if field in attrs:
            return attrs[field]
        if self.instance is not None:
            return getattr(self.instance, field)
        return default

    def validate(self, attrs):
        slot = self._current(attrs, 'slot')
        errors = {}

        if slot in SINGLE_CTA_SLOTS:
            # CTA slots are text + link only
            attrs['creative'] = ''
            if not (self._current(attrs, 'description') or '').strip():
                errors['description'] = 'CTA text is required for CTA slots.'
        elif not (self._current(attrs, 'creative') or '').strip():
            errors['creative'] = 'Creative image is required for this slot.'

        if slot == 'feed':
            tier = self._current(attrs, 'feed_tier')
            tier_slot = self._current(attrs, 'tier_slot')
            if tier not in FEED_TIERS or tier_slot is None or not 1 <= tier_slot <= TIER_SIZE:
                errors['feed_tier'] = f'Feed campaigns require Tier (1-3) and Slot (1-{TIER_SIZE}).'
            elif self._tier_pair_taken(tier, tier_slot):
                errors['tier_slot'] = f'Feed Tier {tier} Slot {tier_slot} is already taken.'
        else:
            attrs['feed_tier'] = None
            attrs['tier_slot'] = None
            if self.instance is None and self._slot_is_full(slot):
                errors['slot'] = (
                    f'Slot "{slot}" is full ({SLOT_LIMITS[slot]} max). '
                    'Pause or end an existing campaign first.'
                )

        start_date = self._current(attrs, 'start_date')
        end_date = self._current(attrs, 'end_date')
        if start_date and end_date and end_date < start_date:
            errors['end_date'] = 'end_date must not be before start_date.'

        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    def _others(self):
        qs = Campaign.objects.all()
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        return qs

    def _tier_pair_taken(self, tier, tier_slot):
        return self._others().live().filter(
            slot='feed', feed_tier=tier, tier_slot=tier_slot
        ).exists()

    def _slot_is_full(self, slot):
        return self._others().live().in_slot(slot).count() >= SLOT_LIMITS[slot]

    def _release_stale_tier_pair(self, validated_data):
        # A paused or expired campaign may still hold the pair
        tier = self._current(validated_data, 'feed_tier')
        tier_slot = self._current(validated_data, 'tier_slot')
        if tier and tier_slot:
            self._others().filter(
                slot='feed', feed_tier=tier, tier_slot=tier_slot
            ).update(feed_tier=None, tier_slot=None)

    def create(self, validated_data):
        self._release_stale_tier_pair(validated_data)
        return super().create(validated_data)

    def update(self, instance, validated_data):
        self._release_stale_tier_pair(validated_data)
        return super().update(instance, validated_data)


class TrackClickSerializer(serializers.Serializer):
    campaign_id = serializers.CharField(max_length=64)
    placement = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)


class ClicksByDayQuerySerializer(serializers.Serializer):
    days = serializers.ChoiceField(choices=[7, 30], required=False, default=30)
    from_date = serializers.DateField(required=False)
    to_date = serializers.DateField(required=False)

    def to_internal_value(self, data):
        # ?from=...&to=... on the query string
        data = {
            'days': data.get('days', 30),
            'from_date': data.get('from') or data.get('from_date'),
            'to_date': data.get('to') or data.get('to_date'),
        }
        data = {key: value for key, value in data.items() if value not in (None, '')}
        return super().to_internal_value(data)

    def validate(self, attrs):
        has_from = 'from_date' in attrs
        has_to = 'to_date' in attrs
        if has_from != has_to:
            raise serializers.ValidationError('Both from and to are required for a custom range.')
        if has_from and attrs['to_date'] < attrs['from_date']:
            raise serializers.ValidationError('from must not be after to.')
        return attrs
