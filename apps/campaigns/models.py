from datetime import datetime, time

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator, RegexValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

# Slots with a fixed capacity of live campaigns
SLOT_LIMITS = {
    'top-banner': 2,
    'homepage-hero': 1,
    'feed': 12,  # 4 per tier
    'sidebar-feed': 4,
    'navbar-cta': 1,
    'join-cta': 1,
    'filter-cta': 1,
}

# Text + link only, never an image
SINGLE_CTA_SLOTS = ('navbar-cta', 'join-cta', 'filter-cta')

FEED_TIERS = (1, 2, 3)
TIER_SIZE = 4

# Grid positions in the groups/bots listing for each tier's four slots
FEED_TIER_POSITIONS = {
    1: [3, 6, 9, 12],
    2: [15, 18, 21, 24],
    3: [27, 30, 33, 36],
}

# One ad every five entries
FEED_DISPLAY_POSITIONS = [5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55, 60]


def start_of_day(now=None):
    now = timezone.localtime(now or timezone.now())
    return timezone.make_aware(
        datetime.combine(now.date(), time.min), timezone.get_current_timezone()
    )


def normalize_slot(value):
    return value.strip().lower() if isinstance(value, str) else ''


class CampaignQuerySet(models.QuerySet):
    def running(self, now=None):
        """Active and inside the eligibility window, visible or not.

        The end date is compared against the start of today so a campaign
        stays eligible for the whole of its last day.
        """
        now = now or timezone.now()
        return self.filter(
            status=Campaign.STATUS_ACTIVE,
            start_date__lte=now,
            end_date__gte=start_of_day(now),
        )

    def live(self, now=None):
        return self.running(now).filter(is_visible=True)

    def in_slot(self, slot):
        return self.filter(slot=slot)


class Campaign(models.Model):
    class Meta:
        app_label = 'campaigns'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['slot', 'feed_tier', 'tier_slot'],
                condition=Q(slot='feed', feed_tier__isnull=False, tier_slot__isnull=False),
                name='unique_feed_tier_slot'
            )
        ]
        indexes = [
            models.Index(fields=['slot', 'status', 'is_visible', 'start_date', 'end_date'], name='campaigns_c_slot_5d1f0e_idx'),
            models.Index(fields=['advertiser', 'slot'], name='campaigns_c_adverti_8c3b2a_idx'),
        ]

    STATUS_ACTIVE = 'active'
    STATUS_PAUSED = 'paused'
    STATUS_ENDED = 'ended'

    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_PAUSED, 'Paused'),
        (STATUS_ENDED, 'Ended'),
    ]

    SLOT_CHOICES = [(slot, slot) for slot in SLOT_LIMITS]

    FEED_PLACEMENT_CHOICES = [
        ('groups', 'Groups'),
        ('bots', 'Bots'),
        ('both', 'Both'),
    ]

    advertiser = models.ForeignKey(
        'advertisers.Advertiser', on_delete=models.CASCADE, related_name='campaigns'
    )
    name = models.CharField(max_length=200)
    slot = models.CharField(max_length=30, choices=SLOT_CHOICES)

    # Feed placement
    position = models.PositiveIntegerField(null=True, blank=True)
    feed_tier = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(3)]
    )
    tier_slot = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(TIER_SIZE)]
    )
    feed_placement = models.CharField(max_length=10, choices=FEED_PLACEMENT_CHOICES, default='both')

    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    is_visible = models.BooleanField(default=True)

    # Creative
    creative = models.CharField(max_length=500, blank=True, default='')
    video_url = models.CharField(max_length=500, blank=True, default='')
    destination_url = models.CharField(
        max_length=500,
        validators=[RegexValidator(r'^https?://', 'URL must start with http:// or https://')]
    )
    description = models.TextField(blank=True, default='')
    button_text = models.CharField(max_length=100, blank=True, default='Visit Site')
    badge_text = models.CharField(max_length=50, blank=True, default='')
    verified = models.BooleanField(default=False)
    category = models.CharField(max_length=100, blank=True, default='All')
    country = models.CharField(max_length=100, blank=True, default='All')

    clicks = models.PositiveIntegerField(default=0)
    impressions = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CampaignQuerySet.as_manager()

    def __str__(self):
        return f"{self.name} ({self.slot})"

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("end_date must not be before start_date")

    def is_live(self, now=None):
        now = now or timezone.now()
        return (
            self.status == self.STATUS_ACTIVE and
            self.is_visible and
            self.start_date <= now and
            self.end_date >= start_of_day(now)
        )


class CampaignClick(models.Model):
    """One click on a placed campaign. Rows are never updated."""

    class Meta:
        app_label = 'campaigns'
        indexes = [
            models.Index(fields=['clicked_at'], name='campaigns_c_clicked_2a7e4f_idx'),
            models.Index(fields=['campaign', 'clicked_at'], name='campaigns_c_campaig_9b1d6c_idx'),
        ]

    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name='click_events')
    clicked_at = models.DateTimeField(default=timezone.now)
    placement = models.CharField(max_length=50, blank=True, default='')
