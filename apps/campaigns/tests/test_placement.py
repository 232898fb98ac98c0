from datetime import timedelta
from unittest import mock

from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone
from django_redis.exceptions import ConnectionInterrupted
from rest_framework.test import APITestCase

from apps.campaigns import placement
from apps.campaigns.circuit_breaker import circuit_status
from apps.campaigns.models import Campaign, start_of_day
from .helpers import make_advertiser, make_campaign


class SingleSlotCampaignTest(TestCase):
    def setUp(self):
        cache.clear()
        self.advertiser = make_advertiser()
        self.now = timezone.now()

    def test_active_campaign_wins_over_ended(self):
        """Only the active campaign is placed in a CTA slot"""
        active = make_campaign(
            self.advertiser, 'navbar-cta', creative='',
            description='Join now', button_text='Go',
            destination_url='https://a.example.com'
        )
        make_campaign(
            self.advertiser, 'navbar-cta', creative='',
            description='Old offer', status=Campaign.STATUS_ENDED,
            destination_url='https://b.example.com'
        )

        result = placement.get_single_slot_campaign('navbar-cta', now=self.now)

        self.assertEqual(result, {
            'id': str(active.pk),
            'destination_url': 'https://a.example.com',
            'description': 'Join now',
            'button_text': 'Go',
        })

    def test_newest_live_campaign_is_returned(self):
        make_campaign(self.advertiser, 'join-cta', creative='', description='first')
        newest = make_campaign(self.advertiser, 'join-cta', creative='', description='second')

        result = placement.get_single_slot_campaign('join-cta', now=self.now)

        self.assertEqual(result['id'], str(newest.pk))

    def test_slot_is_normalised(self):
        make_campaign(self.advertiser, 'filter-cta', creative='', description='Filter')
        result = placement.get_single_slot_campaign('  Filter-CTA ', now=self.now)
        self.assertEqual(result['description'], 'Filter')

    def test_unknown_or_non_cta_slot_returns_none(self):
        make_campaign(self.advertiser, 'top-banner')
        self.assertIsNone(placement.get_single_slot_campaign('top-banner', now=self.now))
        self.assertIsNone(placement.get_single_slot_campaign('nope', now=self.now))
        self.assertIsNone(placement.get_single_slot_campaign(None, now=self.now))

    def test_hidden_paused_and_future_campaigns_are_skipped(self):
        make_campaign(self.advertiser, 'navbar-cta', creative='', description='hidden', is_visible=False)
        make_campaign(self.advertiser, 'navbar-cta', creative='', description='paused',
                      status=Campaign.STATUS_PAUSED)
        make_campaign(self.advertiser, 'navbar-cta', creative='', description='future',
                      start_date=self.now + timedelta(days=1))

        self.assertIsNone(placement.get_single_slot_campaign('navbar-cta', now=self.now))


class EligibilityWindowTest(TestCase):
    def setUp(self):
        cache.clear()
        self.advertiser = make_advertiser()
        self.now = timezone.now()
        self.today = start_of_day(self.now)

    def test_campaign_ending_yesterday_is_excluded(self):
        make_campaign(self.advertiser, 'top-banner', end_date=self.today - timedelta(minutes=1))
        self.assertEqual(placement.get_banner_campaigns(now=self.now), [])

    def test_campaign_ending_today_stays_live_all_day(self):
        campaign = make_campaign(self.advertiser, 'top-banner', end_date=self.today + timedelta(minutes=1))
        result = placement.get_banner_campaigns(now=self.now)
        self.assertEqual([c['id'] for c in result], [str(campaign.pk)])
        self.assertTrue(campaign.is_live(self.now))


class BannerCampaignsTest(TestCase):
    def setUp(self):
        cache.clear()
        self.advertiser = make_advertiser()

    def test_at_most_two_newest_first(self):
        make_campaign(self.advertiser, 'top-banner', creative='one.png')
        second = make_campaign(self.advertiser, 'top-banner', creative='two.png')
        third = make_campaign(self.advertiser, 'top-banner', creative='three.png')

        result = placement.get_banner_campaigns('top-banner')

        self.assertEqual([c['id'] for c in result], [str(third.pk), str(second.pk)])
        self.assertEqual(result[0]['creative'], 'three.png')
        self.assertEqual(result[0]['slot'], 'top-banner')

    def test_non_banner_slot_returns_empty(self):
        make_campaign(self.advertiser, 'homepage-hero')
        self.assertEqual(placement.get_banner_campaigns('homepage-hero'), [])


class FeedPlacementTest(TestCase):
    def setUp(self):
        cache.clear()
        self.advertiser = make_advertiser()

    def test_feed_preview_picks_one_video_and_one_image(self):
        image = make_campaign(self.advertiser, 'feed', creative='img.png')
        video = make_campaign(self.advertiser, 'feed', creative='poster.png', video_url='clip.mp4')

        result = placement.get_feed_preview()

        self.assertEqual(result['video']['id'], str(video.pk))
        self.assertEqual(result['video']['video_url'], 'clip.mp4')
        self.assertEqual(result['image']['id'], str(image.pk))
        self.assertNotIn('video_url', result['image'])

    def test_feed_preview_without_campaigns(self):
        self.assertEqual(placement.get_feed_preview(), {'video': None, 'image': None})

    def test_feed_campaigns_follow_tier_order(self):
        tier2 = make_campaign(self.advertiser, 'feed', feed_tier=2, tier_slot=1)
        tier1_slot2 = make_campaign(self.advertiser, 'feed', feed_tier=1, tier_slot=2)
        tier1_slot1 = make_campaign(self.advertiser, 'feed', feed_tier=1, tier_slot=1)
        make_campaign(self.advertiser, 'feed')  # neither tier nor position

        result = placement.get_active_feed_campaigns('groups')

        self.assertEqual(
            [c['id'] for c in result],
            [str(tier1_slot1.pk), str(tier1_slot2.pk), str(tier2.pk)]
        )
        self.assertEqual([c['position'] for c in result], [5, 10, 15])

    def test_feed_placement_filter(self):
        bots_only = make_campaign(self.advertiser, 'feed', feed_tier=1, tier_slot=1, feed_placement='bots')
        both = make_campaign(self.advertiser, 'feed', feed_tier=1, tier_slot=2)

        groups = placement.get_active_feed_campaigns('groups')
        bots = placement.get_active_feed_campaigns('bots')

        self.assertEqual([c['id'] for c in groups], [str(both.pk)])
        self.assertEqual([c['id'] for c in bots], [str(bots_only.pk), str(both.pk)])
        self.assertEqual(placement.get_active_feed_campaigns('channels'), [])

    def test_slot_campaigns_are_capped(self):
        for _ in range(3):
            make_campaign(self.advertiser, 'top-banner')
        self.assertEqual(len(placement.get_active_campaigns('top-banner')), 2)
        self.assertEqual(placement.get_active_campaigns('unknown'), [])


class PlacementFailureTest(TestCase):
    def setUp(self):
        cache.clear()

    def test_database_error_returns_empty_result(self):
        with mock.patch.object(Campaign.objects, 'live', side_effect=DatabaseError('db down')):
            self.assertIsNone(placement.get_single_slot_campaign('navbar-cta'))
            self.assertEqual(placement.get_banner_campaigns('top-banner'), [])
            self.assertEqual(placement.get_feed_preview(), {'video': None, 'image': None})
            self.assertEqual(placement.get_active_feed_campaigns('groups'), [])

    def test_circuit_opens_after_repeated_failures(self):
        """Test that an open circuit stops hitting the database"""
        with mock.patch.object(Campaign.objects, 'live', side_effect=DatabaseError('db down')) as live:
            for _ in range(7):
                self.assertEqual(placement.get_banner_campaigns('top-banner'), [])

        self.assertEqual(live.call_count, 5)
        self.assertEqual(circuit_status(placement.get_banner_campaigns)['status'], 'open')


class PublicPlacementApiTest(APITestCase):
    def setUp(self):
        cache.clear()
        self.advertiser = make_advertiser()

    def test_placement_endpoint(self):
        campaign = make_campaign(self.advertiser, 'navbar-cta', creative='', description='Hi')

        response = self.client.get('/api/v1/campaigns/placement/', {'slot': 'navbar-cta'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['campaign']['id'], str(campaign.pk))
        self.assertEqual(response.data['campaigns'], [])

    def test_placement_endpoint_without_campaign(self):
        response = self.client.get('/api/v1/campaigns/placement/', {'slot': 'join-cta'})
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.data['campaign'])

    def test_public_endpoints_need_no_auth(self):
        for url in ('/api/v1/campaigns/top-banner/', '/api/v1/campaigns/feed-preview/',
                    '/api/v1/campaigns/feed/?placement=groups', '/api/v1/campaigns/slots/feed/'):
            response = self.client.get(url)
            self.assertEqual(response.status_code, 200, url)

    def test_public_endpoint_survives_database_error(self):
        with mock.patch.object(Campaign.objects, 'live', side_effect=DatabaseError('db down')):
            response = self.client.get('/api/v1/campaigns/top-banner/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, [])


class PlacementCacheOutageTest(TestCase):
    """Breaker state lives in the cache; a cache outage must not break reads"""

    def setUp(self):
        cache.clear()
        self.advertiser = make_advertiser()

    def broken_cache(self):
        broken = mock.Mock()
        broken.get.side_effect = ConnectionInterrupted(connection=None)
        broken.set.side_effect = ConnectionInterrupted(connection=None)
        return mock.patch('apps.campaigns.circuit_breaker.cache', broken)

    def test_reads_still_served(self):
        campaign = make_campaign(self.advertiser, 'top-banner')

        with self.broken_cache():
            result = placement.get_banner_campaigns('top-banner')

        self.assertEqual([c['id'] for c in result], [str(campaign.pk)])

    def test_database_error_still_falls_back(self):
        with self.broken_cache():
            with mock.patch.object(Campaign.objects, 'live', side_effect=DatabaseError('db down')):
                self.assertEqual(placement.get_banner_campaigns('top-banner'), [])
