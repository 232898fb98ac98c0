from io import StringIO
from unittest import mock

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.db.models import QuerySet
from django.test import TestCase, override_settings

from apps.campaigns.models import Campaign
from apps.campaigns.tasks import assign_feed_tiers_task
from apps.campaigns.tiers import (
    TierAssignmentError,
    TierAssignmentLocked,
    assign_feed_tiers,
    assign_sidebar_slots,
    feed_tier_lock,
    plan_feed_tiers,
)
from .helpers import make_advertiser, make_campaign


class FeedTierFixtureMixin:
    def setUp(self):
        cache.clear()
        self.lovescape = make_advertiser('Lovescape')
        self.cpamatica = make_advertiser('CPAMatica')
        self.other = make_advertiser('Other')

        self.primary = [
            make_campaign(self.lovescape, 'feed', name=f'L{clicks}', clicks=clicks)
            for clicks in (60, 50, 40, 30, 20, 10)
        ]
        self.secondary = [
            make_campaign(self.cpamatica, 'feed', name=f'C{clicks}', clicks=clicks)
            for clicks in (55, 45, 35, 25, 15)
        ]
        self.others = [
            make_campaign(self.other, 'feed', name=f'O{clicks}', clicks=clicks)
            for clicks in (100, 5, 1)
        ]


class PlanFeedTiersTest(FeedTierFixtureMixin, TestCase):
    def test_plan(self):
        campaigns = self.primary + self.secondary + self.others
        plan = plan_feed_tiers(campaigns, self.lovescape.pk, self.cpamatica.pk)

        self.assertEqual(plan['tiers'][1], self.primary[:4])
        self.assertEqual(plan['tiers'][2], self.secondary[:4])
        # Best of overflow + everyone else
        self.assertEqual(
            plan['tiers'][3],
            [self.others[0], self.primary[4], self.secondary[4], self.primary[5]]
        )
        self.assertEqual(plan['archive'], [self.others[1], self.others[2]])

    def test_equal_clicks_fall_back_to_id(self):
        first = make_campaign(self.other, 'feed', clicks=0)
        second = make_campaign(self.other, 'feed', clicks=0)
        plan = plan_feed_tiers([second, first], self.lovescape.pk, self.cpamatica.pk, tier_size=1)
        self.assertEqual(plan['tiers'][3], [first])

    def test_tiers_never_exceed_size(self):
        plan = plan_feed_tiers(self.primary + self.secondary + self.others,
                               self.lovescape.pk, self.cpamatica.pk)
        for campaigns in plan['tiers'].values():
            self.assertLessEqual(len(campaigns), 4)


class AssignFeedTiersTest(FeedTierFixtureMixin, TestCase):
    def test_assignment_is_written(self):
        result = assign_feed_tiers()

        self.assertEqual(result['failures'], 0)
        for index, campaign in enumerate(self.primary[:4], start=1):
            campaign.refresh_from_db()
            self.assertEqual((campaign.feed_tier, campaign.tier_slot), (1, index))
        for index, campaign in enumerate(self.secondary[:4], start=1):
            campaign.refresh_from_db()
            self.assertEqual((campaign.feed_tier, campaign.tier_slot), (2, index))

        top_other = Campaign.objects.get(pk=self.others[0].pk)
        self.assertEqual((top_other.feed_tier, top_other.tier_slot), (3, 1))

        ended = Campaign.objects.filter(status=Campaign.STATUS_ENDED)
        self.assertEqual(set(ended.values_list('pk', flat=True)), {self.others[1].pk, self.others[2].pk})
        # Ended, never deleted
        self.assertEqual(Campaign.objects.count(), 14)

    def test_second_run_is_idempotent(self):
        first = assign_feed_tiers()
        before = list(Campaign.objects.order_by('pk').values_list('pk', 'feed_tier', 'tier_slot'))

        second = assign_feed_tiers()
        after = list(Campaign.objects.order_by('pk').values_list('pk', 'feed_tier', 'tier_slot'))

        self.assertEqual(first['tiers'], second['tiers'])
        self.assertEqual(before, after)
        self.assertEqual(second['archived'], [])

    def test_reranking_swaps_slots(self):
        assign_feed_tiers()
        Campaign.objects.filter(pk=self.primary[3].pk).update(clicks=500)

        assign_feed_tiers()

        promoted = Campaign.objects.get(pk=self.primary[3].pk)
        demoted = Campaign.objects.get(pk=self.primary[0].pk)
        self.assertEqual((promoted.feed_tier, promoted.tier_slot), (1, 1))
        self.assertEqual((demoted.feed_tier, demoted.tier_slot), (1, 2))

    def test_dry_run_writes_nothing(self):
        result = assign_feed_tiers(dry_run=True)

        self.assertTrue(result['dry_run'])
        self.assertEqual(len(result['tiers'][1]), 4)
        self.assertFalse(Campaign.objects.filter(feed_tier__isnull=False).exists())
        self.assertFalse(Campaign.objects.filter(status=Campaign.STATUS_ENDED).exists())

    def test_hidden_campaigns_are_still_ranked(self):
        Campaign.objects.filter(pk=self.others[0].pk).update(is_visible=False)
        result = assign_feed_tiers()
        self.assertIn(self.others[0].pk, result['tiers'][3])

    def test_failed_write_does_not_stop_the_batch(self):
        original_update = QuerySet.update

        def update(queryset, **kwargs):
            if kwargs.get('feed_tier') == 1 and kwargs.get('tier_slot') == 1:
                raise DatabaseError('write failed')
            return original_update(queryset, **kwargs)

        with mock.patch.object(QuerySet, 'update', autospec=True, side_effect=update):
            result = assign_feed_tiers()

        self.assertEqual(result['failures'], 1)

        failed = Campaign.objects.get(pk=self.primary[0].pk)
        self.assertIsNone(failed.feed_tier)
        second = Campaign.objects.get(pk=self.primary[1].pk)
        self.assertEqual((second.feed_tier, second.tier_slot), (1, 2))
        for index, pk in enumerate(result['tiers'][3], start=1):
            campaign = Campaign.objects.get(pk=pk)
            self.assertEqual((campaign.feed_tier, campaign.tier_slot), (3, index))

        self.assertEqual(
            set(Campaign.objects.filter(status=Campaign.STATUS_ENDED).values_list('pk', flat=True)),
            {self.others[1].pk, self.others[2].pk}
        )

    def test_missing_advertiser(self):
        with self.assertRaises(TierAssignmentError):
            assign_feed_tiers(primary='Nobody')

    def test_same_advertiser_for_both_tiers(self):
        with self.assertRaises(TierAssignmentError):
            assign_feed_tiers(primary='Lovescape', secondary='Lovescape')

    @override_settings(FEED_TIER_PRIMARY_ADVERTISER='CPAMatica', FEED_TIER_SECONDARY_ADVERTISER='Lovescape')
    def test_advertisers_come_from_settings(self):
        result = assign_feed_tiers(dry_run=True)
        self.assertEqual(result['tiers'][1], [c.pk for c in self.secondary[:4]])


class AssignSidebarTest(TestCase):
    def setUp(self):
        cache.clear()
        self.lovescape = make_advertiser('Lovescape')
        self.cpamatica = make_advertiser('CPAMatica')
        self.other = make_advertiser('Other')

    def test_top_two_per_advertiser_are_kept(self):
        low = make_campaign(self.lovescape, 'sidebar-feed', clicks=1)
        high = make_campaign(self.lovescape, 'sidebar-feed', clicks=9)
        mid = make_campaign(self.lovescape, 'sidebar-feed', clicks=5)
        cpa = make_campaign(self.cpamatica, 'sidebar-feed', clicks=0)
        stranger = make_campaign(self.other, 'sidebar-feed', clicks=100)

        result = assign_sidebar_slots()

        self.assertEqual(result['kept'], [high.pk, mid.pk, cpa.pk])
        self.assertEqual(set(result['archived']), {low.pk, stranger.pk})
        self.assertEqual(
            set(Campaign.objects.filter(status=Campaign.STATUS_ENDED).values_list('pk', flat=True)),
            {low.pk, stranger.pk}
        )


class FeedTierLockTest(TestCase):
    def setUp(self):
        cache.clear()

    def test_lock_is_exclusive(self):
        with feed_tier_lock():
            with self.assertRaises(TierAssignmentLocked):
                with feed_tier_lock():
                    pass

        # Released afterwards
        with feed_tier_lock():
            pass

    def test_task_skips_while_locked(self):
        with feed_tier_lock():
            self.assertEqual(assign_feed_tiers_task(), {'skipped': True})


class AssignFeedTiersTaskTest(FeedTierFixtureMixin, TestCase):
    def test_task_runs_feed_and_sidebar(self):
        result = assign_feed_tiers_task()

        self.assertEqual(len(result['feed']['tiers'][1]), 4)
        self.assertIn('sidebar', result)


class AssignFeedTiersCommandTest(FeedTierFixtureMixin, TestCase):
    def test_command(self):
        out = StringIO()
        call_command('assign_feed_tiers', stdout=out)

        output = out.getvalue()
        self.assertIn('Tier 1:', output)
        self.assertIn('L60 (60 clicks)', output)
        self.assertIn('Ended 2 feed campaign(s).', output)
        self.assertIn('Done.', output)

    def test_dry_run(self):
        out = StringIO()
        call_command('assign_feed_tiers', '--dry-run', '--skip-sidebar', stdout=out)

        self.assertIn('Would end 2 feed campaign(s).', out.getvalue())
        self.assertNotIn('SIDEBAR', out.getvalue())
        self.assertFalse(Campaign.objects.filter(status=Campaign.STATUS_ENDED).exists())

    def test_missing_advertiser_is_a_command_error(self):
        self.lovescape.delete()
        with self.assertRaises(CommandError):
            call_command('assign_feed_tiers', stdout=StringIO())
