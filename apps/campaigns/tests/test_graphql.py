import json

from django.core.cache import cache
from django.test import TestCase

from apps.campaigns.models import Campaign
from .helpers import make_advertiser, make_campaign


class PlacementGraphQLTest(TestCase):
    def setUp(self):
        cache.clear()
        self.advertiser = make_advertiser()

    def execute(self, query, variables=None):
        response = self.client.post(
            '/graphql/',
            data=json.dumps({'query': query, 'variables': variables or {}}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertNotIn('errors', body)
        return body['data']

    def test_single_slot_campaign(self):
        campaign = make_campaign(self.advertiser, 'navbar-cta', creative='', description='Join')

        data = self.execute('{ singleSlotCampaign(slot: "navbar-cta") { id description buttonText } }')

        self.assertEqual(data['singleSlotCampaign'], {
            'id': str(campaign.pk), 'description': 'Join', 'buttonText': 'Visit Site',
        })

    def test_empty_results(self):
        data = self.execute(
            '{ singleSlotCampaign(slot: "join-cta") { id } '
            'bannerCampaigns { id } feedPreview { video { id } image { id } } }'
        )
        self.assertIsNone(data['singleSlotCampaign'])
        self.assertEqual(data['bannerCampaigns'], [])
        self.assertEqual(data['feedPreview'], {'video': None, 'image': None})

    def test_feed_preview(self):
        make_campaign(self.advertiser, 'feed', video_url='clip.mp4')
        data = self.execute('{ feedPreview { video { videoUrl verified } image { id } } }')
        self.assertEqual(data['feedPreview']['video'], {'videoUrl': 'clip.mp4', 'verified': False})

    def test_track_click_mutation(self):
        campaign = make_campaign(self.advertiser, 'top-banner')

        data = self.execute(
            'mutation Track($id: ID!) { trackClick(campaignId: $id, placement: "top-banner") { ok } }',
            {'id': str(campaign.pk)}
        )

        self.assertTrue(data['trackClick']['ok'])
        self.assertEqual(Campaign.objects.get(pk=campaign.pk).clicks, 1)

    def test_graphiql_is_served(self):
        response = self.client.get('/graphql/', HTTP_ACCEPT='text/html')
        self.assertEqual(response.status_code, 200)
        self.assertIn('text/html', response['Content-Type'])
