from datetime import timedelta

from django.utils import timezone

from apps.advertisers.models import Advertiser
from apps.campaigns.models import Campaign


def make_advertiser(name='Acme', **kwargs):
    kwargs.setdefault('email', f'{name.lower()}@example.com')
    return Advertiser.objects.create(name=name, **kwargs)


def make_campaign(advertiser, slot='top-banner', **kwargs):
    now = timezone.now()
    defaults = {
        'name': f'{advertiser.name} {slot}',
        'start_date': now - timedelta(days=10),
        'end_date': now + timedelta(days=10),
        'destination_url': 'https://example.com/landing',
        'creative': 'https://cdn.example.com/banner.png',
    }
    defaults.update(kwargs)
    return Campaign.objects.create(advertiser=advertiser, slot=slot, **defaults)
