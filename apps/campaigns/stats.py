# apps/campaigns/stats.py
"""Click reporting for the admin dashboard.

``Campaign.clicks`` is the all-time total; windowed numbers (today, 24h, 7d,
30d, per day) are counted from CampaignClick rows.
"""
from datetime import datetime, time, timedelta

from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from apps.advertisers.models import Advertiser
from .models import Campaign, CampaignClick, start_of_day

MAX_SERIES_DAYS = 366


def _windows(now):
    return {
        'today': start_of_day(now),
        'last_24h': now - timedelta(hours=24),
        'last_7d': now - timedelta(days=7),
        'last_30d': now - timedelta(days=30),
    }


def global_click_stats(now=None):
    now = now or timezone.now()
    w = _windows(now)

    total = Campaign.objects.aggregate(total=Sum('clicks'))['total'] or 0
    counts = CampaignClick.objects.aggregate(
        today=Count('id', filter=Q(clicked_at__gte=w['today'])),
        last_24h=Count('id', filter=Q(clicked_at__gte=w['last_24h'])),
        last_7d=Count('id', filter=Q(clicked_at__gte=w['last_7d'])),
        last_30d=Count('id', filter=Q(clicked_at__gte=w['last_30d'])),
    )
    return {
        'total_clicks': total,
        'today_clicks': counts['today'],
        'last_24h': counts['last_24h'],
        'last_7_days': counts['last_7d'],
        'last_30_days': counts['last_30d'],
    }


def slot_click_totals():
    rows = (
        Campaign.objects.values('slot')
        .annotate(total_clicks=Sum('clicks'), campaign_count=Count('id'))
        .order_by('-total_clicks', 'slot')
    )
    return [{
        'slot': row['slot'],
        'total_clicks': row['total_clicks'] or 0,
        'campaign_count': row['campaign_count'],
    } for row in rows]


def feed_campaign_click_stats(now=None):
    """Per feed campaign: all-time total plus 24h / 7d / 30d counts."""
    now = now or timezone.now()
    w = _windows(now)

    rows = (
        Campaign.objects.in_slot('feed')
        .annotate(
            last_24h=Count('click_events', filter=Q(click_events__clicked_at__gte=w['last_24h'])),
            last_7d=Count('click_events', filter=Q(click_events__clicked_at__gte=w['last_7d'])),
            last_30d=Count('click_events', filter=Q(click_events__clicked_at__gte=w['last_30d'])),
        )
        .values('id', 'clicks', 'last_24h', 'last_7d', 'last_30d')
    )
    return {
        str(row['id']): {
            'total': row['clicks'] or 0,
            'last_24h': row['last_24h'],
            'last_7d': row['last_7d'],
            'last_30d': row['last_30d'],
        }
        for row in rows
    }


def clicks_by_advertiser(now=None):
    now = now or timezone.now()
    w = _windows(now)

    totals = {
        row['advertiser_id']: row['total'] or 0
        for row in Campaign.objects.values('advertiser_id').annotate(total=Sum('clicks'))
    }
    windowed = {
        row['campaign__advertiser_id']: row
        for row in CampaignClick.objects.values('campaign__advertiser_id').annotate(
            last_7d=Count('id', filter=Q(clicked_at__gte=w['last_7d'])),
            last_30d=Count('id', filter=Q(clicked_at__gte=w['last_30d'])),
        )
    }
    names = dict(Advertiser.objects.filter(pk__in=totals).values_list('id', 'name'))

    result = [{
        'advertiser_id': str(advertiser_id),
        'advertiser_name': names.get(advertiser_id, 'Unknown'),
        'total_clicks': total,
        'last_7_days': windowed.get(advertiser_id, {}).get('last_7d', 0),
        'last_30_days': windowed.get(advertiser_id, {}).get('last_30d', 0),
    } for advertiser_id, total in totals.items()]
    result.sort(key=lambda r: (-r['total_clicks'], r['advertiser_name']))
    return result


def click_stats_by_day(days=30, from_date=None, to_date=None, now=None):
    """Zero-filled daily click series.

    Either the last ``days`` days ending today, or the inclusive
    ``from_date``..``to_date`` range (both ``datetime.date``).
    """
    now = now or timezone.now()
    if from_date and to_date:
        if to_date < from_date:
            raise ValueError("from date must not be after to date")
        first, last = from_date, to_date
    else:
        last = timezone.localtime(now).date()
        first = last - timedelta(days=days - 1)

    if (last - first).days + 1 > MAX_SERIES_DAYS:
        raise ValueError(f"Range is limited to {MAX_SERIES_DAYS} days")

    tz = timezone.get_current_timezone()
    range_start = timezone.make_aware(datetime.combine(first, time.min), tz)
    range_end = range_start + timedelta(days=(last - first).days + 1)

    rows = (
        CampaignClick.objects.filter(clicked_at__gte=range_start, clicked_at__lt=range_end)
        .annotate(day=TruncDate('clicked_at', tzinfo=tz))
        .values('day')
        .annotate(clicks=Count('id'))
    )
    by_day = {row['day']: row['clicks'] for row in rows}

    series = []
    current = first
    while current <= last:
        series.append({'date': current.isoformat(), 'clicks': by_day.get(current, 0)})
        current += timedelta(days=1)
    return series
