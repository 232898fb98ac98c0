from django.core.management.base import BaseCommand, CommandError

from apps.campaigns.models import Campaign
from apps.campaigns.tasks import run_tier_assignment
from apps.campaigns.tiers import TierAssignmentError, feed_tier_lock


class Command(BaseCommand):
    help = 'Assign feed campaigns to performance tiers by clicks and end the rest'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true',
                            help='Print the assignment without writing it')
        parser.add_argument('--skip-sidebar', action='store_true',
                            help='Leave sidebar-feed campaigns untouched')

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        try:
            with feed_tier_lock():
                result = run_tier_assignment(
                    include_sidebar=not options['skip_sidebar'],
                    dry_run=dry_run
                )
        except TierAssignmentError as e:
            raise CommandError(str(e))

        names = dict(Campaign.objects.values_list('id', 'name'))
        clicks = dict(Campaign.objects.values_list('id', 'clicks'))

        feed = result['feed']
        self.stdout.write('--- FEED ---')
        for tier, ids in feed['tiers'].items():
            self.stdout.write(f'Tier {tier}:')
            for index, pk in enumerate(ids, start=1):
                self.stdout.write(f'  {index}. {names.get(pk)} ({clicks.get(pk, 0)} clicks)')
        self.stdout.write(f"{'Would end' if dry_run else 'Ended'} {len(feed['archived'])} feed campaign(s).")

        sidebar = result.get('sidebar')
        if sidebar:
            self.stdout.write('--- SIDEBAR ---')
            for index, pk in enumerate(sidebar['kept'], start=1):
                self.stdout.write(f'  {index}. {names.get(pk)}')
            self.stdout.write(f"{'Would end' if dry_run else 'Ended'} {len(sidebar['archived'])} sidebar campaign(s).")

        failures = feed['failures'] + (sidebar['failures'] if sidebar else 0)
        if failures:
            self.stdout.write(self.style.WARNING(f'{failures} update(s) failed; see the log'))
        else:
            self.stdout.write(self.style.SUCCESS('Done.'))
