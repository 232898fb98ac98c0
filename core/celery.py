import os
from celery import Celery
from celery.schedules import crontab

settings_module = os.environ.get('DJANGO_SETTINGS_MODULE', 'core.settings.local')
os.environ.setdefault('DJANGO_SETTINGS_MODULE', settings_module)

app = Celery('placement')
app.config_from_object('django.conf:settings', namespace='CELERY')

app.conf.beat_schedule = {
    'assign-feed-tiers': {
        'task': 'apps.campaigns.tasks.assign_feed_tiers_task',
        'schedule': crontab(hour=3, minute=0),  # Daily at 3 AM UTC
    },
}

app.autodiscover_tasks()
