import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('advertisers', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Campaign',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('slot', models.CharField(choices=[('top-banner', 'top-banner'), ('homepage-hero', 'homepage-hero'), ('feed', 'feed'), ('sidebar-feed', 'sidebar-feed'), ('navbar-cta', 'navbar-cta'), ('join-cta', 'join-cta'), ('filter-cta', 'filter-cta')], max_length=30)),
                ('position', models.PositiveIntegerField(blank=True, null=True)),
                ('feed_tier', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(3)])),
                ('tier_slot', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(4)])),
                ('feed_placement', models.CharField(choices=[('groups', 'Groups'), ('bots', 'Bots'), ('both', 'Both')], default='both', max_length=10)),
                ('start_date', models.DateTimeField()),
                ('end_date', models.DateTimeField()),
                ('status', models.CharField(choices=[('active', 'Active'), ('paused', 'Paused'), ('ended', 'Ended')], default='active', max_length=20)),
                ('is_visible', models.BooleanField(default=True)),
                ('creative', models.CharField(blank=True, default='', max_length=500)),
                ('video_url', models.CharField(blank=True, default='', max_length=500)),
                ('destination_url', models.CharField(max_length=500, validators=[django.core.validators.RegexValidator('^https?://', 'URL must start with http:// or https://')])),
                ('description', models.TextField(blank=True, default='')),
                ('button_text', models.CharField(blank=True, default='Visit Site', max_length=100)),
                ('badge_text', models.CharField(blank=True, default='', max_length=50)),
                ('verified', models.BooleanField(default=False)),
                ('category', models.CharField(blank=True, default='All', max_length=100)),
                ('country', models.CharField(blank=True, default='All', max_length=100)),
                ('clicks', models.PositiveIntegerField(default=0)),
                ('impressions', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('advertiser', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='campaigns', to='advertisers.advertiser')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['slot', 'status', 'is_visible', 'start_date', 'end_date'], name='campaigns_c_slot_5d1f0e_idx'),
                    models.Index(fields=['advertiser', 'slot'], name='campaigns_c_adverti_8c3b2a_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('slot', 'feed'), ('feed_tier__isnull', False), ('tier_slot__isnull', False)), fields=('slot', 'feed_tier', 'tier_slot'), name='unique_feed_tier_slot'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CampaignClick',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('clicked_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('placement', models.CharField(blank=True, default='', max_length=50)),
                ('campaign', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='click_events', to='campaigns.campaign')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['clicked_at'], name='campaigns_c_clicked_2a7e4f_idx'),
                    models.Index(fields=['campaign', 'clicked_at'], name='campaigns_c_campaig_9b1d6c_idx'),
                ],
            },
        ),
    ]
