from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'campaigns', views.CampaignViewSet, basename='campaign')

urlpatterns = [
    # Public placement and tracking
    path('campaigns/placement/', views.placement_campaign, name='campaign_placement'),
    path('campaigns/top-banner/', views.top_banner, name='campaign_top_banner'),
    path('campaigns/feed-preview/', views.feed_preview, name='campaign_feed_preview'),
    path('campaigns/feed/', views.feed_campaigns, name='campaign_feed'),
    path('campaigns/slots/<str:slot>/', views.slot_campaigns, name='campaign_slot'),
    path('campaigns/track/', views.track, name='campaign_track'),

    # Admin
    path('admin/', include(router.urls)),
    path('admin/stats/clicks/', views.global_clicks, name='stats_clicks'),
    path('admin/stats/slots/', views.slot_clicks, name='stats_slots'),
    path('admin/stats/feed/', views.feed_clicks, name='stats_feed'),
    path('admin/stats/advertisers/', views.advertiser_clicks, name='stats_advertisers'),
    path('admin/stats/by-day/', views.clicks_by_day, name='stats_by_day'),
    path('admin/health/placement/', views.placement_health, name='placement_health'),
]
