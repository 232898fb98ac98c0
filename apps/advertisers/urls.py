from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import AdvertiserViewSet

router = DefaultRouter()
router.register(r'advertisers', AdvertiserViewSet, basename='advertiser')

urlpatterns = [
    path('', include(router.urls)),
]
