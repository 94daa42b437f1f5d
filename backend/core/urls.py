from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    healthz, DeepHealthView, FlagCheckView, FlagBatchView, FeatureFlagViewSet,
)

router = DefaultRouter(trailing_slash=False)
router.register(r'flag', FeatureFlagViewSet, basename="core-flag")

urlpatterns = [
    path('healthz/', healthz, name="core-healthz"),
    path('deep-health/', DeepHealthView.as_view(), name="core-deep-health"),
    path('flags', FlagCheckView.as_view(), name="core-flags"),
    path('flags/batch', FlagBatchView.as_view(), name="core-flags-batch"),
    path('', include(router.urls)),
]
