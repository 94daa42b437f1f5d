from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    AuditLogViewSet, BannerUploadView, OnboardingSaveView, PublicTenantListView,
    SignupView, TenantResolveView, TenantSettingsView, TenantThemeView, ValidateSlugView,
)

router = DefaultRouter()
router.register(r'auditlog', AuditLogViewSet, basename='auditlog')

urlpatterns = [
    path('signup/', SignupView.as_view(), name='signup'),
    path('signup/validate-slug/', ValidateSlugView.as_view(), name='signup-validate-slug'),
    path('onboarding/save/', OnboardingSaveView.as_view(), name='onboarding-save'),
    path('settings/', TenantSettingsView.as_view(), name='tenant-settings'),
    path('settings/upload-banner/', BannerUploadView.as_view(), name='tenant-upload-banner'),
    path('tenants/', PublicTenantListView.as_view(), name='tenant-list'),
    path('tenants/<str:slug>/theme/', TenantThemeView.as_view(), name='tenant-theme'),
    path('tenant/resolve/', TenantResolveView.as_view(), name='tenant-resolve'),  # public GET ?slug=
    path('', include(router.urls)),
]
