from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import AlertsView, ArtworkHistoryView, ConsignmentLocationViewSet, OverviewView

router = DefaultRouter()
router.register(r'locations', ConsignmentLocationViewSet, basename='consignment-location')

urlpatterns = [
    path('artworks/<uuid:work_id>/history/', ArtworkHistoryView.as_view(), name='artwork-history'),
    path('overview/', OverviewView.as_view(), name='consignment-overview'),
    path('alerts/', AlertsView.as_view(), name='consignment-alerts'),
    path('', include(router.urls)),
]
