from django.urls import path
from .views import CheckSuperAdminView, SessionView

urlpatterns = [
    path('check-superadmin/', CheckSuperAdminView.as_view(), name='check-superadmin'),
    path('session/', SessionView.as_view(), name='identity-session'),
]
