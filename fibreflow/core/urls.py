from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView
from .views import (
    CustomTokenObtainPairView, user_me,
    archive, unarchive, bulk_archive, archived_items,
    audit_log_list, audit_log_detail,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # Archive endpoints
    path('archive/<str:table>/<str:pk>/', archive, name='archive-record'),
    path('unarchive/<str:table>/<str:pk>/', unarchive, name='unarchive-record'),
    path('bulk-archive/<str:table>/', bulk_archive, name='bulk-archive'),
    path('archived/<str:table>/', archived_items, name='archived-items'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),
]
