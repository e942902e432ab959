from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, accept_invitation, user_me,
    user_list_create, user_detail, user_resend_invitation, user_bulk_update, user_stats, team_list,
    organization_detail,
    audit_log_list, audit_log_detail,
    global_search
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),
    path('auth/accept-invitation/', accept_invitation, name='accept-invitation'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/stats/', user_stats, name='user-stats'),
    path('users/team/', team_list, name='user-team'),
    path('users/bulk-update/', user_bulk_update, name='user-bulk-update'),
    path('users/<int:pk>/', user_detail, name='user-detail'),
    path('users/<int:pk>/resend-invitation/', user_resend_invitation, name='user-resend-invitation'),

    # Organization settings
    path('organization/', organization_detail, name='organization-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),

    # Global search endpoint
    path('search/', global_search, name='global-search'),
]
