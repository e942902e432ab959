from django.urls import path
from .views import (
    client_list_create, client_detail, client_internal, client_external, client_stats_view,
    client_dashboard, client_kpis, client_logo_upload, client_deletion_audits,
    department_list_create, department_detail, department_capacity_view, department_add_velocity,
    project_key_list_create, project_key_detail,
    get_by_slug
)

urlpatterns = [
    # Client endpoints
    path('clients/', client_list_create, name='client-list-create'),
    path('clients/internal/', client_internal, name='client-internal'),
    path('clients/external/', client_external, name='client-external'),
    path('clients/dashboard/', client_dashboard, name='client-dashboard'),
    path('clients/kpis/', client_kpis, name='client-kpis'),
    path('clients/deletion-audits/', client_deletion_audits, name='client-deletion-audits'),
    path('clients/<int:pk>/', client_detail, name='client-detail'),
    path('clients/<int:pk>/stats/', client_stats_view, name='client-stats'),
    path('clients/<int:pk>/logo/', client_logo_upload, name='client-logo'),

    # Department endpoints
    path('departments/', department_list_create, name='department-list-create'),
    path('departments/<int:pk>/', department_detail, name='department-detail'),
    path('departments/<int:pk>/capacity/', department_capacity_view, name='department-capacity'),
    path('departments/<int:pk>/velocity/', department_add_velocity, name='department-add-velocity'),

    # Project key endpoints
    path('project-keys/', project_key_list_create, name='project-key-list-create'),
    path('project-keys/<int:pk>/', project_key_detail, name='project-key-detail'),

    # Slug lookup
    path('slugs/<str:slug>/', get_by_slug, name='get-by-slug'),
]
