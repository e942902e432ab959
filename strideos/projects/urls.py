from django.urls import path
from .views import (
    project_list_create, project_detail, project_stats, project_team,
    project_deletion_summary, project_deletion_audits, project_templates, project_save_as_template,
    project_from_template,
    document_list_create, document_detail
)

urlpatterns = [
    # Project endpoints
    path('projects/', project_list_create, name='project-list-create'),
    path('projects/stats/', project_stats, name='project-stats'),
    path('projects/deletion-audits/', project_deletion_audits, name='project-deletion-audits'),
    path('projects/templates/', project_templates, name='project-templates'),
    path('projects/<int:pk>/', project_detail, name='project-detail'),
    path('projects/<int:pk>/team/', project_team, name='project-team'),
    path('projects/<int:pk>/deletion-summary/', project_deletion_summary, name='project-deletion-summary'),
    path('projects/<int:pk>/save-as-template/', project_save_as_template, name='project-save-as-template'),
    path('projects/<int:pk>/from-template/', project_from_template, name='project-from-template'),

    # Document endpoints
    path('documents/', document_list_create, name='document-list-create'),
    path('documents/<int:pk>/', document_detail, name='document-detail'),
]
