from django.urls import path
from .views import (
    sprint_list_create, sprint_detail, sprint_start, sprint_complete, sprints_with_details,
    sprint_stats, sprints_by_department, department_backlog, sprint_backlog_tasks,
    department_sprint_capacity
)

urlpatterns = [
    # Sprint endpoints
    path('sprints/', sprint_list_create, name='sprint-list-create'),
    path('sprints/details/', sprints_with_details, name='sprint-details'),
    path('sprints/stats/', sprint_stats, name='sprint-stats'),
    path('sprints/by-department/', sprints_by_department, name='sprint-by-department'),
    path('sprints/<int:pk>/', sprint_detail, name='sprint-detail'),
    path('sprints/<int:pk>/start/', sprint_start, name='sprint-start'),
    path('sprints/<int:pk>/complete/', sprint_complete, name='sprint-complete'),
    path('sprints/<int:pk>/backlog-tasks/', sprint_backlog_tasks, name='sprint-backlog-tasks'),

    # Department planning endpoints
    path('departments/<int:department_id>/backlog/', department_backlog, name='department-backlog'),
    path('departments/<int:department_id>/sprint-capacity/', department_sprint_capacity, name='department-sprint-capacity'),
]
