from django.urls import path
from .views import (
    task_list_create, task_detail, task_stats, assign_to_sprint, active_sprint_tasks,
    my_work, reorder_tasks, create_personal_todo
)

urlpatterns = [
    # Task endpoints
    path('tasks/', task_list_create, name='task-list-create'),
    path('tasks/stats/', task_stats, name='task-stats'),
    path('tasks/active-sprint/', active_sprint_tasks, name='task-active-sprint'),
    path('tasks/<int:pk>/', task_detail, name='task-detail'),
    path('tasks/<int:pk>/assign-sprint/', assign_to_sprint, name='task-assign-sprint'),

    # My Work endpoints
    path('my-work/', my_work, name='my-work'),
    path('my-work/reorder/', reorder_tasks, name='my-work-reorder'),
    path('my-work/todos/', create_personal_todo, name='my-work-todo'),
]
