from django.contrib import admin
from .models import Task


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['slug', 'title', 'department', 'status', 'priority', 'size', 'assignee', 'sprint', 'updated_at']
    list_filter = ['status', 'priority', 'task_type', 'visibility', 'category']
    search_fields = ['title', 'slug', 'description']
    ordering = ['-created_at']
    raw_id_fields = ['project', 'parent_task', 'sprint']
