from django.contrib import admin
from .models import Client, Department, ProjectKey, ClientDeletionAudit


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['name', 'project_key', 'is_internal', 'status', 'created_at']
    list_filter = ['status', 'is_internal']
    search_fields = ['name', 'project_key']
    ordering = ['name']


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ['name', 'client', 'workstream_count', 'workstream_capacity', 'sprint_duration', 'status']
    list_filter = ['status', 'client']
    search_fields = ['name', 'client__name']
    ordering = ['client__name', 'name']


@admin.register(ProjectKey)
class ProjectKeyAdmin(admin.ModelAdmin):
    list_display = ['key', 'client', 'department', 'last_task_number', 'last_sprint_number',
                    'last_project_number', 'is_default', 'is_active']
    list_filter = ['is_active', 'is_default']
    search_fields = ['key', 'client__name']
    ordering = ['key']


@admin.register(ClientDeletionAudit)
class ClientDeletionAuditAdmin(admin.ModelAdmin):
    list_display = ['client', 'admin_user', 'action', 'project_count', 'task_count', 'team_member_count', 'created_at']
    list_filter = ['action']
    ordering = ['-created_at']
    readonly_fields = ['client', 'admin_user', 'action', 'project_count', 'task_count', 'team_member_count', 'created_at']
