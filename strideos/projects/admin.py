from django.contrib import admin
from .models import Project, Document, DocumentStatusAudit, ProjectDeletionAudit


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['slug', 'title', 'client', 'department', 'status', 'visibility', 'project_manager', 'updated_at']
    list_filter = ['status', 'visibility', 'is_template']
    search_fields = ['title', 'slug', 'client__name']
    ordering = ['-updated_at']
    filter_horizontal = ['team_members']


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['title', 'document_type', 'status', 'project', 'created_by', 'updated_at']
    list_filter = ['document_type', 'status']
    search_fields = ['title']
    ordering = ['-updated_at']


@admin.register(DocumentStatusAudit)
class DocumentStatusAuditAdmin(admin.ModelAdmin):
    list_display = ['document', 'old_status', 'new_status', 'user', 'created_at']
    list_filter = ['new_status']
    ordering = ['-created_at']


@admin.register(ProjectDeletionAudit)
class ProjectDeletionAuditAdmin(admin.ModelAdmin):
    list_display = ['project_title', 'project_id_ref', 'admin_user', 'task_count', 'comment_count',
                    'document_count', 'created_at']
    search_fields = ['project_title']
    ordering = ['-created_at']
    readonly_fields = ['project_id_ref', 'project_title', 'admin_user', 'action', 'task_count',
                       'comment_count', 'document_count', 'created_at']
