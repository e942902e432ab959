from rest_framework import serializers

from .models import Project, Document, DocumentStatusAudit, ProjectDeletionAudit


class DocumentSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.display_name', read_only=True)

    class Meta:
        model = Document
        fields = [
            'id', 'title', 'document_type', 'status', 'project', 'client', 'department',
            'created_by', 'created_by_name', 'published_at', 'archived_at', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_by', 'published_at', 'archived_at', 'created_at', 'updated_at']


class DocumentStatusAuditSerializer(serializers.ModelSerializer):
    class Meta:
        model = DocumentStatusAudit
        fields = ['id', 'document', 'user', 'old_status', 'new_status', 'created_at']


class ProjectSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    department_name = serializers.CharField(source='department.name', read_only=True)
    project_manager_name = serializers.CharField(source='project_manager.display_name', read_only=True)
    document = DocumentSerializer(read_only=True)

    class Meta:
        model = Project
        fields = [
            'id', 'title', 'slug', 'project_key', 'client', 'client_name', 'department', 'department_name',
            'status', 'description', 'target_due_date', 'actual_start_date', 'actual_completion_date',
            'document', 'is_template', 'template_source', 'visibility', 'project_manager',
            'project_manager_name', 'team_members', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'slug', 'project_key', 'actual_start_date', 'actual_completion_date', 'is_template', 'template_source',
            'created_by', 'created_at', 'updated_at'
        ]


class ProjectListSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    department_name = serializers.CharField(source='department.name', read_only=True)

    class Meta:
        model = Project
        fields = [
            'id', 'title', 'slug', 'status', 'visibility', 'client', 'client_name', 'department',
            'department_name', 'project_manager', 'target_due_date', 'is_template', 'updated_at'
        ]


class ProjectDeletionAuditSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProjectDeletionAudit
        fields = ['id', 'project_id_ref', 'project_title', 'admin_user', 'action',
                  'document_count', 'task_count', 'comment_count', 'created_at']
