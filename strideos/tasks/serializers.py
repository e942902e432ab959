from rest_framework import serializers

from .models import Task


class TaskSerializer(serializers.ModelSerializer):
    assignee_name = serializers.CharField(source='assignee.display_name', read_only=True)
    project_title = serializers.CharField(source='project.title', read_only=True)
    sprint_name = serializers.CharField(source='sprint.name', read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True)
    department_name = serializers.CharField(source='department.name', read_only=True)

    class Meta:
        model = Task
        fields = [
            'id', 'slug', 'slug_key', 'slug_number', 'title', 'description',
            'project', 'project_title', 'client', 'client_name', 'department', 'department_name',
            'status', 'priority', 'size', 'size_hours', 'story_points', 'task_type', 'category', 'visibility',
            'parent_task', 'assignee', 'assignee_name', 'reporter', 'sprint', 'sprint_name',
            'backlog_order', 'sprint_order', 'personal_order_index', 'project_order',
            'due_date', 'start_date', 'completed_date', 'estimated_hours', 'actual_hours', 'labels',
            'created_by', 'updated_by', 'version', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'slug', 'slug_key', 'slug_number', 'backlog_order', 'sprint_order', 'personal_order_index',
            'completed_date', 'created_by', 'updated_by', 'version', 'created_at', 'updated_at'
        ]

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Title is required')
        return value


class TaskListSerializer(serializers.ModelSerializer):
    assignee_name = serializers.CharField(source='assignee.display_name', read_only=True)
    project_title = serializers.CharField(source='project.title', read_only=True)

    class Meta:
        model = Task
        fields = [
            'id', 'slug', 'title', 'status', 'priority', 'size', 'task_type', 'visibility',
            'project', 'project_title', 'department', 'sprint', 'assignee', 'assignee_name',
            'due_date', 'estimated_hours', 'backlog_order', 'sprint_order', 'personal_order_index',
            'updated_at'
        ]


class AssignSprintSerializer(serializers.Serializer):
    sprint = serializers.IntegerField(allow_null=True)
    sprint_order = serializers.IntegerField(required=False, allow_null=True)


class ReorderTasksSerializer(serializers.Serializer):
    task_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    target_status = serializers.ChoiceField(choices=Task.STATUS_CHOICES, required=False)


class PersonalTodoSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=500)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    due_date = serializers.DateTimeField(required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=Task.PRIORITY_CHOICES, required=False, default='medium')
