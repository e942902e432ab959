from rest_framework import serializers

from .models import Client, Department, ProjectKey, ClientDeletionAudit


class ClientSerializer(serializers.ModelSerializer):
    # Declared explicitly so uniqueness is reported with our own message
    name = serializers.CharField(max_length=200)
    created_by_name = serializers.CharField(source='created_by.display_name', read_only=True)

    class Meta:
        model = Client
        fields = [
            'id', 'name', 'logo', 'project_key', 'website', 'is_internal', 'status',
            'created_by', 'created_by_name', 'created_at', 'updated_at'
        ]
        read_only_fields = ['logo', 'created_by', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Client name is required')
        qs = Client.objects.filter(name__iexact=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('A client with this name already exists')
        return value

    def validate_project_key(self, value):
        if value is None:
            return value
        value = value.strip().upper()
        return value or None


class ClientLogoSerializer(serializers.ModelSerializer):
    logo = serializers.ImageField()

    class Meta:
        model = Client
        fields = ['id', 'logo']


class DepartmentSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    total_capacity = serializers.IntegerField(read_only=True)

    class Meta:
        model = Department
        fields = [
            'id', 'name', 'client', 'client_name', 'primary_contact', 'lead', 'team_members',
            'workstream_count', 'workstream_capacity', 'sprint_duration', 'workstream_labels',
            'working_hours_start', 'working_hours_end', 'working_days', 'timezone', 'slack_channel_id',
            'velocity_history', 'status', 'total_capacity', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['velocity_history', 'created_by', 'created_at', 'updated_at']
        # Name uniqueness per client is checked by the views with a domain message
        validators = []


class VelocityEntrySerializer(serializers.Serializer):
    completed_points = serializers.IntegerField(min_value=0)
    sprint_id = serializers.IntegerField(required=False, allow_null=True)


class ProjectKeySerializer(serializers.ModelSerializer):
    key = serializers.CharField(max_length=10, required=False, allow_blank=True)
    client_name = serializers.CharField(source='client.name', read_only=True)

    class Meta:
        model = ProjectKey
        fields = [
            'id', 'key', 'description', 'client', 'client_name', 'department', 'project',
            'last_task_number', 'last_sprint_number', 'last_project_number',
            'is_default', 'is_active', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'last_task_number', 'last_sprint_number', 'last_project_number',
            'created_by', 'created_at', 'updated_at'
        ]

    def validate(self, attrs):
        department = attrs.get('department')
        client = attrs.get('client', getattr(self.instance, 'client', None))
        if department is not None and client is not None and department.client_id != client.id:
            raise serializers.ValidationError({'department': 'Department does not belong to client'})
        return attrs


class ProjectKeyUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProjectKey
        fields = ['description', 'is_active', 'is_default']


class ClientDeletionAuditSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)

    class Meta:
        model = ClientDeletionAudit
        fields = ['id', 'client', 'client_name', 'admin_user', 'action', 'project_count', 'task_count',
                  'team_member_count', 'created_at']
