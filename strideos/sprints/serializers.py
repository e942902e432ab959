from rest_framework import serializers

from .models import Sprint


class SprintSerializer(serializers.ModelSerializer):
    department_name = serializers.CharField(source='department.name', read_only=True)
    client_name = serializers.CharField(source='client.name', read_only=True)

    class Meta:
        model = Sprint
        fields = [
            'id', 'slug', 'name', 'description', 'department', 'department_name', 'client', 'client_name',
            'start_date', 'end_date', 'duration', 'status', 'total_capacity', 'committed_points',
            'completed_points', 'goals', 'velocity_target', 'actual_velocity', 'sprint_master',
            'team_members', 'created_by', 'updated_by', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'slug', 'client', 'status', 'committed_points', 'completed_points', 'actual_velocity',
            'created_by', 'updated_by', 'created_at', 'updated_at'
        ]
        extra_kwargs = {
            'duration': {'required': False},
            'total_capacity': {'required': False},
        }

