import re

from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password

from strideos.clients.models import Department
from .models import User, Organization, AuditLog

HEX_COLOR_RE = re.compile(r'^#[0-9A-Fa-f]{6}$')


class UserSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True)
    department_ids = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'name', 'role', 'status', 'client', 'client_name', 'department_ids',
            'job_title', 'bio', 'timezone', 'preferred_language', 'theme_preference',
            'invited_by', 'invited_at', 'last_login_at', 'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_department_ids(self, obj):
        return [d.id for d in obj.departments.all()]


class UserSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'name', 'email', 'role', 'job_title']


class ProfileSerializer(serializers.ModelSerializer):
    """Fields a user may change on their own account"""

    class Meta:
        model = User
        fields = ['name', 'job_title', 'bio', 'timezone', 'preferred_language', 'theme_preference']


class UserWriteSerializer(serializers.ModelSerializer):
    """Admin create/update of users with tenancy validation"""
    password = serializers.CharField(write_only=True, required=False, allow_blank=False, validators=[validate_password])
    departments = serializers.PrimaryKeyRelatedField(many=True, required=False, queryset=Department.objects.all())
    email = serializers.EmailField()

    class Meta:
        model = User
        fields = [
            'username', 'email', 'password', 'name', 'role', 'status', 'client', 'departments',
            'job_title', 'bio', 'timezone', 'preferred_language'
        ]
        extra_kwargs = {
            'username': {'required': False},
        }

    def validate_email(self, value):
        value = value.strip().lower()
        qs = User.objects.filter(email__iexact=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('A user with this email already exists')
        return value

    def validate(self, attrs):
        client = attrs.get('client', getattr(self.instance, 'client', None))
        departments = attrs.get('departments')
        if departments:
            if client is None:
                raise serializers.ValidationError({'departments': 'Department does not belong to the selected client'})
            for department in departments:
                if department.client_id != client.id:
                    raise serializers.ValidationError({'departments': 'Department does not belong to the selected client'})
        return attrs

    def create(self, validated_data):
        departments = validated_data.pop('departments', [])
        password = validated_data.pop('password', None)
        if not validated_data.get('username'):
            validated_data['username'] = validated_data['email']
        user = User(**validated_data)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save()
        if departments:
            user.departments.set(departments)
        return user

    def update(self, instance, validated_data):
        departments = validated_data.pop('departments', None)
        password = validated_data.pop('password', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        if 'status' in validated_data:
            instance.is_active = validated_data['status'] != 'inactive'
        instance.save()
        if departments is not None:
            instance.departments.set(departments)
        return instance


class BulkUserUpdateSerializer(serializers.Serializer):
    user_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    status = serializers.ChoiceField(choices=User.STATUS_CHOICES, required=False)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)


class SetPasswordSerializer(serializers.Serializer):
    """Completes an invitation by setting the first password"""
    token = serializers.CharField()
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs


class OrganizationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = [
            'id', 'name', 'slug', 'logo', 'website', 'timezone',
            'default_workstream_capacity', 'default_sprint_duration',
            'email_from_address', 'email_from_name', 'primary_color',
            'email_invitations', 'slack_integration', 'client_portal',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_default_workstream_capacity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Default workstream capacity must be greater than 0')
        return value

    def validate_default_sprint_duration(self, value):
        if value < 1 or value > 4:
            raise serializers.ValidationError('Default sprint duration must be between 1 and 4 weeks')
        return value

    def validate_primary_color(self, value):
        if not HEX_COLOR_RE.match(value):
            raise serializers.ValidationError('Primary color must be a hex color like #1A2B3C')
        return value


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']
