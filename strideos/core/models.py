from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with role, tenancy and profile fields"""
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('pm', 'Project Manager'),
        ('task_owner', 'Task Owner'),
        ('client', 'Client'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('invited', 'Invited'),
    ]
    THEME_CHOICES = [
        ('system', 'System'),
        ('light', 'Light'),
        ('dark', 'Dark'),
    ]

    name = models.CharField(max_length=200, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='task_owner')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    client = models.ForeignKey('clients.Client', on_delete=models.SET_NULL, null=True, blank=True, related_name='users')
    departments = models.ManyToManyField('clients.Department', blank=True, related_name='members')
    job_title = models.CharField(max_length=200, blank=True)
    bio = models.TextField(blank=True)
    timezone = models.CharField(max_length=64, blank=True)
    preferred_language = models.CharField(max_length=16, blank=True)
    theme_preference = models.CharField(max_length=10, choices=THEME_CHOICES, default='system')
    invited_by = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='invited_users')
    invited_at = models.DateTimeField(null=True, blank=True)
    invitation_token = models.CharField(max_length=64, blank=True, null=True)
    last_login_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['role'], name='users_role_idx'),
            models.Index(fields=['status'], name='users_status_idx'),
            models.Index(fields=['role', 'status'], name='users_role_status_idx'),
        ]

    def __str__(self):
        return self.name or self.username

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.username

    @property
    def is_admin(self):
        return self.role == 'admin' or self.is_superuser

    @property
    def is_pm(self):
        return self.role == 'pm'

    @property
    def is_admin_or_pm(self):
        return self.is_admin or self.is_pm

    @property
    def is_client_user(self):
        return self.role == 'client'

    @property
    def department_ids(self):
        """Ids of the departments this user belongs to"""
        if not self.pk:
            return []
        return list(self.departments.values_list('id', flat=True))


class Organization(models.Model):
    """Singleton row holding organization-wide defaults and feature flags"""
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=100, unique=True)
    logo = models.ImageField(upload_to='organization/', null=True, blank=True)
    website = models.URLField(blank=True)
    timezone = models.CharField(max_length=64, default='UTC')
    default_workstream_capacity = models.PositiveIntegerField(default=32, help_text="Hours per workstream per sprint")
    default_sprint_duration = models.PositiveIntegerField(default=2, help_text="Sprint length in weeks")
    email_from_address = models.EmailField(blank=True)
    email_from_name = models.CharField(max_length=200, blank=True)
    primary_color = models.CharField(max_length=7, default='#0E1828')
    email_invitations = models.BooleanField(default=True)
    slack_integration = models.BooleanField(default=False)
    client_portal = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'organizations'

    @classmethod
    def get_solo(cls):
        """Return the organization row, or None when it has not been set up"""
        return cls.objects.order_by('id').first()

    @classmethod
    def default_workstream_hours(cls):
        org = cls.get_solo()
        if org and org.default_workstream_capacity:
            return org.default_workstream_capacity
        return settings.STRIDEOS_DEFAULT_WORKSTREAM_CAPACITY

    @classmethod
    def default_sprint_weeks(cls):
        org = cls.get_solo()
        if org and org.default_sprint_duration:
            return org.default_sprint_duration
        return settings.STRIDEOS_DEFAULT_SPRINT_DURATION


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('archive', 'Archive'),
        ('invite', 'Invite'),
        ('status_change', 'Status Change'),
        ('assign', 'Assign'),
        ('reorder', 'Reorder'),
        ('sprint_start', 'Sprint Started'),
        ('sprint_complete', 'Sprint Completed'),
        ('login', 'Login'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., client name, task slug)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_idx'),
            models.Index(fields=['action'], name='audit_logs_action_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_idx'),
        ]

    def __str__(self):
        return f"{self.action} {self.model_name}:{self.object_id}"
