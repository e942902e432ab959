from django.conf import settings
from django.db import models


class Client(models.Model):
    """Client organizations that own departments, projects and tasks"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('archived', 'Archived'),
    ]

    name = models.CharField(max_length=200, unique=True)
    logo = models.ImageField(upload_to='client_logos/', null=True, blank=True)
    project_key = models.CharField(max_length=10, blank=True, null=True, db_index=True, help_text="Prefix for task/sprint/project slugs, e.g. SQRL")
    website = models.URLField(blank=True)
    is_internal = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_clients')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'clients'
        ordering = ['name']
        indexes = [
            models.Index(fields=['status'], name='clients_status_idx'),
        ]


class Department(models.Model):
    """Client team with workstream capacity settings used for sprint planning"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    name = models.CharField(max_length=200)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='departments')
    primary_contact = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='contact_departments')
    lead = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='led_departments')
    team_members = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name='team_departments')
    workstream_count = models.PositiveIntegerField(default=1)
    workstream_capacity = models.PositiveIntegerField(default=32, help_text="Hours per workstream per sprint")
    sprint_duration = models.PositiveIntegerField(default=2, help_text="Sprint length in weeks")
    workstream_labels = models.JSONField(default=list, blank=True)
    working_hours_start = models.CharField(max_length=5, blank=True)
    working_hours_end = models.CharField(max_length=5, blank=True)
    working_days = models.JSONField(default=list, blank=True, help_text="Days of week, 0 (Sunday) to 6 (Saturday)")
    timezone = models.CharField(max_length=64, blank=True)
    slack_channel_id = models.CharField(max_length=100, blank=True)
    velocity_history = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_departments')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.client.name} / {self.name}"

    class Meta:
        db_table = 'departments'
        ordering = ['name']
        unique_together = [['client', 'name']]

    @property
    def total_capacity(self):
        return self.workstream_count * self.workstream_capacity


class ProjectKey(models.Model):
    """Slug prefix with per-kind counters for tasks, sprints and projects"""
    key = models.CharField(max_length=10, unique=True)
    description = models.CharField(max_length=255, blank=True)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='project_keys')
    department = models.ForeignKey(Department, on_delete=models.CASCADE, null=True, blank=True, related_name='project_keys')
    project = models.ForeignKey('projects.Project', on_delete=models.SET_NULL, null=True, blank=True, related_name='project_keys')
    last_task_number = models.PositiveIntegerField(default=0)
    last_sprint_number = models.PositiveIntegerField(default=0)
    last_project_number = models.PositiveIntegerField(default=0)
    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_project_keys')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'project_keys'
        ordering = ['key']


class ClientDeletionAudit(models.Model):
    """Record of a client archive/delete with a summary of what it owned"""
    ACTION_CHOICES = [
        ('archive', 'Archive'),
        ('delete', 'Delete'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='deletion_audits')
    admin_user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='client_deletion_audits')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    project_count = models.PositiveIntegerField(default=0)
    task_count = models.PositiveIntegerField(default=0)
    team_member_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.client_id}"

    class Meta:
        db_table = 'client_deletion_audits'
        ordering = ['-created_at']
