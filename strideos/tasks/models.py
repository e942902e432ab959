from django.conf import settings
from django.db import models


class Task(models.Model):
    """Unit of work belonging to a client department, optionally in a project and sprint"""
    STATUS_CHOICES = [
        ('todo', 'To Do'),
        ('in_progress', 'In Progress'),
        ('review', 'Review'),
        ('done', 'Done'),
        ('archived', 'Archived'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]
    SIZE_CHOICES = [
        ('XS', 'XS'),
        ('S', 'S'),
        ('M', 'M'),
        ('L', 'L'),
        ('XL', 'XL'),
    ]
    TYPE_CHOICES = [
        ('deliverable', 'Deliverable'),
        ('bug', 'Bug'),
        ('feedback', 'Feedback'),
        ('personal', 'Personal'),
    ]
    CATEGORY_CHOICES = [
        ('feature', 'Feature'),
        ('bug', 'Bug'),
        ('improvement', 'Improvement'),
        ('research', 'Research'),
        ('documentation', 'Documentation'),
        ('maintenance', 'Maintenance'),
    ]
    VISIBILITY_CHOICES = [
        ('private', 'Private'),
        ('team', 'Team'),
        ('department', 'Department'),
        ('client', 'Client'),
    ]

    title = models.CharField(max_length=500)
    description = models.TextField(blank=True)
    project = models.ForeignKey('projects.Project', on_delete=models.CASCADE, null=True, blank=True, related_name='tasks')
    client = models.ForeignKey('clients.Client', on_delete=models.CASCADE, related_name='tasks')
    department = models.ForeignKey('clients.Department', on_delete=models.CASCADE, related_name='tasks')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='todo')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    size = models.CharField(max_length=2, choices=SIZE_CHOICES, blank=True, null=True)
    size_hours = models.PositiveIntegerField(null=True, blank=True)
    story_points = models.PositiveIntegerField(null=True, blank=True)
    task_type = models.CharField(max_length=20, choices=TYPE_CHOICES, blank=True, null=True)
    personal_order_index = models.IntegerField(null=True, blank=True)
    project_order = models.IntegerField(null=True, blank=True)
    parent_task = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='subtasks')
    assignee = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_tasks')
    reporter = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='reported_tasks')
    sprint = models.ForeignKey('sprints.Sprint', on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks')
    backlog_order = models.IntegerField(null=True, blank=True)
    sprint_order = models.IntegerField(null=True, blank=True)
    due_date = models.DateTimeField(null=True, blank=True)
    start_date = models.DateTimeField(null=True, blank=True)
    completed_date = models.DateTimeField(null=True, blank=True)
    estimated_hours = models.PositiveIntegerField(null=True, blank=True)
    actual_hours = models.PositiveIntegerField(null=True, blank=True)
    labels = models.JSONField(default=list, blank=True)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='feature')
    visibility = models.CharField(max_length=20, choices=VISIBILITY_CHOICES, default='department')
    slug = models.CharField(max_length=40, blank=True, null=True, db_index=True)
    slug_key = models.CharField(max_length=10, blank=True, null=True)
    slug_number = models.PositiveIntegerField(null=True, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_tasks')
    updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='updated_tasks')
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.slug or self.title

    class Meta:
        db_table = 'tasks'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='tasks_status_idx'),
            models.Index(fields=['assignee', 'status'], name='tasks_assignee_status_idx'),
            models.Index(fields=['department', 'status'], name='tasks_dept_status_idx'),
            models.Index(fields=['department', 'backlog_order'], name='tasks_backlog_order_idx'),
            models.Index(fields=['sprint', 'sprint_order'], name='tasks_sprint_order_idx'),
            models.Index(fields=['assignee', 'personal_order_index'], name='tasks_personal_order_idx'),
        ]
