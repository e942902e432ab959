from django.conf import settings
from django.db import models


class Sprint(models.Model):
    """Time-boxed iteration of a department with hour-based capacity"""
    STATUS_CHOICES = [
        ('planning', 'Planning'),
        ('active', 'Active'),
        ('review', 'Review'),
        ('complete', 'Complete'),
        ('cancelled', 'Cancelled'),
    ]

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    department = models.ForeignKey('clients.Department', on_delete=models.CASCADE, related_name='sprints')
    client = models.ForeignKey('clients.Client', on_delete=models.CASCADE, related_name='sprints')
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    duration = models.PositiveIntegerField(default=2, help_text="Duration in weeks")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='planning')
    total_capacity = models.PositiveIntegerField(default=0, help_text="Capacity in hours")
    committed_points = models.PositiveIntegerField(default=0)
    completed_points = models.PositiveIntegerField(default=0)
    goals = models.JSONField(default=list, blank=True)
    velocity_target = models.PositiveIntegerField(null=True, blank=True)
    actual_velocity = models.PositiveIntegerField(null=True, blank=True)
    sprint_master = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='mastered_sprints')
    team_members = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name='team_sprints')
    slug = models.CharField(max_length=40, blank=True, null=True, db_index=True)
    slug_key = models.CharField(max_length=10, blank=True, null=True)
    slug_number = models.PositiveIntegerField(null=True, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_sprints')
    updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='updated_sprints')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.slug or self.name

    class Meta:
        db_table = 'sprints'
        ordering = ['-start_date']
        indexes = [
            models.Index(fields=['department', 'status'], name='sprints_dept_status_idx'),
            models.Index(fields=['start_date'], name='sprints_start_idx'),
        ]
