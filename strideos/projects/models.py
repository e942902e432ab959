from django.conf import settings
from django.db import models


class Document(models.Model):
    """Document metadata; every project owns exactly one project brief"""
    TYPE_CHOICES = [
        ('project_brief', 'Project Brief'),
        ('meeting_notes', 'Meeting Notes'),
        ('wiki_article', 'Wiki Article'),
        ('resource_doc', 'Resource Doc'),
        ('retrospective', 'Retrospective'),
        ('blank', 'Blank'),
    ]
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('published', 'Published'),
        ('archived', 'Archived'),
    ]

    title = models.CharField(max_length=255)
    document_type = models.CharField(max_length=30, choices=TYPE_CHOICES, default='blank')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    project = models.ForeignKey('Project', on_delete=models.CASCADE, null=True, blank=True, related_name='documents')
    client = models.ForeignKey('clients.Client', on_delete=models.SET_NULL, null=True, blank=True, related_name='documents')
    department = models.ForeignKey('clients.Department', on_delete=models.SET_NULL, null=True, blank=True, related_name='documents')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_documents')
    published_at = models.DateTimeField(null=True, blank=True)
    archived_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'documents'
        ordering = ['-created_at']


class DocumentStatusAudit(models.Model):
    """Status transitions of a document"""
    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name='status_audits')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='document_status_audits')
    old_status = models.CharField(max_length=20, choices=Document.STATUS_CHOICES, blank=True, null=True)
    new_status = models.CharField(max_length=20, choices=Document.STATUS_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'document_status_audits'
        ordering = ['-created_at']


class Project(models.Model):
    """Client project scoped to a department"""
    STATUS_CHOICES = [
        ('new', 'New'),
        ('planning', 'Planning'),
        ('ready_for_work', 'Ready for Work'),
        ('in_progress', 'In Progress'),
        ('client_review', 'Client Review'),
        ('client_approved', 'Client Approved'),
        ('complete', 'Complete'),
    ]
    VISIBILITY_CHOICES = [
        ('private', 'Private'),
        ('department', 'Department'),
        ('client', 'Client'),
        ('organization', 'Organization'),
    ]

    title = models.CharField(max_length=255)
    client = models.ForeignKey('clients.Client', on_delete=models.CASCADE, related_name='projects')
    department = models.ForeignKey('clients.Department', on_delete=models.CASCADE, related_name='projects')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='new')
    description = models.TextField(blank=True)
    target_due_date = models.DateTimeField(null=True, blank=True)
    actual_start_date = models.DateTimeField(null=True, blank=True)
    actual_completion_date = models.DateTimeField(null=True, blank=True)
    document = models.OneToOneField(Document, on_delete=models.SET_NULL, null=True, blank=True, related_name='brief_for')
    is_template = models.BooleanField(default=False)
    template_source = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='derived_projects')
    visibility = models.CharField(max_length=20, choices=VISIBILITY_CHOICES, default='department')
    project_manager = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='managed_projects')
    team_members = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name='team_projects')
    slug = models.CharField(max_length=40, blank=True, null=True, db_index=True)
    project_key = models.CharField(max_length=10, blank=True, null=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_projects')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.slug or self.title

    class Meta:
        db_table = 'projects'
        ordering = ['-updated_at']
        indexes = [
            models.Index(fields=['status'], name='projects_status_idx'),
            models.Index(fields=['visibility'], name='projects_visibility_idx'),
        ]


class ProjectDeletionAudit(models.Model):
    """Summary of what was removed when a project was deleted"""
    project_id_ref = models.BigIntegerField()
    project_title = models.CharField(max_length=255)
    admin_user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='project_deletion_audits')
    action = models.CharField(max_length=20, default='delete')
    document_count = models.PositiveIntegerField(default=0)
    task_count = models.PositiveIntegerField(default=0)
    comment_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"delete {self.project_title}"

    class Meta:
        db_table = 'project_deletion_audits'
        ordering = ['-created_at']
