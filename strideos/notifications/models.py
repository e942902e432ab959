from django.conf import settings
from django.db import models


class Notification(models.Model):
    """In-app notification for a single recipient"""
    TYPE_CHOICES = [
        ('comment_created', 'Comment Created'),
        ('task_assigned', 'Task Assigned'),
        ('task_status_changed', 'Task Status Changed'),
        ('document_updated', 'Document Updated'),
        ('sprint_started', 'Sprint Started'),
        ('sprint_completed', 'Sprint Completed'),
        ('mention', 'Mention'),
        ('general', 'General'),
        ('task_comment_mention', 'Task Comment Mention'),
        ('task_comment_activity', 'Task Comment Activity'),
        ('project_created', 'Project Created'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]
    ENTITY_CHOICES = [
        ('task', 'Task'),
        ('comment', 'Comment'),
        ('project', 'Project'),
        ('document', 'Document'),
        ('sprint', 'Sprint'),
    ]

    type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255)
    message = models.TextField()
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    is_read = models.BooleanField(default=False)
    related_task = models.ForeignKey('tasks.Task', on_delete=models.CASCADE, null=True, blank=True, related_name='notifications')
    related_project = models.ForeignKey('projects.Project', on_delete=models.CASCADE, null=True, blank=True, related_name='notifications')
    related_sprint = models.ForeignKey('sprints.Sprint', on_delete=models.CASCADE, null=True, blank=True, related_name='notifications')
    related_comment = models.ForeignKey('Comment', on_delete=models.SET_NULL, null=True, blank=True, related_name='notifications')
    entity_type = models.CharField(max_length=20, choices=ENTITY_CHOICES, blank=True, null=True)
    entity_id = models.CharField(max_length=64, blank=True, null=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    action_url = models.CharField(max_length=500, blank=True)
    action_text = models.CharField(max_length=100, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.type} -> {self.user_id}"

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notif_user_read_idx'),
            models.Index(fields=['-created_at'], name='notif_created_idx'),
        ]


class CommentThread(models.Model):
    """Discussion thread anchored on a task or a document block"""
    ENTITY_CHOICES = [
        ('document_block', 'Document Block'),
        ('task', 'Task'),
        ('project', 'Project'),
        ('sprint', 'Sprint'),
    ]

    public_id = models.CharField(max_length=64, unique=True)
    task = models.ForeignKey('tasks.Task', on_delete=models.CASCADE, null=True, blank=True, related_name='comment_threads')
    project = models.ForeignKey('projects.Project', on_delete=models.CASCADE, null=True, blank=True, related_name='comment_threads')
    sprint = models.ForeignKey('sprints.Sprint', on_delete=models.CASCADE, null=True, blank=True, related_name='comment_threads')
    doc_id = models.CharField(max_length=100, blank=True)
    block_id = models.CharField(max_length=100, blank=True)
    entity_type = models.CharField(max_length=20, choices=ENTITY_CHOICES, default='task')
    resolved = models.BooleanField(default=False)
    creator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='comment_threads')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.public_id

    class Meta:
        db_table = 'comment_threads'
        ordering = ['created_at']


class Comment(models.Model):
    """Comment in a thread; mentions are stored as user/position/length spans"""
    thread = models.ForeignKey(CommentThread, on_delete=models.CASCADE, related_name='comments')
    parent = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='replies')
    content = models.TextField()
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='comments')
    mentions = models.JSONField(default=list, blank=True)
    resolved = models.BooleanField(default=False)
    resolved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='resolved_comments')
    resolved_at = models.DateTimeField(null=True, blank=True)
    edited_at = models.DateTimeField(null=True, blank=True)
    deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Comment {self.pk} on {self.thread_id}"

    class Meta:
        db_table = 'comments'
        ordering = ['created_at']


class Attachment(models.Model):
    """Uploaded file attached to a task or a document"""
    ENTITY_CHOICES = [
        ('task', 'Task'),
        ('document', 'Document'),
    ]

    file = models.FileField(upload_to='attachments/')
    file_name = models.CharField(max_length=255)
    content_type = models.CharField(max_length=100, blank=True)
    size = models.PositiveBigIntegerField(default=0)
    entity_type = models.CharField(max_length=20, choices=ENTITY_CHOICES)
    task = models.ForeignKey('tasks.Task', on_delete=models.CASCADE, null=True, blank=True, related_name='attachments')
    document = models.ForeignKey('projects.Document', on_delete=models.CASCADE, null=True, blank=True, related_name='attachments')
    uploaded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='attachments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.file_name

    class Meta:
        db_table = 'attachments'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['entity_type', 'task'], name='attachments_task_idx'),
            models.Index(fields=['entity_type', 'document'], name='attachments_document_idx'),
        ]
