from django.contrib import admin
from .models import Notification, CommentThread, Comment, Attachment


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['type', 'title', 'user', 'is_read', 'priority', 'created_at']
    list_filter = ['type', 'is_read', 'priority']
    search_fields = ['title', 'message', 'user__username']
    ordering = ['-created_at']
    raw_id_fields = ['related_task', 'related_project', 'related_sprint', 'related_comment']


class CommentInline(admin.TabularInline):
    model = Comment
    extra = 0
    fields = ['author', 'content', 'deleted', 'edited_at']
    readonly_fields = ['edited_at']


@admin.register(CommentThread)
class CommentThreadAdmin(admin.ModelAdmin):
    list_display = ['public_id', 'entity_type', 'task', 'doc_id', 'resolved', 'creator', 'created_at']
    list_filter = ['entity_type', 'resolved']
    search_fields = ['public_id', 'doc_id', 'block_id']
    ordering = ['-created_at']
    raw_id_fields = ['task', 'project', 'sprint']
    inlines = [CommentInline]


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ['id', 'thread', 'author', 'deleted', 'created_at']
    list_filter = ['deleted', 'resolved']
    search_fields = ['content']
    ordering = ['-created_at']


@admin.register(Attachment)
class AttachmentAdmin(admin.ModelAdmin):
    list_display = ['file_name', 'entity_type', 'task', 'document', 'size', 'uploaded_by', 'created_at']
    list_filter = ['entity_type']
    search_fields = ['file_name']
    ordering = ['-created_at']
    raw_id_fields = ['task', 'document']
