from django.urls import path
from .views import (
    notification_list_create, notification_unread_count, notification_mark_read,
    notification_mark_all_read, notification_detail, thread_create, thread_comments,
    task_comment_threads, thread_resolve, comment_detail, attachment_list_create, attachment_detail
)

urlpatterns = [
    # Notification endpoints
    path('notifications/', notification_list_create, name='notification-list-create'),
    path('notifications/unread-count/', notification_unread_count, name='notification-unread-count'),
    path('notifications/mark-all-read/', notification_mark_all_read, name='notification-mark-all-read'),
    path('notifications/<int:pk>/', notification_detail, name='notification-detail'),
    path('notifications/<int:pk>/read/', notification_mark_read, name='notification-mark-read'),

    # Comment endpoints
    path('comments/threads/', thread_create, name='comment-thread-create'),
    path('comments/threads/<str:thread_id>/', thread_comments, name='comment-thread-comments'),
    path('comments/threads/<str:thread_id>/resolve/', thread_resolve, name='comment-thread-resolve'),
    path('comments/<int:pk>/', comment_detail, name='comment-detail'),
    path('tasks/<int:task_id>/comments/', task_comment_threads, name='task-comment-threads'),

    # Attachment endpoints
    path('attachments/', attachment_list_create, name='attachment-list-create'),
    path('attachments/<int:pk>/', attachment_detail, name='attachment-detail'),
]
