import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.contrib.auth import get_user_model
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone

from strideos.core.permissions import forbidden
from strideos.core.utils import create_audit_log, parse_bool, parse_limit
from strideos.projects.models import Document
from strideos.projects.permissions import can_view_document
from strideos.tasks.models import Task
from strideos.tasks.permissions import can_view_task
from .models import Notification, CommentThread, Comment, Attachment
from .serializers import (
    NotificationSerializer, CommentSerializer, CommentThreadSerializer,
    CreateThreadSerializer, AddCommentSerializer, EditCommentSerializer, AttachmentSerializer,
    AttachmentUploadSerializer
)
from .utils import notify, parse_mentions, preview, generate_thread_id

logger = logging.getLogger('strideos.notifications')

NOTIFICATION_PAGE_SIZE = 50


# ==================== Notifications ====================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def notification_list_create(request):
    """List the caller's notifications or create one"""
    if request.method == 'GET':
        notifications = Notification.objects.filter(user=request.user).order_by('-created_at')
        if parse_bool(request.query_params.get('unread_only')):
            notifications = notifications.filter(is_read=False)
        limit = parse_limit(request.query_params.get('limit'), default=NOTIFICATION_PAGE_SIZE)
        return Response(NotificationSerializer(notifications[:limit], many=True).data)

    serializer = NotificationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    recipient = serializer.validated_data.get('user') or request.user
    if recipient != request.user and not request.user.is_admin_or_pm:
        return forbidden(request, 'Only admins and project managers can notify other users')
    notification = serializer.save(user=recipient)
    logger.info(f"Notification {notification.type} created for user {recipient.id} by {request.user.username}")
    return Response(NotificationSerializer(notification).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    count = Notification.objects.filter(user=request.user, is_read=False).count()
    return Response({'count': count})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk):
    notification = get_object_or_404(Notification, pk=pk)
    if notification.user_id != request.user.id:
        return forbidden(request)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=['is_read', 'read_at'])
    return Response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    count = Notification.objects.filter(user=request.user, is_read=False).update(
        is_read=True, read_at=timezone.now()
    )
    logger.info(f"User {request.user.username} marked {count} notifications as read")
    return Response({'count': count})


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def notification_detail(request, pk):
    notification = get_object_or_404(Notification, pk=pk)
    if notification.user_id != request.user.id:
        return forbidden(request)
    if request.method == 'GET':
        return Response(NotificationSerializer(notification).data)
    notification.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# ==================== Comments ====================

def can_access_thread(user, thread):
    if thread.task_id:
        return can_view_task(user, thread.task)
    return True


def mentioned_users(mentions, exclude=None):
    ids = {mention['user_id'] for mention in mentions if str(mention['user_id']).isdigit()}
    users = get_user_model().objects.filter(pk__in=ids, is_active=True)
    if exclude is not None:
        users = users.exclude(pk=exclude.pk)
    return list(users)


def notify_comment(comment, author):
    """
    Send mention and activity notifications for a new comment

    Mentioned users get a mention notification; the task assignee, when neither
    the author nor mentioned, gets an activity notification.
    """
    thread = comment.thread
    task = thread.task
    message = preview(comment.content)
    mentioned = mentioned_users(comment.mentions, exclude=author)
    action_url = f'/tasks/{task.id}' if task else ''

    for user in mentioned:
        notify(
            user,
            'task_comment_mention' if task else 'mention',
            f'{author.display_name} mentioned you',
            message,
            task=task,
            comment=comment,
            entity_type='comment',
            entity_id=comment.id,
            action_url=action_url,
        )

    if task and task.assignee_id and task.assignee_id != author.id:
        if task.assignee_id not in {user.id for user in mentioned}:
            notify(
                task.assignee,
                'task_comment_activity',
                f'{author.display_name} commented on {task.slug or task.title}',
                message,
                task=task,
                comment=comment,
                entity_type='comment',
                entity_id=comment.id,
                action_url=action_url,
            )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def thread_create(request):
    """Open a comment thread on a task or document block with its first comment"""
    serializer = CreateThreadSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    task = data.get('task')
    if task and not can_view_task(request.user, task):
        return forbidden(request, 'You do not have access to this task')

    with transaction.atomic():
        thread = CommentThread.objects.create(
            public_id=generate_thread_id(),
            task=task,
            project=task.project if task else None,
            doc_id=data['doc_id'],
            block_id=data['block_id'],
            entity_type='task' if task else data.get('entity_type', 'document_block'),
            creator=request.user,
        )
        comment = Comment.objects.create(
            thread=thread,
            content=data['content'],
            author=request.user,
            mentions=parse_mentions(data['content']),
        )
        notify_comment(comment, request.user)

    logger.info(f"Comment thread {thread.public_id} created by {request.user.username}")
    return Response({
        'thread_id': thread.public_id,
        'thread': CommentThreadSerializer(thread).data,
        'comment': CommentSerializer(comment).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def thread_comments(request, thread_id):
    """List a thread's comments or add one"""
    thread = get_object_or_404(CommentThread.objects.select_related('task'), public_id=thread_id)
    if not can_access_thread(request.user, thread):
        return forbidden(request, 'You do not have access to this thread')

    if request.method == 'GET':
        comments = thread.comments.filter(deleted=False).select_related('author').order_by('created_at')
        return Response({
            'thread': CommentThreadSerializer(thread).data,
            'comments': CommentSerializer(comments, many=True).data,
        })

    serializer = AddCommentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    if thread.doc_id and 'block_id' in data and data['block_id'] != thread.block_id:
        return Response({'error': 'Invalid block for thread'}, status=status.HTTP_400_BAD_REQUEST)

    parent = None
    if data.get('parent'):
        parent = thread.comments.filter(pk=data['parent']).first()
        if parent is None:
            return Response({'error': 'Parent comment not found'}, status=status.HTTP_404_NOT_FOUND)

    with transaction.atomic():
        comment = Comment.objects.create(
            thread=thread,
            parent=parent,
            content=data['content'],
            author=request.user,
            mentions=parse_mentions(data['content']),
        )
        notify_comment(comment, request.user)

    logger.info(f"Comment {comment.id} added to thread {thread.public_id} by {request.user.username}")
    return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def task_comment_threads(request, task_id):
    """Threads of a task with their comments, oldest first"""
    task = get_object_or_404(Task, pk=task_id)
    if not can_view_task(request.user, task):
        return forbidden(request, 'You do not have access to this task')

    threads = task.comment_threads.select_related('creator').order_by('created_at')
    if not parse_bool(request.query_params.get('include_resolved')):
        threads = threads.filter(resolved=False)

    results = []
    for thread in threads:
        comments = thread.comments.filter(deleted=False).select_related('author').order_by('created_at')
        results.append({
            'thread': CommentThreadSerializer(thread).data,
            'comments': CommentSerializer(comments, many=True).data,
        })
    return Response(results)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def thread_resolve(request, thread_id):
    thread = get_object_or_404(CommentThread, public_id=thread_id)
    if thread.creator_id != request.user.id and not request.user.is_admin_or_pm:
        return forbidden(request, 'Only the thread author, admins and project managers can resolve threads')

    resolved = parse_bool(request.data.get('resolved'))
    thread.resolved = True if resolved is None else resolved
    with transaction.atomic():
        thread.save(update_fields=['resolved', 'updated_at'])
        if thread.resolved:
            thread.comments.filter(resolved=False).update(
                resolved=True, resolved_by=request.user, resolved_at=timezone.now()
            )
        else:
            thread.comments.update(resolved=False, resolved_by=None, resolved_at=None)
    logger.info(f"Thread {thread.public_id} resolved={thread.resolved} by {request.user.username}")
    return Response(CommentThreadSerializer(thread).data)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def comment_detail(request, pk):
    """Edit (author only) or soft delete (author or admin) a comment"""
    comment = get_object_or_404(Comment, pk=pk, deleted=False)

    if request.method == 'DELETE':
        if comment.author_id != request.user.id and not request.user.is_admin:
            return forbidden(request, 'Only the author or an admin can delete this comment')
        comment.deleted = True
        comment.save(update_fields=['deleted', 'updated_at'])
        logger.info(f"Comment {comment.id} deleted by {request.user.username}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    if comment.author_id != request.user.id:
        return forbidden(request, 'Only the author can edit this comment')
    serializer = EditCommentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    comment.content = serializer.validated_data['content']
    comment.mentions = parse_mentions(comment.content)
    comment.edited_at = timezone.now()
    comment.save(update_fields=['content', 'mentions', 'edited_at', 'updated_at'])
    return Response(CommentSerializer(comment).data)


# ==================== Attachments ====================

def attachment_target(entity_type, entity_id):
    """Load the task or document an attachment hangs off"""
    if entity_type == 'task':
        return get_object_or_404(Task.objects.select_related('project'), pk=entity_id)
    return get_object_or_404(Document.objects.select_related('project'), pk=entity_id)


def can_view_target(user, entity_type, target):
    if entity_type == 'task':
        return can_view_task(user, target)
    return can_view_document(user, target)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def attachment_list_create(request):
    """List (GET ?entity_type=&entity_id=) or upload (POST multipart) attachments for a task or document"""
    if request.method == 'GET':
        entity_type = request.query_params.get('entity_type')
        if entity_type not in dict(Attachment.ENTITY_CHOICES):
            return Response({'error': 'entity_type must be task or document'}, status=status.HTTP_400_BAD_REQUEST)
        entity_id = request.query_params.get('entity_id')
        if not str(entity_id).isdigit():
            return Response({'error': 'entity_id is required'}, status=status.HTTP_400_BAD_REQUEST)
        target = attachment_target(entity_type, entity_id)
        if not can_view_target(request.user, entity_type, target):
            return forbidden(request, f'You do not have access to this {entity_type}')
        attachments = Attachment.objects.filter(entity_type=entity_type, **{entity_type: target})
        attachments = attachments.select_related('uploaded_by')
        return Response(AttachmentSerializer(attachments, many=True, context={'request': request}).data)

    serializer = AttachmentUploadSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Invalid attachment upload: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    entity_type = serializer.validated_data['entity_type']
    target = attachment_target(entity_type, serializer.validated_data['entity_id'])
    if not can_view_target(request.user, entity_type, target):
        return forbidden(request, f'You do not have access to this {entity_type}')

    upload = serializer.validated_data['file']
    attachment = Attachment.objects.create(
        file=upload,
        file_name=upload.name,
        content_type=getattr(upload, 'content_type', '') or '',
        size=upload.size,
        entity_type=entity_type,
        uploaded_by=request.user,
        **{entity_type: target},
    )
    logger.info(f"Attachment {attachment.id} uploaded to {entity_type} {target.id} by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='Attachment', object_id=attachment.id,
                     object_name=attachment.file_name, changes={entity_type: target.id})
    return Response(AttachmentSerializer(attachment, context={'request': request}).data,
                    status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def attachment_detail(request, pk):
    """Remove an attachment and its stored file (uploader or admin)"""
    attachment = get_object_or_404(Attachment, pk=pk)
    if attachment.uploaded_by_id != request.user.id and not request.user.is_admin:
        return forbidden(request, 'Only the uploader or an admin can delete this attachment')

    attachment_id = attachment.id
    if attachment.file:
        attachment.file.delete(save=False)
    attachment.delete()
    logger.info(f"Attachment {attachment_id} deleted by {request.user.username}")
    create_audit_log(request=request, action='delete', model_name='Attachment', object_id=attachment_id,
                     object_name=attachment.file_name)
    return Response(status=status.HTTP_204_NO_CONTENT)
