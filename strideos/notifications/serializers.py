from rest_framework import serializers

from strideos.tasks.models import Task
from .models import Notification, CommentThread, Comment, Attachment


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            'id', 'type', 'title', 'message', 'user', 'is_read', 'priority',
            'related_task', 'related_project', 'related_sprint', 'related_comment',
            'entity_type', 'entity_id', 'action_url', 'action_text', 'read_at', 'created_at'
        ]
        read_only_fields = ['is_read', 'read_at', 'created_at']
        extra_kwargs = {
            'user': {'required': False},
        }


class CommentSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source='author.display_name', read_only=True)
    thread_id = serializers.CharField(source='thread.public_id', read_only=True)

    class Meta:
        model = Comment
        fields = [
            'id', 'thread_id', 'parent', 'content', 'author', 'author_name', 'mentions',
            'resolved', 'resolved_by', 'resolved_at', 'edited_at', 'deleted', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class CommentThreadSerializer(serializers.ModelSerializer):
    creator_name = serializers.CharField(source='creator.display_name', read_only=True)

    class Meta:
        model = CommentThread
        fields = [
            'id', 'public_id', 'task', 'project', 'sprint', 'doc_id', 'block_id', 'entity_type',
            'resolved', 'creator', 'creator_name', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class CreateThreadSerializer(serializers.Serializer):
    content = serializers.CharField()
    task = serializers.PrimaryKeyRelatedField(queryset=Task.objects.all(), required=False, allow_null=True)
    doc_id = serializers.CharField(required=False, allow_blank=True, default='')
    block_id = serializers.CharField(required=False, allow_blank=True, default='')
    entity_type = serializers.ChoiceField(choices=CommentThread.ENTITY_CHOICES, required=False)

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Comment cannot be empty')
        return value

    def validate(self, attrs):
        if not attrs.get('task') and not attrs.get('doc_id'):
            raise serializers.ValidationError('A thread needs a task or a document')
        return attrs


class AddCommentSerializer(serializers.Serializer):
    content = serializers.CharField()
    parent = serializers.IntegerField(required=False, allow_null=True)
    block_id = serializers.CharField(required=False, allow_blank=True)

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Comment cannot be empty')
        return value


class EditCommentSerializer(serializers.Serializer):
    content = serializers.CharField()

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Comment cannot be empty')
        return value


class AttachmentSerializer(serializers.ModelSerializer):
    uploaded_by_name = serializers.CharField(source='uploaded_by.display_name', read_only=True)
    url = serializers.FileField(source='file', read_only=True)

    class Meta:
        model = Attachment
        fields = [
            'id', 'file_name', 'content_type', 'size', 'url', 'entity_type', 'task', 'document',
            'uploaded_by', 'uploaded_by_name', 'created_at'
        ]


class AttachmentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    entity_type = serializers.ChoiceField(choices=Attachment.ENTITY_CHOICES)
    entity_id = serializers.IntegerField(min_value=1)
