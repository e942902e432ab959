"""
Test suite for the notifications module
Tests: notification inbox, mention parsing, comment threads, their notifications and attachments
"""
import shutil
import tempfile

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status

from strideos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from strideos.notifications.models import Notification, CommentThread, Comment, Attachment
from strideos.notifications.utils import notify, parse_mentions, preview, generate_thread_id

MEDIA_ROOT = tempfile.mkdtemp()


class NotificationUtilsTests(TestCase):
    def test_parse_mentions(self):
        content = 'Hey @[Ann Lee](user:12) and @[Bo](user:7), see above'
        mentions = parse_mentions(content)
        self.assertEqual([m['user_id'] for m in mentions], ['12', '7'])
        self.assertEqual(mentions[0]['position'], 4)
        self.assertEqual(mentions[0]['length'], len('@[Ann Lee](user:12)'))

    def test_no_mentions(self):
        self.assertEqual(parse_mentions('plain @text'), [])
        self.assertEqual(parse_mentions(None), [])

    def test_preview_truncates(self):
        self.assertEqual(preview('short'), 'short')
        long_text = 'x' * 130
        self.assertEqual(preview(long_text), 'x' * 120 + '...')

    def test_thread_ids_are_unique(self):
        first, second = generate_thread_id(), generate_thread_id()
        self.assertNotEqual(first, second)
        self.assertRegex(first, r'^\d+-[a-z0-9]{6}$')

    def test_notify_without_recipient(self):
        self.assertIsNone(notify(None, 'general', 'Title', 'Message'))


class NotificationAPITests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.first = notify(self.user, 'general', 'First', 'One')
        self.second = notify(self.user, 'general', 'Second', 'Two')
        notify(TestDataFactory.create_user(), 'general', 'Other', 'Not mine')

    def test_list_own_notifications(self):
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(response.data[0]['title'], 'Second')

    def test_list_limit_and_unread_only(self):
        self.client.post(f'/api/v1/notifications/{self.second.id}/read/')
        response = self.client.get('/api/v1/notifications/', {'unread_only': 'true'})
        self.assertEqual([n['title'] for n in response.data], ['First'])
        response = self.client.get('/api/v1/notifications/', {'limit': 1})
        self.assertEqual(len(response.data), 1)

    def test_unread_count(self):
        response = self.client.get('/api/v1/notifications/unread-count/')
        self.assertEqual(response.data['count'], 2)

    def test_mark_read_stamps_time(self):
        response = self.client.post(f'/api/v1/notifications/{self.first.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.first.refresh_from_db()
        self.assertTrue(self.first.is_read)
        self.assertIsNotNone(self.first.read_at)

    def test_mark_read_owner_only(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(f'/api/v1/notifications/{self.first.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Insufficient permissions')

    def test_mark_all_read(self):
        response = self.client.post('/api/v1/notifications/mark-all-read/')
        self.assertEqual(response.data['count'], 2)
        self.assertFalse(Notification.objects.filter(user=self.user, is_read=False).exists())

    def test_delete_owner_only(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.delete(f'/api/v1/notifications/{self.first.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(self.user)
        response = self.client.delete(f'/api/v1/notifications/{self.first.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_create_for_self(self):
        response = self.client.post('/api/v1/notifications/', {
            'type': 'general', 'title': 'Reminder', 'message': 'Ship it',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user'], self.user.id)

    def test_create_for_other_requires_pm(self):
        other = TestDataFactory.create_user()
        payload = {'type': 'general', 'title': 'Hi', 'message': 'Hello', 'user': other.id}
        response = self.client.post('/api/v1/notifications/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(TestDataFactory.create_user(role='pm'))
        response = self.client.post('/api/v1/notifications/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)


class CommentThreadTests(TestCase):
    def setUp(self):
        self.department = TestDataFactory.create_department()
        self.author = TestDataFactory.create_user(departments=[self.department], name='Ann Lee')
        self.assignee = TestDataFactory.create_user(departments=[self.department])
        self.mentioned = TestDataFactory.create_user(departments=[self.department])
        self.task = TestDataFactory.create_task(department=self.department, assignee=self.assignee)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.author)

    def _create_thread(self, content='First comment'):
        return self.client.post('/api/v1/comments/threads/', {
            'content': content, 'task': self.task.id,
        }, format='json')

    def test_create_thread_notifies_assignee(self):
        response = self._create_thread()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        thread = CommentThread.objects.get(public_id=response.data['thread_id'])
        self.assertEqual(thread.entity_type, 'task')
        self.assertEqual(thread.comments.count(), 1)
        activity = Notification.objects.get(user=self.assignee)
        self.assertEqual(activity.type, 'task_comment_activity')

    def test_mention_notification(self):
        content = f'Please review @[Mo](user:{self.mentioned.id}) ' + 'y' * 150
        self._create_thread(content)
        mention = Notification.objects.get(user=self.mentioned)
        self.assertEqual(mention.type, 'task_comment_mention')
        self.assertEqual(mention.title, 'Ann Lee mentioned you')
        self.assertTrue(mention.message.endswith('...'))
        self.assertEqual(len(mention.message), 123)

    def test_mentioned_assignee_gets_single_notification(self):
        self._create_thread(f'@[Assignee](user:{self.assignee.id}) ping')
        types = list(Notification.objects.filter(user=self.assignee).values_list('type', flat=True))
        self.assertEqual(types, ['task_comment_mention'])

    def test_cannot_comment_on_hidden_task(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self._create_thread()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_add_comment_and_list_by_task(self):
        thread_id = self._create_thread().data['thread_id']
        self.client.authenticate_user(self.assignee)
        response = self.client.post(f'/api/v1/comments/threads/{thread_id}/', {'content': 'Reply'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get(f'/api/v1/tasks/{self.task.id}/comments/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual([c['content'] for c in response.data[0]['comments']], ['First comment', 'Reply'])

    def test_resolved_threads_hidden_by_default(self):
        thread_id = self._create_thread().data['thread_id']
        response = self.client.post(f'/api/v1/comments/threads/{thread_id}/resolve/')
        self.assertTrue(response.data['resolved'])
        response = self.client.get(f'/api/v1/tasks/{self.task.id}/comments/')
        self.assertEqual(response.data, [])
        response = self.client.get(f'/api/v1/tasks/{self.task.id}/comments/', {'include_resolved': 'true'})
        self.assertEqual(len(response.data), 1)

    def test_resolve_stamps_comments(self):
        response = self._create_thread()
        thread_id = response.data['thread_id']
        comment_id = response.data['comment']['id']
        self.client.post(f'/api/v1/comments/threads/{thread_id}/resolve/')
        comment = Comment.objects.get(pk=comment_id)
        self.assertTrue(comment.resolved)
        self.assertEqual(comment.resolved_by, self.author)
        self.assertIsNotNone(comment.resolved_at)

        self.client.post(f'/api/v1/comments/threads/{thread_id}/resolve/', {'resolved': False}, format='json')
        comment.refresh_from_db()
        self.assertFalse(comment.resolved)
        self.assertIsNone(comment.resolved_by)
        self.assertIsNone(comment.resolved_at)

    def test_resolve_requires_author_or_pm(self):
        thread_id = self._create_thread().data['thread_id']
        self.client.authenticate_user(self.assignee)
        response = self.client.post(f'/api/v1/comments/threads/{thread_id}/resolve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(TestDataFactory.create_user(role='pm'))
        response = self.client.post(f'/api/v1/comments/threads/{thread_id}/resolve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_edit_comment_author_only(self):
        response = self._create_thread()
        comment_id = response.data['comment']['id']
        response = self.client.patch(f'/api/v1/comments/{comment_id}/', {'content': 'Edited'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['edited_at'])
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.patch(f'/api/v1/comments/{comment_id}/', {'content': 'Admin edit'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_comment_is_soft(self):
        comment_id = self._create_thread().data['comment']['id']
        self.client.authenticate_user(self.assignee)
        response = self.client.delete(f'/api/v1/comments/{comment_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.delete(f'/api/v1/comments/{comment_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(Comment.objects.get(pk=comment_id).deleted)

    def test_document_block_thread(self):
        response = self.client.post('/api/v1/comments/threads/', {
            'content': 'On this paragraph', 'doc_id': 'doc-1', 'block_id': 'b-1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['thread']['entity_type'], 'document_block')
        thread_id = response.data['thread_id']
        response = self.client.post(f'/api/v1/comments/threads/{thread_id}/', {
            'content': 'Wrong block', 'block_id': 'b-2',
        }, format='json')
        self.assertEqual(response.data['error'], 'Invalid block for thread')


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class AttachmentTests(TestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.department = TestDataFactory.create_department()
        self.member = TestDataFactory.create_user(departments=[self.department])
        self.outsider = TestDataFactory.create_user(departments=[TestDataFactory.create_department()])
        self.task = TestDataFactory.create_task(department=self.department, assignee=self.member)
        self.project = TestDataFactory.create_project(department=self.department, with_document=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.member)

    def _upload(self, entity_type='task', entity_id=None, name='notes.txt'):
        upload = SimpleUploadedFile(name, b'meeting notes', content_type='text/plain')
        return self.client.post('/api/v1/attachments/', {
            'file': upload,
            'entity_type': entity_type,
            'entity_id': entity_id or self.task.id,
        }, format='multipart')

    def test_upload_to_task(self):
        response = self._upload()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['file_name'], 'notes.txt')
        self.assertEqual(response.data['size'], len(b'meeting notes'))
        self.assertEqual(response.data['content_type'], 'text/plain')
        self.assertEqual(response.data['task'], self.task.id)
        attachment = Attachment.objects.get(pk=response.data['id'])
        self.assertTrue(attachment.file.name.startswith('attachments/'))
        self.assertEqual(attachment.uploaded_by, self.member)

    def test_list_by_entity(self):
        self._upload()
        self._upload('document', self.project.document.id, name='brief.txt')
        response = self.client.get('/api/v1/attachments/', {'entity_type': 'task', 'entity_id': self.task.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([a['file_name'] for a in response.data], ['notes.txt'])
        response = self.client.get('/api/v1/attachments/', {
            'entity_type': 'document', 'entity_id': self.project.document.id,
        })
        self.assertEqual([a['file_name'] for a in response.data], ['brief.txt'])

    def test_list_requires_entity(self):
        response = self.client.get('/api/v1/attachments/', {'entity_type': 'sprint', 'entity_id': 1})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/attachments/', {'entity_type': 'task'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_outsider_cannot_see_or_upload(self):
        self._upload()
        self.client.authenticate_user(self.outsider)
        response = self.client.get('/api/v1/attachments/', {'entity_type': 'task', 'entity_id': self.task.id})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self._upload().status_code, status.HTTP_403_FORBIDDEN)
        response = self._upload('document', self.project.document.id)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_uploader_or_admin(self):
        attachment_id = self._upload().data['id']
        self.client.authenticate_user(self.outsider)
        response = self.client.delete(f'/api/v1/attachments/{attachment_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(self.member)
        response = self.client.delete(f'/api/v1/attachments/{attachment_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Attachment.objects.filter(pk=attachment_id).exists())

    def test_admin_can_delete(self):
        attachment_id = self._upload().data['id']
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.delete(f'/api/v1/attachments/{attachment_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
