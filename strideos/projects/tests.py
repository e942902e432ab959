"""
Test suite for the projects module
Tests: project creation, visibility, status dates, stats, team, templates, cascading delete and documents
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from strideos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from strideos.notifications.models import Notification, CommentThread, Comment
from strideos.projects.models import Project, Document, DocumentStatusAudit, ProjectDeletionAudit
from strideos.projects.permissions import can_view_project
from strideos.tasks.models import Task


class ProjectCreateTests(TestCase):
    def setUp(self):
        self.pm = TestDataFactory.create_user(role='pm')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.pm)
        self.acme = TestDataFactory.create_client(name='Acme', project_key='ACME')
        self.department = TestDataFactory.create_department(client=self.acme, members=[self.pm])

    def test_create_project_with_brief_and_slug(self):
        response = self.client.post('/api/v1/projects/', {
            'title': 'Website Relaunch',
            'client': self.acme.id,
            'department': self.department.id,
            'status': 'complete',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'new')
        self.assertEqual(response.data['slug'], 'ACME-P-1')
        self.assertEqual(response.data['visibility'], 'department')
        self.assertEqual(response.data['project_manager'], self.pm.id)
        project = Project.objects.get(pk=response.data['id'])
        self.assertEqual(project.document.document_type, 'project_brief')
        self.assertEqual(project.document.status, 'draft')
        self.assertTrue(Notification.objects.filter(user=self.pm, type='project_created', related_project=project).exists())

    def test_department_must_belong_to_client(self):
        other = TestDataFactory.create_department()
        response = self.client.post('/api/v1/projects/', {
            'title': 'Mismatch', 'client': self.acme.id, 'department': other.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Department does not belong to client')

    def test_client_without_key_gets_no_slug(self):
        keyless = TestDataFactory.create_client(project_key=None)
        department = TestDataFactory.create_department(client=keyless)
        response = self.client.post('/api/v1/projects/', {
            'title': 'No Key', 'client': keyless.id, 'department': department.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['slug'])

    def test_task_owner_cannot_create(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='task_owner'))
        response = self.client.post('/api/v1/projects/', {
            'title': 'X', 'client': self.acme.id, 'department': self.department.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ProjectVisibilityTests(TestCase):
    """Test can_view_project for each visibility level"""

    def setUp(self):
        self.acme = TestDataFactory.create_client(name='Acme')
        self.department = TestDataFactory.create_department(client=self.acme)
        self.insider = TestDataFactory.create_user(departments=[self.department])
        self.outsider = TestDataFactory.create_user()
        self.client_user = TestDataFactory.create_user(role='client', client=self.acme)

    def test_department_visibility(self):
        project = TestDataFactory.create_project(department=self.department, visibility='department')
        self.assertTrue(can_view_project(self.insider, project))
        self.assertFalse(can_view_project(self.outsider, project))

    def test_client_visibility(self):
        project = TestDataFactory.create_project(department=self.department, visibility='client')
        self.assertTrue(can_view_project(self.client_user, project))
        self.assertFalse(can_view_project(self.outsider, project))

    def test_organization_visibility(self):
        project = TestDataFactory.create_project(department=self.department, visibility='organization')
        self.assertTrue(can_view_project(self.outsider, project))

    def test_private_visible_to_team_only(self):
        project = TestDataFactory.create_project(department=self.department, visibility='private')
        self.assertFalse(can_view_project(self.insider, project))
        project.team_members.add(self.outsider)
        self.assertTrue(can_view_project(self.outsider, project))

    def test_list_filters_by_visibility(self):
        TestDataFactory.create_project(department=self.department, title='Visible', visibility='department')
        TestDataFactory.create_project(department=self.department, title='Hidden', visibility='private')
        api = AuthenticatedAPIClient()
        api.authenticate_user(self.insider)
        response = api.get('/api/v1/projects/')
        self.assertEqual([p['title'] for p in response.data], ['Visible'])

    def test_detail_forbidden(self):
        project = TestDataFactory.create_project(department=self.department, visibility='private')
        api = AuthenticatedAPIClient()
        api.authenticate_user(self.outsider)
        response = api.get(f'/api/v1/projects/{project.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ProjectUpdateTests(TestCase):
    def setUp(self):
        self.pm = TestDataFactory.create_user(role='pm')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.pm)
        self.project = TestDataFactory.create_project()

    def test_in_progress_stamps_start_date(self):
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/', {'status': 'in_progress'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.project.refresh_from_db()
        self.assertIsNotNone(self.project.actual_start_date)
        self.assertIsNone(self.project.actual_completion_date)

    def test_complete_stamps_completion_date(self):
        self.client.patch(f'/api/v1/projects/{self.project.id}/', {'status': 'complete'}, format='json')
        self.project.refresh_from_db()
        self.assertIsNotNone(self.project.actual_completion_date)

    def test_team_member_can_edit(self):
        member = TestDataFactory.create_user(role='task_owner')
        self.project.team_members.add(member)
        self.client.authenticate_user(member)
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/', {'description': 'Updated'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_outsider_cannot_edit(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='task_owner'))
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/', {'description': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ProjectStatsAndTeamTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.department = TestDataFactory.create_department()

    def test_stats(self):
        on_track = TestDataFactory.create_project(department=self.department, status='in_progress')
        TestDataFactory.create_project(department=self.department, status='client_review')
        TestDataFactory.create_project(department=self.department, status='complete')
        soon = TestDataFactory.create_project(department=self.department, status='planning')
        soon.target_due_date = timezone.now() + timedelta(days=3)
        soon.save()
        TestDataFactory.create_task(project=on_track, status='done')
        TestDataFactory.create_task(project=on_track, status='todo')
        TestDataFactory.create_task(project=soon, status='done')

        response = self.client.get('/api/v1/projects/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 4)
        self.assertEqual(response.data['on_track'], 1)
        self.assertEqual(response.data['at_risk'], 2)
        self.assertEqual(response.data['completed'], 1)
        # (50 + 100) / 2
        self.assertEqual(response.data['avg_progress'], 75)

    def test_team_is_deduplicated(self):
        lead = TestDataFactory.create_user()
        self.department.lead = lead
        self.department.save()
        pm = TestDataFactory.create_user(role='pm')
        project = TestDataFactory.create_project(department=self.department, project_manager=pm)
        project.team_members.add(lead)
        TestDataFactory.create_task(project=project, assignee=pm)
        response = self.client.get(f'/api/v1/projects/{project.id}/team/')
        ids = sorted(member['id'] for member in response.data['members'])
        self.assertEqual(ids, sorted([lead.id, pm.id]))


class ProjectTemplateTests(TestCase):
    def setUp(self):
        self.pm = TestDataFactory.create_user(role='pm')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.pm)
        self.acme = TestDataFactory.create_client(name='Acme', project_key='ACME')
        self.department = TestDataFactory.create_department(client=self.acme, members=[self.pm])
        self.project = TestDataFactory.create_project(
            department=self.department, title='Relaunch', project_manager=self.pm, with_document=True
        )
        self.project.description = 'Six week relaunch'
        self.project.save()

    def save_template(self, **data):
        return self.client.post(f'/api/v1/projects/{self.project.id}/save-as-template/', data, format='json')

    def test_save_as_template(self):
        response = self.save_template()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['title'], 'Relaunch Template')
        self.assertTrue(response.data['is_template'])
        self.assertEqual(response.data['template_source'], self.project.id)
        self.assertEqual(response.data['description'], 'Six week relaunch')
        self.assertIsNone(response.data['slug'])
        template = Project.objects.get(pk=response.data['id'])
        self.assertEqual(template.document.title, 'Relaunch Template Brief')

    def test_templates_listed_separately(self):
        template_id = self.save_template(title='Relaunch Kit').data['id']
        response = self.client.get('/api/v1/projects/templates/')
        self.assertEqual([p['id'] for p in response.data], [template_id])
        response = self.client.get('/api/v1/projects/')
        self.assertEqual([p['id'] for p in response.data], [self.project.id])
        response = self.client.get('/api/v1/projects/stats/')
        self.assertEqual(response.data['total'], 1)

    def test_create_from_template(self):
        template_id = self.save_template(title='Relaunch Kit').data['id']
        response = self.client.post(f'/api/v1/projects/{template_id}/from-template/', {
            'title': 'Spring Relaunch',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['is_template'])
        self.assertEqual(response.data['template_source'], template_id)
        self.assertEqual(response.data['status'], 'new')
        self.assertEqual(response.data['slug'], 'ACME-P-1')
        self.assertEqual(response.data['description'], 'Six week relaunch')
        self.assertEqual(response.data['department'], self.department.id)
        project = Project.objects.get(pk=response.data['id'])
        self.assertEqual(project.document.title, 'Spring Relaunch Brief')

    def test_from_plain_project_rejected(self):
        response = self.client.post(f'/api/v1/projects/{self.project.id}/from-template/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Project is not a template')

    def test_template_flag_not_writable(self):
        response = self.client.post('/api/v1/projects/', {
            'title': 'Sneaky', 'client': self.acme.id, 'department': self.department.id, 'is_template': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['is_template'])

    def test_task_owner_cannot_save_template(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='task_owner'))
        self.assertEqual(self.save_template().status_code, status.HTTP_403_FORBIDDEN)


class ProjectDeleteTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.project = TestDataFactory.create_project(with_document=True)
        self.task = TestDataFactory.create_task(project=self.project)
        thread = CommentThread.objects.create(public_id='t-1', task=self.task, entity_type='task', creator=self.admin)
        Comment.objects.create(thread=thread, content='First', author=self.admin)
        Comment.objects.create(thread=thread, content='Second', author=self.admin)

    def test_deletion_summary(self):
        response = self.client.get(f'/api/v1/projects/{self.project.id}/deletion-summary/')
        self.assertEqual(response.data['task_count'], 1)
        self.assertEqual(response.data['comment_count'], 2)
        self.assertEqual(response.data['document_count'], 1)

    def test_delete_cascades_and_audits(self):
        project_id = self.project.id
        response = self.client.delete(f'/api/v1/projects/{project_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Project.objects.filter(pk=project_id).exists())
        self.assertFalse(Task.objects.filter(pk=self.task.pk).exists())
        self.assertEqual(Comment.objects.count(), 0)
        self.assertEqual(Document.objects.count(), 0)
        audit = ProjectDeletionAudit.objects.get(project_id_ref=project_id)
        self.assertEqual(audit.comment_count, 2)

    def test_pm_cannot_delete(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='pm'))
        response = self.client.delete(f'/api/v1/projects/{self.project.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class DocumentTests(TestCase):
    def setUp(self):
        self.pm = TestDataFactory.create_user(role='pm')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.pm)
        self.project = TestDataFactory.create_project(with_document=True)
        self.pm.departments.add(self.project.department)

    def test_create_meeting_notes(self):
        response = self.client.post('/api/v1/documents/', {
            'title': 'Kickoff notes', 'document_type': 'meeting_notes', 'project': self.project.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['client'], self.project.client_id)

    def test_publish_stamps_and_audits(self):
        document = self.project.document
        response = self.client.patch(f'/api/v1/documents/{document.id}/', {'status': 'published'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        document.refresh_from_db()
        self.assertIsNotNone(document.published_at)
        audit = DocumentStatusAudit.objects.get(document=document)
        self.assertEqual((audit.old_status, audit.new_status), ('draft', 'published'))

    def test_filter_by_type(self):
        Document.objects.create(title='Wiki', document_type='wiki_article', project=self.project)
        response = self.client.get('/api/v1/documents/', {'document_type': 'wiki_article'})
        self.assertEqual([d['title'] for d in response.data], ['Wiki'])

    def test_brief_cannot_be_deleted_alone(self):
        response = self.client.delete(f'/api/v1/documents/{self.project.document.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
