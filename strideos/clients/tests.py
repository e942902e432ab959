"""
Test suite for the clients module
Tests: clients, departments, project keys, slug allocation and lookup
"""
import io
import shutil
import tempfile

from PIL import Image
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status

from strideos.clients.models import Client, Department, ProjectKey, ClientDeletionAudit
from strideos.clients.slugs import assign_slug, next_number, resolve_slug, default_key_for_name, classify_slug
from strideos.clients.utils import add_velocity_entry, department_capacity
from strideos.core.exceptions import DomainError
from strideos.core.test_utils import TestDataFactory, AuthenticatedAPIClient

MEDIA_ROOT = tempfile.mkdtemp()


class ClientAPITests(TestCase):
    """Test client CRUD, archive and reporting endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_client_creates_default_department(self):
        response = self.client.post('/api/v1/clients/', {'name': 'Squirrel', 'project_key': 'sqrl'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['project_key'], 'SQRL')
        client = Client.objects.get(name='Squirrel')
        department = client.departments.get()
        self.assertEqual(department.name, 'Default')
        self.assertEqual(department.workstream_count, 1)
        self.assertEqual(department.workstream_capacity, 32)
        self.assertEqual(department.lead, self.admin)

    def test_create_duplicate_name(self):
        TestDataFactory.create_client(name='Acme')
        response = self.client.post('/api/v1/clients/', {'name': 'acme'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('A client with this name already exists', str(response.data['name']))

    def test_task_owner_cannot_create(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='task_owner'))
        response = self.client.post('/api/v1/clients/', {'name': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_search_filter_narrows_list(self):
        TestDataFactory.create_client(name='Acme Corp')
        TestDataFactory.create_client(name='Globex')
        response = self.client.get('/api/v1/clients/', {'search': 'acm'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.data], ['Acme Corp'])

    def test_client_user_sees_only_own_client(self):
        own = TestDataFactory.create_client(name='Own')
        TestDataFactory.create_client(name='Other')
        self.client.authenticate_user(TestDataFactory.create_user(role='client', client=own))
        response = self.client.get('/api/v1/clients/')
        self.assertEqual([c['name'] for c in response.data], ['Own'])

    def test_internal_and_external_lists(self):
        TestDataFactory.create_client(name='Inside', is_internal=True)
        TestDataFactory.create_client(name='Outside')
        TestDataFactory.create_client(name='Gone', status='archived', is_internal=True)
        internal = self.client.get('/api/v1/clients/internal/')
        external = self.client.get('/api/v1/clients/external/')
        self.assertEqual([c['name'] for c in internal.data], ['Inside'])
        self.assertEqual([c['name'] for c in external.data], ['Outside'])

    def test_delete_blocked_by_active_department(self):
        department = TestDataFactory.create_department()
        response = self.client.delete(f'/api/v1/clients/{department.client_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete client with departments. Please delete departments first.')

    def test_delete_blocked_by_active_project(self):
        department = TestDataFactory.create_department()
        TestDataFactory.create_project(department=department, status='in_progress')
        Department.objects.filter(pk=department.pk).update(status='inactive')
        response = self.client.delete(f'/api/v1/clients/{department.client_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete client with active projects.')

    def test_delete_archives_and_audits(self):
        department = TestDataFactory.create_department()
        project = TestDataFactory.create_project(department=department, status='complete')
        TestDataFactory.create_task(project=project)
        Department.objects.filter(pk=department.pk).update(status='inactive')
        response = self.client.delete(f'/api/v1/clients/{department.client_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        client = Client.objects.get(pk=department.client_id)
        self.assertEqual(client.status, 'archived')
        audit = ClientDeletionAudit.objects.get(client=client)
        self.assertEqual(audit.project_count, 1)
        self.assertEqual(audit.task_count, 1)

    def test_deletion_audits_listed_for_admin(self):
        archived = TestDataFactory.create_client(name='Gone')
        other = TestDataFactory.create_client(name='Also Gone')
        self.client.delete(f'/api/v1/clients/{archived.id}/')
        self.client.delete(f'/api/v1/clients/{other.id}/')
        response = self.client.get('/api/v1/clients/deletion-audits/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/v1/clients/deletion-audits/', {'client': archived.id})
        self.assertEqual([a['client_name'] for a in response.data], ['Gone'])
        self.assertEqual(response.data[0]['action'], 'archive')
        self.assertEqual(response.data[0]['admin_user'], self.admin.id)

        self.client.authenticate_user(TestDataFactory.create_user(role='pm'))
        response = self.client.get('/api/v1/clients/deletion-audits/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pm_cannot_delete(self):
        client = TestDataFactory.create_client()
        self.client.authenticate_user(TestDataFactory.create_user(role='pm'))
        response = self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_client_stats(self):
        department = TestDataFactory.create_department(workstream_count=3)
        TestDataFactory.create_project(department=department, status='complete')
        TestDataFactory.create_project(department=department, status='planning')
        response = self.client.get(f'/api/v1/clients/{department.client_id}/stats/')
        self.assertEqual(response.data['department_count'], 1)
        self.assertEqual(response.data['project_count'], 2)
        self.assertEqual(response.data['active_project_count'], 1)
        self.assertEqual(response.data['completed_project_count'], 1)
        self.assertEqual(response.data['total_workstreams'], 3)

    def test_kpis(self):
        TestDataFactory.create_client(status='inactive')
        TestDataFactory.create_project()
        response = self.client.get('/api/v1/clients/kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_clients'], 2)
        self.assertEqual(response.data['active_clients'], 1)
        self.assertEqual(response.data['total_projects'], 1)
        self.assertEqual(response.data['new_clients_this_month'], 2)

    def test_kpis_refresh_after_new_client(self):
        self.client.get('/api/v1/clients/kpis/')
        TestDataFactory.create_client()
        response = self.client.get('/api/v1/clients/kpis/')
        self.assertEqual(response.data['total_clients'], 1)

    def test_dashboard_recent_activity(self):
        department = TestDataFactory.create_department()
        for _ in range(6):
            TestDataFactory.create_project(department=department)
        response = self.client.get('/api/v1/clients/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(len(response.data[0]['recent_activity']), 5)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class ClientLogoTests(TestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='pm'))
        self.acme = TestDataFactory.create_client(name='Acme')

    def _png(self):
        buffer = io.BytesIO()
        Image.new('RGB', (8, 8), color='red').save(buffer, format='PNG')
        return SimpleUploadedFile('logo.png', buffer.getvalue(), content_type='image/png')

    def test_upload_logo(self):
        response = self.client.post(f'/api/v1/clients/{self.acme.id}/logo/', {'logo': self._png()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.acme.refresh_from_db()
        self.assertTrue(self.acme.logo.name.startswith('client_logos/'))

    def test_upload_rejects_non_image(self):
        bogus = SimpleUploadedFile('logo.png', b'not an image', content_type='image/png')
        response = self.client.post(f'/api/v1/clients/{self.acme.id}/logo/', {'logo': bogus}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class DepartmentAPITests(TestCase):
    """Test department validation rules and capacity figures"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.acme = TestDataFactory.create_client(name='Acme')

    def _create(self, **overrides):
        data = {'name': 'Engineering', 'client': self.acme.id, 'workstream_count': 2}
        data.update(overrides)
        return self.client.post('/api/v1/departments/', data, format='json')

    def test_create_department(self):
        response = self._create()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['workstream_capacity'], 32)
        self.assertEqual(response.data['total_capacity'], 64)

    def test_inactive_client(self):
        self.acme.status = 'inactive'
        self.acme.save()
        response = self._create()
        self.assertEqual(response.data['error'], 'Cannot create department for inactive client')

    def test_duplicate_name(self):
        self._create()
        response = self._create(name='engineering')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'A department with this name already exists for this client')

    def test_workstream_count_must_be_positive(self):
        response = self._create(workstream_count=0)
        self.assertEqual(response.data['error'], 'Workstream count must be greater than 0')

    def test_sprint_duration_range(self):
        response = self._create(sprint_duration=5)
        self.assertEqual(response.data['error'], 'Sprint duration must be between 1 and 4 weeks')

    def test_labels_must_match_count(self):
        response = self._create(workstream_labels=['Frontend'])
        self.assertEqual(response.data['error'], 'Number of workstream labels must match workstream count')

    def test_labels_checked_against_default_count(self):
        response = self.client.post('/api/v1/departments/', {
            'name': 'Design', 'client': self.acme.id, 'workstream_labels': ['A', 'B'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Number of workstream labels must match workstream count')

    def test_working_days_must_be_integers(self):
        for days in (['mon'], [True], 'mon'):
            response = self._create(working_days=days)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data['error'], 'Days of week must be between 0 (Sunday) and 6 (Saturday)')

    def test_time_format(self):
        response = self._create(working_hours_start='9am')
        self.assertEqual(response.data['error'], 'Invalid time format. Use HH:MM format (e.g., "09:00")')

    def test_working_days_range(self):
        response = self._create(working_days=[1, 7])
        self.assertEqual(response.data['error'], 'Days of week must be between 0 (Sunday) and 6 (Saturday)')

    def test_patch_validates_against_stored_values(self):
        department = TestDataFactory.create_department(client=self.acme, workstream_count=2)
        response = self.client.patch(f'/api/v1/departments/{department.id}/', {'workstream_labels': ['A', 'B', 'C']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_with_active_projects(self):
        department = TestDataFactory.create_department(client=self.acme)
        TestDataFactory.create_project(department=department, status='planning')
        response = self.client.delete(f'/api/v1/departments/{department.id}/')
        self.assertEqual(response.data['error'], 'Cannot delete department with active projects. Please complete projects first.')

    def test_delete_deactivates(self):
        department = TestDataFactory.create_department(client=self.acme)
        response = self.client.delete(f'/api/v1/departments/{department.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        department.refresh_from_db()
        self.assertEqual(department.status, 'inactive')

    def test_capacity_endpoint(self):
        department = TestDataFactory.create_department(client=self.acme, workstream_count=2, workstream_capacity=40)
        add_velocity_entry(department, 40)
        add_velocity_entry(department, 21)
        response = self.client.get(f'/api/v1/departments/{department.id}/capacity/')
        self.assertEqual(response.data['total_capacity'], 80)
        self.assertEqual(response.data['average_velocity'], 30)
        self.assertEqual(response.data['utilization'], 38)

    def test_velocity_history_keeps_last_ten(self):
        department = TestDataFactory.create_department(client=self.acme)
        for points in range(12):
            response = self.client.post(f'/api/v1/departments/{department.id}/velocity/', {'completed_points': points}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        department.refresh_from_db()
        self.assertEqual(len(department.velocity_history), 10)
        self.assertEqual(department.velocity_history[0]['completed_points'], 2)

    def test_capacity_without_history(self):
        department = TestDataFactory.create_department(client=self.acme)
        data = department_capacity(department)
        self.assertEqual(data['average_velocity'], 0)
        self.assertEqual(data['utilization'], 0)


class ProjectKeyTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.acme = TestDataFactory.create_client(name='Acme Widgets', project_key=None)

    def test_default_key_from_client_name(self):
        response = self.client.post('/api/v1/project-keys/', {'client': self.acme.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['key'], 'ACM')
        self.assertEqual(response.data['last_task_number'], 0)

    def test_duplicate_key(self):
        self.client.post('/api/v1/project-keys/', {'client': self.acme.id, 'key': 'ACM'}, format='json')
        response = self.client.post('/api/v1/project-keys/', {'client': self.acme.id, 'key': 'acm'}, format='json')
        self.assertEqual(response.data['error'], 'Project key already exists')

    def test_new_default_clears_previous(self):
        first = self.client.post('/api/v1/project-keys/', {'client': self.acme.id, 'key': 'ONE', 'is_default': True}, format='json')
        self.client.post('/api/v1/project-keys/', {'client': self.acme.id, 'key': 'TWO', 'is_default': True}, format='json')
        self.assertFalse(ProjectKey.objects.get(pk=first.data['id']).is_default)
        self.assertTrue(ProjectKey.objects.get(key='TWO').is_default)

    def test_list_requires_admin_or_pm(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='task_owner'))
        response = self.client.get('/api/v1/project-keys/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_default_key_padding(self):
        self.assertEqual(default_key_for_name('Q1'), 'QXX')
        self.assertEqual(default_key_for_name('acme'), 'ACM')


class SlugTests(TestCase):
    """Test counter allocation and slug lookup"""

    def setUp(self):
        self.acme = TestDataFactory.create_client(name='Acme', project_key='ACME')
        self.department = TestDataFactory.create_department(client=self.acme)

    def test_counters_are_sequential_per_kind(self):
        self.assertEqual(next_number(self.acme, 'task'), ('ACME', 1))
        self.assertEqual(next_number(self.acme, 'task'), ('ACME', 2))
        self.assertEqual(next_number(self.acme, 'sprint'), ('ACME', 1))
        key = ProjectKey.objects.get(key='ACME')
        self.assertTrue(key.is_default)
        self.assertEqual(key.last_task_number, 2)

    def test_missing_project_key(self):
        client = TestDataFactory.create_client(project_key=None)
        with self.assertRaises(DomainError) as ctx:
            next_number(client, 'task')
        self.assertEqual(ctx.exception.message, 'Client does not have a project key. Please update the client first.')

    def test_inactive_key_not_incremented(self):
        next_number(self.acme, 'task')
        ProjectKey.objects.filter(key='ACME').update(is_active=False)
        with self.assertRaises(DomainError) as ctx:
            next_number(self.acme, 'task')
        self.assertEqual(ctx.exception.message, 'Project key ACME is inactive')
        key = ProjectKey.objects.get(key='ACME')
        self.assertEqual(key.last_task_number, 1)

    def test_assign_slug_formats(self):
        task = TestDataFactory.create_task(department=self.department)
        sprint = TestDataFactory.create_sprint(department=self.department)
        project = TestDataFactory.create_project(department=self.department)
        self.assertEqual(assign_slug(task, 'task', self.acme), 'ACME-1')
        self.assertEqual(assign_slug(sprint, 'sprint', self.acme), 'ACME-S-1')
        self.assertEqual(assign_slug(project, 'project', self.acme), 'ACME-P-1')
        task.refresh_from_db()
        self.assertEqual((task.slug_key, task.slug_number), ('ACME', 1))
        # Existing slugs are kept
        self.assertEqual(assign_slug(task, 'task', self.acme), 'ACME-1')

    def test_classify(self):
        self.assertEqual(classify_slug('ACME-S-4'), 'sprint')
        self.assertEqual(classify_slug('ACME-P-2'), 'project')
        self.assertEqual(classify_slug('ACME-12'), 'task')
        self.assertIsNone(classify_slug('whatever'))

    def test_resolve_trims_and_uppercases(self):
        task = TestDataFactory.create_task(department=self.department)
        assign_slug(task, 'task', self.acme)
        kind, found = resolve_slug('  acme-1 ')
        self.assertEqual(kind, 'task')
        self.assertEqual(found.pk, task.pk)

    def test_get_by_slug_endpoint(self):
        admin = TestDataFactory.create_admin()
        api = AuthenticatedAPIClient()
        api.authenticate_user(admin)
        sprint = TestDataFactory.create_sprint(department=self.department)
        assign_slug(sprint, 'sprint', self.acme)
        response = api.get('/api/v1/slugs/ACME-S-1/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['type'], 'sprint')
        self.assertEqual(response.data['id'], sprint.id)

        response = api.get('/api/v1/slugs/ACME-99/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_get_by_slug_respects_visibility(self):
        task = TestDataFactory.create_task(department=self.department, visibility='private')
        assign_slug(task, 'task', self.acme)
        api = AuthenticatedAPIClient()
        api.authenticate_user(TestDataFactory.create_user(role='task_owner', departments=[self.department]))
        response = api.get('/api/v1/slugs/ACME-1/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
