"""
Test suite for the tasks module
Tests: sizing, task CRUD rules, visibility, sprint assignment, stats and My Work
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from strideos.clients.models import Client
from strideos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from strideos.notifications.models import Notification
from strideos.tasks.models import Task
from strideos.tasks.permissions import can_view_task, can_edit_task
from strideos.tasks.sizing import parse_size_hours, task_hours


class SizingTests(TestCase):
    def test_tshirt_sizes(self):
        self.assertEqual(parse_size_hours('XS'), 4)
        self.assertEqual(parse_size_hours('m'), 32)
        self.assertEqual(parse_size_hours('XL'), 64)

    def test_free_form_sizes(self):
        self.assertEqual(parse_size_hours('3d'), 24)
        self.assertEqual(parse_size_hours('2w'), 80)
        self.assertEqual(parse_size_hours('6h'), 6)

    def test_unknown_size(self):
        self.assertIsNone(parse_size_hours('huge'))
        self.assertIsNone(parse_size_hours(None))

    def test_task_hours_prefers_actual(self):
        task = Task(size='L', estimated_hours=10, actual_hours=12)
        self.assertEqual(task_hours(task), 12)
        task.actual_hours = None
        self.assertEqual(task_hours(task), 10)
        task.estimated_hours = None
        self.assertEqual(task_hours(task), 48)


class TaskCreateTests(TestCase):
    def setUp(self):
        self.pm = TestDataFactory.create_user(role='pm')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.pm)
        self.acme = TestDataFactory.create_client(name='Acme', project_key='ACME')
        self.department = TestDataFactory.create_department(client=self.acme, members=[self.pm])
        self.project = TestDataFactory.create_project(department=self.department)

    def _payload(self, **overrides):
        data = {
            'title': 'Build landing page',
            'client': self.acme.id,
            'department': self.department.id,
            'project': self.project.id,
        }
        data.update(overrides)
        return data

    def test_create_defaults(self):
        response = self.client.post('/api/v1/tasks/', self._payload(size='M'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'ACME-1')
        self.assertEqual(response.data['estimated_hours'], 32)
        self.assertEqual(response.data['backlog_order'], 1)
        self.assertEqual(response.data['category'], 'feature')
        self.assertEqual(response.data['visibility'], 'department')
        self.assertEqual(response.data['version'], 1)
        self.assertEqual(response.data['labels'], [])

    def test_backlog_order_increments(self):
        self.client.post('/api/v1/tasks/', self._payload(), format='json')
        response = self.client.post('/api/v1/tasks/', self._payload(title='Second'), format='json')
        self.assertEqual(response.data['backlog_order'], 2)
        self.assertEqual(response.data['slug'], 'ACME-2')

    def test_explicit_estimate_wins(self):
        response = self.client.post('/api/v1/tasks/', self._payload(size='XL', size_hours=20, estimated_hours=5), format='json')
        self.assertEqual(response.data['estimated_hours'], 5)

    def test_without_project_has_no_slug(self):
        response = self.client.post('/api/v1/tasks/', self._payload(project=None), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['slug'])

    def test_department_must_match_client(self):
        other = TestDataFactory.create_department()
        response = self.client.post('/api/v1/tasks/', self._payload(department=other.id, project=None), format='json')
        self.assertEqual(response.data['error'], 'Department does not belong to client')

    def test_assignment_notification(self):
        owner = TestDataFactory.create_user()
        self.client.post('/api/v1/tasks/', self._payload(assignee=owner.id), format='json')
        self.assertTrue(Notification.objects.filter(user=owner, type='task_assigned').exists())

    def test_no_notification_for_self_assignment(self):
        self.client.post('/api/v1/tasks/', self._payload(assignee=self.pm.id), format='json')
        self.assertFalse(Notification.objects.filter(user=self.pm, type='task_assigned').exists())

    def test_task_owner_cannot_create(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='task_owner'))
        response = self.client.post('/api/v1/tasks/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TaskUpdateTests(TestCase):
    def setUp(self):
        self.department = TestDataFactory.create_department()
        self.owner = TestDataFactory.create_user(role='task_owner', departments=[self.department])
        self.pm = TestDataFactory.create_user(role='pm', departments=[self.department])
        self.task = TestDataFactory.create_task(department=self.department, assignee=self.owner)
        self.client = AuthenticatedAPIClient()

    def test_done_sets_and_clears_completed_date(self):
        self.client.authenticate_user(self.owner)
        response = self.client.patch(f'/api/v1/tasks/{self.task.id}/', {'status': 'done'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['completed_date'])
        self.assertEqual(response.data['version'], 2)
        response = self.client.patch(f'/api/v1/tasks/{self.task.id}/', {'status': 'review'}, format='json')
        self.assertIsNone(response.data['completed_date'])
        self.assertEqual(response.data['version'], 3)

    def test_size_hours_resyncs_estimate(self):
        self.client.authenticate_user(self.pm)
        response = self.client.patch(f'/api/v1/tasks/{self.task.id}/', {'size_hours': 12}, format='json')
        self.assertEqual(response.data['estimated_hours'], 12)
        response = self.client.patch(f'/api/v1/tasks/{self.task.id}/', {'size_hours': 20, 'estimated_hours': 3}, format='json')
        self.assertEqual(response.data['estimated_hours'], 3)

    def test_status_change_notifies_assignee(self):
        self.client.authenticate_user(self.pm)
        self.client.patch(f'/api/v1/tasks/{self.task.id}/', {'status': 'in_progress'}, format='json')
        self.assertTrue(Notification.objects.filter(user=self.owner, type='task_status_changed').exists())

    def test_other_task_owner_cannot_edit(self):
        other = TestDataFactory.create_user(role='task_owner', departments=[self.department])
        self.client.authenticate_user(other)
        response = self.client.patch(f'/api/v1/tasks/{self.task.id}/', {'title': 'Hijack'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pm_of_other_department_cannot_edit(self):
        outsider = TestDataFactory.create_user(role='pm')
        self.assertFalse(can_edit_task(outsider, self.task))

    def test_task_owner_cannot_delete(self):
        self.client.authenticate_user(self.owner)
        response = self.client.delete(f'/api/v1/tasks/{self.task.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pm_deletes(self):
        self.client.authenticate_user(self.pm)
        response = self.client.delete(f'/api/v1/tasks/{self.task.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Task.objects.filter(pk=self.task.pk).exists())


class TaskVisibilityTests(TestCase):
    def setUp(self):
        self.acme = TestDataFactory.create_client(name='Acme')
        self.department = TestDataFactory.create_department(client=self.acme)
        self.owner = TestDataFactory.create_user(role='task_owner', departments=[self.department])
        self.client_user = TestDataFactory.create_user(role='client', client=self.acme)

    def test_client_user_sees_only_client_visibility(self):
        shared = TestDataFactory.create_task(department=self.department, visibility='client')
        internal = TestDataFactory.create_task(department=self.department, visibility='department')
        self.assertTrue(can_view_task(self.client_user, shared))
        self.assertFalse(can_view_task(self.client_user, internal))

    def test_task_owner_and_private_tasks(self):
        private = TestDataFactory.create_task(department=self.department, visibility='private')
        self.assertFalse(can_view_task(self.owner, private))
        private.assignee = self.owner
        self.assertTrue(can_view_task(self.owner, private))

    def test_list_applies_visibility(self):
        TestDataFactory.create_task(department=self.department, title='Team task', visibility='team')
        TestDataFactory.create_task(department=self.department, title='Secret', visibility='private')
        TestDataFactory.create_task(title='Other department')
        api = AuthenticatedAPIClient()
        api.authenticate_user(self.owner)
        response = api.get('/api/v1/tasks/')
        self.assertEqual([t['title'] for t in response.data], ['Team task'])

    def test_list_filters(self):
        sprint = TestDataFactory.create_sprint(department=self.department)
        TestDataFactory.create_task(department=self.department, title='Planned', sprint=sprint)
        TestDataFactory.create_task(department=self.department, title='Loose', priority='urgent')
        api = AuthenticatedAPIClient()
        api.authenticate_user(TestDataFactory.create_admin())
        response = api.get('/api/v1/tasks/', {'backlog': 'true'})
        self.assertEqual([t['title'] for t in response.data], ['Loose'])
        response = api.get('/api/v1/tasks/', {'sprint': sprint.id})
        self.assertEqual([t['title'] for t in response.data], ['Planned'])
        response = api.get('/api/v1/tasks/', {'priority': 'urgent', 'search': 'loo'})
        self.assertEqual(len(response.data), 1)


class TaskStatsAndSprintTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.department = TestDataFactory.create_department(workstream_count=1)

    def test_stats(self):
        TestDataFactory.create_task(department=self.department, status='done', story_points=5)
        TestDataFactory.create_task(department=self.department, story_points=3, priority='high',
                                    due_date=timezone.now() - timedelta(days=1))
        response = self.client.get('/api/v1/tasks/stats/')
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['by_status']['done'], 1)
        self.assertEqual(response.data['by_priority']['high'], 1)
        self.assertEqual(response.data['total_story_points'], 8)
        self.assertEqual(response.data['completed_story_points'], 5)
        self.assertEqual(response.data['overdue'], 1)

    def test_assign_to_sprint_reports_capacity(self):
        sprint = TestDataFactory.create_sprint(department=self.department, total_capacity=32)
        first = TestDataFactory.create_task(department=self.department, estimated_hours=20)
        second = TestDataFactory.create_task(department=self.department, estimated_hours=20)
        self.client.post(f'/api/v1/tasks/{first.id}/assign-sprint/', {'sprint': sprint.id}, format='json')
        response = self.client.post(f'/api/v1/tasks/{second.id}/assign-sprint/', {'sprint': sprint.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['task']['sprint_order'], 2)
        self.assertEqual(response.data['capacity']['status'], 'over')
        self.assertEqual(response.data['capacity']['over_by'], 8)

    def test_move_back_to_backlog(self):
        sprint = TestDataFactory.create_sprint(department=self.department)
        task = TestDataFactory.create_task(department=self.department, sprint=sprint, sprint_order=4)
        response = self.client.post(f'/api/v1/tasks/{task.id}/assign-sprint/', {'sprint': None}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        task.refresh_from_db()
        self.assertIsNone(task.sprint)
        self.assertIsNone(task.sprint_order)

    def test_active_sprint_tasks(self):
        active = TestDataFactory.create_sprint(department=self.department, status='active')
        planning = TestDataFactory.create_sprint(department=self.department)
        TestDataFactory.create_task(department=self.department, title='On board', sprint=active)
        TestDataFactory.create_task(department=self.department, title='Archived', sprint=active, status='archived')
        TestDataFactory.create_task(department=self.department, title='Next', sprint=planning)
        response = self.client.get('/api/v1/tasks/active-sprint/')
        self.assertEqual([t['title'] for t in response.data], ['On board'])


class MyWorkTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.department = TestDataFactory.create_department(members=[self.user])

    def test_my_work_sections(self):
        TestDataFactory.create_task(department=self.department, assignee=self.user, status='in_progress', title='Focus')
        TestDataFactory.create_task(department=self.department, assignee=self.user, title='Queued')
        TestDataFactory.create_task(department=self.department, assignee=self.user, status='done', title='Recent',
                                    completed_date=timezone.now() - timedelta(days=2))
        TestDataFactory.create_task(department=self.department, assignee=self.user, status='done', title='Old',
                                    completed_date=timezone.now() - timedelta(days=45))
        response = self.client.get('/api/v1/my-work/')
        self.assertEqual([t['title'] for t in response.data['current_focus']], ['Focus'])
        self.assertEqual(sorted(t['title'] for t in response.data['active']), ['Focus', 'Queued'])
        self.assertEqual([t['title'] for t in response.data['completed']], ['Recent'])

    def test_reorder_sets_index_and_status(self):
        a = TestDataFactory.create_task(department=self.department, assignee=self.user)
        b = TestDataFactory.create_task(department=self.department, assignee=self.user)
        response = self.client.post('/api/v1/my-work/reorder/', {'task_ids': [b.id, a.id], 'target_status': 'done'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        a.refresh_from_db()
        b.refresh_from_db()
        self.assertEqual((b.personal_order_index, a.personal_order_index), (0, 1))
        self.assertEqual(a.status, 'done')
        self.assertIsNotNone(a.completed_date)

    def test_reorder_rejects_foreign_task(self):
        mine = TestDataFactory.create_task(department=self.department, assignee=self.user)
        theirs = TestDataFactory.create_task(department=self.department)
        response = self.client.post('/api/v1/my-work/reorder/', {'task_ids': [mine.id, theirs.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], f'Task {theirs.id} not found or not assigned to user')
        mine.refresh_from_db()
        self.assertIsNone(mine.personal_order_index)

    def test_personal_todo_uses_first_department(self):
        TestDataFactory.create_task(department=self.department, assignee=self.user)
        response = self.client.post('/api/v1/my-work/todos/', {'title': 'Call the bank'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['task_type'], 'personal')
        self.assertEqual(response.data['visibility'], 'private')
        self.assertEqual(response.data['department'], self.department.id)
        self.assertEqual(response.data['personal_order_index'], 1)

    def test_personal_todo_without_department(self):
        loner = TestDataFactory.create_user()
        self.client.authenticate_user(loner)
        response = self.client.post('/api/v1/my-work/todos/', {'title': 'Water plants'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        personal = Client.objects.get(name='Personal')
        self.assertEqual(response.data['client'], personal.id)
        self.client.post('/api/v1/my-work/todos/', {'title': 'Again'}, format='json')
        self.assertEqual(Client.objects.filter(name='Personal').count(), 1)
