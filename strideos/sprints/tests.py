"""
Test suite for the sprints module
Tests: capacity math, sprint lifecycle, date rules, stats, backlogs and the capacity command
"""
from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from strideos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from strideos.notifications.models import Notification
from strideos.sprints.capacity import capacity_status, duration_in_weeks
from strideos.sprints.models import Sprint
from strideos.sprints.permissions import can_view_sprint
from strideos.tasks.models import Task


class CapacityTests(TestCase):
    def test_capacity_status_bands(self):
        self.assertEqual(capacity_status(40, 64)['status'], 'under')
        self.assertEqual(capacity_status(52, 64)['status'], 'target')
        over = capacity_status(80, 64)
        self.assertEqual(over['status'], 'over')
        self.assertEqual(over['over_by'], 16)
        self.assertEqual(over['percent'], 125)

    def test_zero_capacity(self):
        result = capacity_status(10, 0)
        self.assertEqual(result['percent'], 0)
        self.assertEqual(result['status'], 'under')

    def test_duration_rounds_up(self):
        start = timezone.now()
        self.assertEqual(duration_in_weeks(start, start + timedelta(days=14)), 2)
        self.assertEqual(duration_in_weeks(start, start + timedelta(days=15)), 3)
        self.assertEqual(duration_in_weeks(start, start + timedelta(days=1)), 1)


class SprintCreateTests(TestCase):
    def setUp(self):
        self.pm = TestDataFactory.create_user(role='pm')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.pm)
        self.acme = TestDataFactory.create_client(name='Acme', project_key='ACME')
        self.department = TestDataFactory.create_department(client=self.acme, workstream_count=2)
        self.start = timezone.now()

    def _create(self, **overrides):
        data = {
            'name': 'Sprint 1',
            'department': self.department.id,
            'start_date': self.start.isoformat(),
            'end_date': (self.start + timedelta(weeks=2)).isoformat(),
        }
        data.update(overrides)
        return self.client.post('/api/v1/sprints/', data, format='json')

    def test_create_defaults(self):
        response = self._create()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'planning')
        self.assertEqual(response.data['client'], self.acme.id)
        self.assertEqual(response.data['total_capacity'], 64)
        self.assertEqual(response.data['duration'], 2)
        self.assertEqual(response.data['slug'], 'ACME-S-1')

    def test_explicit_capacity_kept(self):
        response = self._create(total_capacity=40)
        self.assertEqual(response.data['total_capacity'], 40)

    def test_start_must_precede_end(self):
        response = self._create(end_date=self.start.isoformat())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Start date must be before end date')

    def test_overlap_with_active_sprint(self):
        TestDataFactory.create_sprint(department=self.department, status='active', start_date=self.start)
        response = self._create(start_date=(self.start + timedelta(weeks=1)).isoformat(),
                                end_date=(self.start + timedelta(weeks=3)).isoformat())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Sprint dates overlap with existing active sprint')

    def test_planning_sprints_may_overlap(self):
        TestDataFactory.create_sprint(department=self.department, status='planning', start_date=self.start)
        response = self._create()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_task_owner_cannot_create(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='task_owner'))
        response = self._create()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SprintVisibilityTests(TestCase):
    def setUp(self):
        self.acme = TestDataFactory.create_client(name='Acme')
        self.department = TestDataFactory.create_department(client=self.acme)
        self.sprint = TestDataFactory.create_sprint(department=self.department)

    def test_department_member_sees_sprint(self):
        member = TestDataFactory.create_user(departments=[self.department])
        outsider = TestDataFactory.create_user()
        self.assertTrue(can_view_sprint(member, self.sprint))
        self.assertFalse(can_view_sprint(outsider, self.sprint))

    def test_client_user_sees_own_client(self):
        client_user = TestDataFactory.create_user(role='client', client=self.acme)
        other = TestDataFactory.create_user(role='client', client=TestDataFactory.create_client())
        self.assertTrue(can_view_sprint(client_user, self.sprint))
        self.assertFalse(can_view_sprint(other, self.sprint))

    def test_team_member_outside_department(self):
        member = TestDataFactory.create_user()
        self.sprint.team_members.add(member)
        self.assertTrue(can_view_sprint(member, self.sprint))
        api = AuthenticatedAPIClient()
        api.authenticate_user(member)
        response = api.get('/api/v1/sprints/')
        self.assertEqual([s['id'] for s in response.data], [self.sprint.id])
        response = api.get(f'/api/v1/sprints/{self.sprint.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_list_is_filtered(self):
        TestDataFactory.create_sprint(name='Elsewhere')
        member = TestDataFactory.create_user(departments=[self.department])
        api = AuthenticatedAPIClient()
        api.authenticate_user(member)
        response = api.get('/api/v1/sprints/')
        self.assertEqual([s['id'] for s in response.data], [self.sprint.id])


class SprintLifecycleTests(TestCase):
    def setUp(self):
        self.pm = TestDataFactory.create_user(role='pm')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.pm)
        self.department = TestDataFactory.create_department()
        self.sprint = TestDataFactory.create_sprint(department=self.department)
        self.dev = TestDataFactory.create_user(departments=[self.department])

    def test_start_sprint(self):
        TestDataFactory.create_task(department=self.department, sprint=self.sprint, assignee=self.dev, estimated_hours=8)
        response = self.client.post(f'/api/v1/sprints/{self.sprint.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'active')
        self.assertEqual(response.data['committed_points'], 8)
        self.assertTrue(Notification.objects.filter(user=self.dev, type='sprint_started').exists())

    def test_only_planning_can_start(self):
        self.sprint.status = 'complete'
        self.sprint.save()
        response = self.client.post(f'/api/v1/sprints/{self.sprint.id}/start/')
        self.assertEqual(response.data['error'], 'Only planning sprints can be started')

    def test_one_active_sprint_per_department(self):
        TestDataFactory.create_sprint(department=self.department, status='active',
                                      start_date=timezone.now() - timedelta(weeks=4))
        response = self.client.post(f'/api/v1/sprints/{self.sprint.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'],
                         'Cannot start sprint while another sprint is active in the same department')

    def test_complete_sprint(self):
        self.sprint.status = 'active'
        self.sprint.save()
        TestDataFactory.create_task(department=self.department, sprint=self.sprint, status='done',
                                    estimated_hours=8, assignee=self.dev)
        TestDataFactory.create_task(department=self.department, sprint=self.sprint, status='done', size='S')
        unfinished = TestDataFactory.create_task(department=self.department, sprint=self.sprint,
                                                 status='in_progress', sprint_order=1)

        response = self.client.post(f'/api/v1/sprints/{self.sprint.id}/complete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'complete')
        self.assertEqual(response.data['actual_velocity'], 24)
        self.assertEqual(response.data['completed_points'], 24)
        self.assertEqual(response.data['returned_to_backlog'], 1)

        unfinished.refresh_from_db()
        self.assertIsNone(unfinished.sprint)
        self.assertIsNone(unfinished.sprint_order)
        self.department.refresh_from_db()
        self.assertEqual(self.department.velocity_history[-1]['completed_points'], 24)
        self.assertEqual(self.department.velocity_history[-1]['sprint_id'], self.sprint.id)
        self.assertTrue(Notification.objects.filter(user=self.dev, type='sprint_completed').exists())

    def test_only_active_can_complete(self):
        response = self.client.post(f'/api/v1/sprints/{self.sprint.id}/complete/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Only active sprints can be completed')

    def test_cannot_delete_with_tasks(self):
        TestDataFactory.create_task(department=self.department, sprint=self.sprint)
        response = self.client.delete(f'/api/v1/sprints/{self.sprint.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'],
                         'Cannot delete sprint with assigned tasks. Please move tasks to backlog first.')

    def test_delete_empty_sprint(self):
        response = self.client.delete(f'/api/v1/sprints/{self.sprint.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Sprint.objects.filter(pk=self.sprint.id).exists())

    def test_detail_includes_progress(self):
        TestDataFactory.create_task(department=self.department, sprint=self.sprint, status='done', estimated_hours=4)
        TestDataFactory.create_task(department=self.department, sprint=self.sprint, estimated_hours=12)
        response = self.client.get(f'/api/v1/sprints/{self.sprint.id}/')
        self.assertEqual(response.data['total_tasks'], 2)
        self.assertEqual(response.data['completed_tasks'], 1)
        self.assertEqual(response.data['progress'], 50)
        self.assertEqual(response.data['committed_hours'], 16)
        self.assertEqual(response.data['capacity_status']['status'], 'under')


class SprintStatsTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.department = TestDataFactory.create_department(workstream_count=2)

    def test_stats(self):
        active = TestDataFactory.create_sprint(department=self.department, status='active', total_capacity=64)
        TestDataFactory.create_task(department=self.department, sprint=active, estimated_hours=16)
        for weeks_ago, velocity in ((8, 10), (6, 20)):
            sprint = TestDataFactory.create_sprint(department=self.department, status='complete',
                                                   start_date=timezone.now() - timedelta(weeks=weeks_ago))
            sprint.actual_velocity = velocity
            sprint.save()

        response = self.client.get('/api/v1/sprints/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['by_status']['complete'], 2)
        self.assertEqual(response.data['total_capacity'], 64)
        self.assertEqual(response.data['committed_hours'], 16)
        self.assertEqual(response.data['utilization'], 25)
        self.assertEqual(response.data['average_velocity'], 15)

    def test_by_department(self):
        TestDataFactory.create_sprint(department=self.department, status='active')
        response = self.client.get('/api/v1/sprints/by-department/', {'client': self.department.client_id})
        self.assertEqual(len(response.data), 1)
        row = response.data[0]
        self.assertEqual(row['sprint_counts']['active'], 1)
        self.assertEqual(row['capacity'], 64)
        self.assertIsNotNone(row['active_sprint'])

    def test_department_capacity(self):
        response = self.client.get(f'/api/v1/departments/{self.department.id}/sprint-capacity/')
        self.assertEqual(response.data['calculated_capacity'], 64)
        self.assertEqual(response.data['capacity_per_week'], 32)
        self.assertEqual(response.data['capacity_per_workstream'], 32)


class BacklogTests(TestCase):
    def setUp(self):
        self.pm = TestDataFactory.create_user(role='pm')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.pm)
        self.department = TestDataFactory.create_department(members=[self.pm])
        self.project = TestDataFactory.create_project(department=self.department)
        self.sprint = TestDataFactory.create_sprint(department=self.department)

    def test_department_backlog_grouped_and_ordered(self):
        TestDataFactory.create_task(project=self.project, title='Low', priority='low')
        TestDataFactory.create_task(project=self.project, title='Urgent', priority='urgent')
        TestDataFactory.create_task(department=self.department, title='Loose', priority='high')
        TestDataFactory.create_task(project=self.project, title='Planned', sprint=self.sprint)
        TestDataFactory.create_task(project=self.project, title='Finished', status='done')

        response = self.client.get(f'/api/v1/departments/{self.department.id}/backlog/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 3)
        groups = {group['project_id']: [t['title'] for t in group['tasks']] for group in response.data['groups']}
        self.assertEqual(groups[self.project.id], ['Urgent', 'Low'])
        self.assertEqual(groups[None], ['Loose'])

    def test_department_backlog_with_current_sprint(self):
        TestDataFactory.create_task(project=self.project, title='Planned', sprint=self.sprint)
        response = self.client.get(f'/api/v1/departments/{self.department.id}/backlog/',
                                   {'current_sprint': self.sprint.id})
        self.assertEqual(response.data['total'], 1)

    def test_sprint_backlog_tasks_paged(self):
        for index in range(3):
            TestDataFactory.create_task(department=self.department, title=f'Todo {index}')
        TestDataFactory.create_task(department=self.department, title='Urgent', priority='urgent')
        TestDataFactory.create_task(department=self.department, title='In sprint', sprint=self.sprint)
        TestDataFactory.create_task(department=self.department, title='Started', status='in_progress')

        response = self.client.get(f'/api/v1/sprints/{self.sprint.id}/backlog-tasks/', {'limit': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 4)
        self.assertTrue(response.data['has_more'])
        self.assertEqual(response.data['tasks'][0]['title'], 'Urgent')

        response = self.client.get(f'/api/v1/sprints/{self.sprint.id}/backlog-tasks/', {'offset': 2, 'limit': 2})
        self.assertEqual(len(response.data['tasks']), 2)
        self.assertFalse(response.data['has_more'])


class RecalculateCapacityCommandTests(TestCase):
    def test_updates_open_sprints(self):
        department = TestDataFactory.create_department(workstream_count=3)
        planning = TestDataFactory.create_sprint(department=department, total_capacity=10)
        done = TestDataFactory.create_sprint(department=department, status='complete', total_capacity=10,
                                             start_date=timezone.now() - timedelta(weeks=6))
        out = StringIO()
        call_command('recalculate_sprint_capacity', stdout=out)
        planning.refresh_from_db()
        done.refresh_from_db()
        self.assertEqual(planning.total_capacity, 96)
        self.assertEqual(done.total_capacity, 10)
        self.assertIn('Updated capacity of 1 sprints', out.getvalue())

    def test_dry_run(self):
        sprint = TestDataFactory.create_sprint(total_capacity=10)
        call_command('recalculate_sprint_capacity', '--dry-run', stdout=StringIO())
        sprint.refresh_from_db()
        self.assertEqual(sprint.total_capacity, 10)
