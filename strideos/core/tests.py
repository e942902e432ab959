"""
Test suite for the core module
Tests: authentication, user administration, organization settings, audit logs and search
"""
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from rest_framework import status

from strideos.core.cache_utils import get_cached, set_cached, invalidate_dashboard_cache
from strideos.core.models import User, Organization, AuditLog
from strideos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from strideos.core.utils import parse_limit, parse_bool


class AuthTests(TestCase):
    """Test login, refresh and invitation acceptance"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(username='alice', password='s3cret-pass!', role='pm')

    def test_login_returns_tokens_and_user(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'alice', 'password': 's3cret-pass!'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], 'pm')
        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.last_login_at)

    def test_login_rejected_for_inactive_status(self):
        """A user whose status is inactive cannot log in even if is_active is still set"""
        User.objects.filter(pk=self.user.pk).update(status='inactive')
        response = self.client.post('/api/v1/auth/login/', {'username': 'alice', 'password': 's3cret-pass!'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token(self):
        login = self.client.post('/api/v1/auth/login/', {'username': 'alice', 'password': 's3cret-pass!'}, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_accept_invitation_sets_password(self):
        invited = TestDataFactory.create_user(status='invited')
        invited.invitation_token = 'invite-token-123'
        invited.save()
        response = self.client.post('/api/v1/auth/accept-invitation/', {
            'token': 'invite-token-123',
            'password': 'Another-pass-99',
            'password_confirm': 'Another-pass-99',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        invited.refresh_from_db()
        self.assertEqual(invited.status, 'active')
        self.assertIsNone(invited.invitation_token)
        self.assertTrue(invited.check_password('Another-pass-99'))

    def test_accept_invitation_unknown_token(self):
        response = self.client.post('/api/v1/auth/accept-invitation/', {
            'token': 'nope',
            'password': 'Another-pass-99',
            'password_confirm': 'Another-pass-99',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unauthenticated_request_rejected(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ProfileTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='task_owner')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_get_me(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.user.id)
        self.assertFalse(response.data['is_admin'])

    def test_patch_me_only_changes_profile_fields(self):
        response = self.client.patch('/api/v1/auth/me/', {'name': 'Renamed', 'role': 'admin', 'theme_preference': 'dark'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, 'Renamed')
        self.assertEqual(self.user.theme_preference, 'dark')
        self.assertEqual(self.user.role, 'task_owner')


class UserAdministrationTests(TestCase):
    """Test admin-only user management endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin(username='admin1')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.acme = TestDataFactory.create_client(name='Acme', project_key='ACM')
        self.acme_dept = TestDataFactory.create_department(client=self.acme, name='Design')
        self.other_dept = TestDataFactory.create_department(name='Elsewhere')

    def test_non_admin_cannot_list_users(self):
        pm = TestDataFactory.create_user(role='pm')
        self.client.authenticate_user(pm)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_user_is_invited(self):
        response = self.client.post('/api/v1/users/', {
            'email': 'New.Person@Example.com',
            'name': 'New Person',
            'role': 'task_owner',
            'client': self.acme.id,
            'departments': [self.acme_dept.id],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='new.person@example.com')
        self.assertEqual(user.status, 'invited')
        self.assertEqual(user.invited_by, self.admin)
        self.assertIsNotNone(user.invitation_token)
        self.assertFalse(user.has_usable_password())
        self.assertEqual(list(user.departments.all()), [self.acme_dept])
        self.assertTrue(AuditLog.objects.filter(action='invite', model_name='User', object_id=str(user.id)).exists())

    def test_create_user_duplicate_email(self):
        TestDataFactory.create_user(email='taken@example.com')
        response = self.client.post('/api/v1/users/', {'email': 'TAKEN@example.com', 'name': 'Dup'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('A user with this email already exists', str(response.data['email']))

    def test_create_user_department_from_other_client(self):
        response = self.client.post('/api/v1/users/', {
            'email': 'x@example.com',
            'client': self.acme.id,
            'departments': [self.other_dept.id],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Department does not belong to the selected client', str(response.data))

    def test_list_users_filters(self):
        TestDataFactory.create_user(username='zed', name='Zed Client', role='client', client=self.acme)
        TestDataFactory.create_user(username='amy', name='Amy PM', role='pm', status='inactive')
        response = self.client.get('/api/v1/users/', {'role': 'client'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['username'] for u in response.data], ['zed'])

        response = self.client.get('/api/v1/users/', {'search': 'amy'})
        self.assertEqual([u['username'] for u in response.data], ['amy'])

        response = self.client.get('/api/v1/users/', {'status': 'inactive'})
        self.assertEqual(len(response.data), 1)

    def test_admin_cannot_deactivate_self(self):
        response = self.client.patch(f'/api/v1/users/{self.admin.id}/', {'status': 'inactive'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'You cannot deactivate your own account')

    def test_update_user_status_syncs_is_active(self):
        user = TestDataFactory.create_user()
        response = self.client.patch(f'/api/v1/users/{user.id}/', {'status': 'inactive'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertFalse(user.is_active)

    def test_delete_user_is_soft(self):
        user = TestDataFactory.create_user()
        response = self.client.delete(f'/api/v1/users/{user.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        user.refresh_from_db()
        self.assertEqual(user.status, 'inactive')
        self.assertFalse(user.is_active)

    def test_delete_user_with_assigned_tasks(self):
        user = TestDataFactory.create_user()
        TestDataFactory.create_task(department=self.acme_dept, assignee=user)
        TestDataFactory.create_task(department=self.acme_dept, assignee=user)
        response = self.client.delete(f'/api/v1/users/{user.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete user: 2 tasks are assigned to this user')

    def test_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_resend_invitation(self):
        invited = TestDataFactory.create_user(status='invited')
        invited.invitation_token = 'old'
        invited.save()
        response = self.client.post(f'/api/v1/users/{invited.id}/resend-invitation/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        invited.refresh_from_db()
        self.assertNotEqual(invited.invitation_token, 'old')

    def test_resend_invitation_requires_invited_status(self):
        user = TestDataFactory.create_user()
        response = self.client.post(f'/api/v1/users/{user.id}/resend-invitation/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User is not in invited status')

    def test_bulk_update(self):
        u1 = TestDataFactory.create_user()
        u2 = TestDataFactory.create_user()
        response = self.client.post('/api/v1/users/bulk-update/', {'user_ids': [u1.id, u2.id], 'role': 'pm'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(User.objects.filter(role='pm').count(), 2)

    def test_bulk_update_rejects_self(self):
        response = self.client.post('/api/v1/users/bulk-update/', {'user_ids': [self.admin.id], 'status': 'inactive'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'You cannot bulk update your own account')

    def test_user_stats(self):
        TestDataFactory.create_user(role='pm', client=self.acme)
        TestDataFactory.create_user(role='client', status='invited')
        response = self.client.get('/api/v1/users/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['invited'], 1)
        self.assertEqual(response.data['by_role']['pm'], 1)
        self.assertEqual(response.data['assigned_to_clients'], 1)

    def test_team_list_for_any_user(self):
        member = TestDataFactory.create_user(departments=[self.acme_dept])
        TestDataFactory.create_user()
        self.client.authenticate_user(member)
        response = self.client.get('/api/v1/users/team/', {'department': self.acme_dept.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['id'] for u in response.data], [member.id])


class OrganizationTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_defaults_without_organization(self):
        response = self.client.get('/api/v1/organization/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['default_workstream_capacity'], 32)
        self.assertEqual(response.data['default_sprint_duration'], 2)

    def test_admin_creates_organization(self):
        response = self.client.patch('/api/v1/organization/', {
            'name': 'Stride', 'slug': 'stride', 'default_workstream_capacity': 40,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Organization.default_workstream_hours(), 40)

    def test_invalid_sprint_duration(self):
        response = self.client.patch('/api/v1/organization/', {
            'name': 'Stride', 'slug': 'stride', 'default_sprint_duration': 6,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_primary_color(self):
        response = self.client.patch('/api/v1/organization/', {
            'name': 'Stride', 'slug': 'stride', 'primary_color': 'blue',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_admin_cannot_update(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='pm'))
        response = self.client.patch('/api/v1/organization/', {'name': 'X', 'slug': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AuditLogAndSearchTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_audit_log_filter_by_model(self):
        AuditLog.objects.create(user=self.admin, action='create', model_name='Client', object_id='1')
        AuditLog.objects.create(user=self.admin, action='delete', model_name='Task', object_id='2')
        response = self.client.get('/api/v1/audit-logs/', {'model_name': 'Task'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['action'], 'delete')

    def test_search_empty_query(self):
        response = self.client.get('/api/v1/search/', {'q': ''})
        self.assertEqual(response.data, {'clients': [], 'projects': [], 'tasks': [], 'users': []})

    def test_search_respects_task_visibility(self):
        dept = TestDataFactory.create_department()
        TestDataFactory.create_task(department=dept, title='Rocket launch', visibility='private')
        owner = TestDataFactory.create_user(role='task_owner', departments=[dept])
        self.client.authenticate_user(owner)
        response = self.client.get('/api/v1/search/', {'q': 'rocket'})
        self.assertEqual(response.data['tasks'], [])

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/search/', {'q': 'rocket'})
        self.assertEqual(len(response.data['tasks']), 1)


class UtilityTests(TestCase):
    def test_parse_limit(self):
        self.assertEqual(parse_limit('10'), 10)
        self.assertEqual(parse_limit('abc', default=5), 5)
        self.assertEqual(parse_limit('0', default=5), 5)
        self.assertEqual(parse_limit('10000'), 500)

    def test_parse_bool(self):
        self.assertTrue(parse_bool('true'))
        self.assertFalse(parse_bool('no'))
        self.assertIsNone(parse_bool(None))

    def test_dashboard_cache_invalidation(self):
        cache.clear()
        data, key = get_cached('client_kpis', 1)
        self.assertIsNone(data)
        set_cached(key, {'total': 1}, 60)
        self.assertEqual(get_cached('client_kpis', 1)[0], {'total': 1})
        invalidate_dashboard_cache()
        self.assertIsNone(get_cached('client_kpis', 1)[0])

    def test_model_save_invalidates_dashboard_cache(self):
        cache.clear()
        _, key = get_cached('sprint_stats', 1)
        set_cached(key, {'x': 1}, 60)
        TestDataFactory.create_client()
        self.assertIsNone(get_cached('sprint_stats', 1)[0])


class ManagementCommandTests(TestCase):
    def test_setup_organization_creates_then_updates(self):
        call_command('setup_organization', '--name', 'Acme Agency', '--workstream-capacity', '40', stdout=StringIO())
        org = Organization.get_solo()
        self.assertEqual(org.slug, 'acme-agency')
        self.assertEqual(Organization.default_workstream_hours(), 40)

        call_command('setup_organization', '--name', 'Acme Studio', '--sprint-duration', '3', stdout=StringIO())
        self.assertEqual(Organization.objects.count(), 1)
        org.refresh_from_db()
        self.assertEqual(org.name, 'Acme Studio')
        self.assertEqual(org.default_workstream_capacity, 40)
        self.assertEqual(org.default_sprint_duration, 3)

    def test_setup_organization_rejects_bad_duration(self):
        with self.assertRaises(CommandError):
            call_command('setup_organization', '--name', 'Acme', '--sprint-duration', '6', stdout=StringIO())

    def test_create_admin_user_is_idempotent(self):
        call_command('create_admin_user', '--username', 'boss', '--email', 'boss@example.com',
                     '--password', 'secret123', stdout=StringIO())
        user = User.objects.get(username='boss')
        self.assertEqual(user.role, 'admin')
        self.assertTrue(user.check_password('secret123'))

        user.role = 'task_owner'
        user.save()
        call_command('create_admin_user', '--username', 'boss', '--email', 'boss@example.com', stdout=StringIO())
        user.refresh_from_db()
        self.assertEqual(user.role, 'admin')
        self.assertEqual(User.objects.filter(username='boss').count(), 1)
