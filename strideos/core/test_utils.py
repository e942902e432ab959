"""
Test utilities and factories for creating test data
"""
from datetime import timedelta
import random
import string

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from strideos.clients.models import Client, Department
from strideos.projects.models import Project, Document
from strideos.sprints.models import Sprint
from strideos.tasks.models import Task

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='task_owner',
                    client=None, departments=None, status='active', is_superuser=False, name=None):
        """Create a test user with a role and optional tenancy"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            status=status,
            client=client,
            name=name or username,
            is_superuser=is_superuser,
            is_staff=is_superuser,
        )
        if departments:
            user.departments.set(departments)
        return user

    @staticmethod
    def create_admin(**kwargs):
        kwargs.setdefault('role', 'admin')
        return TestDataFactory.create_user(**kwargs)

    @staticmethod
    def create_client(name=None, project_key='TST', is_internal=False, status='active', created_by=None):
        """Create a test client; pass project_key=None for a client without slugs"""
        if not name:
            name = f'Client_{TestDataFactory.random_string(6)}'
        return Client.objects.create(
            name=name,
            project_key=project_key,
            is_internal=is_internal,
            status=status,
            created_by=created_by,
        )

    @staticmethod
    def create_department(client=None, name=None, workstream_count=2, workstream_capacity=32,
                          sprint_duration=2, members=None):
        """Create a test department, adding members through the user M2M"""
        if not client:
            client = TestDataFactory.create_client()
        if not name:
            name = f'Dept_{TestDataFactory.random_string(6)}'
        department = Department.objects.create(
            client=client,
            name=name,
            workstream_count=workstream_count,
            workstream_capacity=workstream_capacity,
            sprint_duration=sprint_duration,
        )
        for member in members or []:
            member.departments.add(department)
        return department

    @staticmethod
    def create_project(department=None, title=None, status='new', visibility='department',
                       project_manager=None, created_by=None, with_document=False):
        """Create a test project in a department"""
        if not department:
            department = TestDataFactory.create_department()
        if not title:
            title = f'Project_{TestDataFactory.random_string(6)}'
        project = Project.objects.create(
            title=title,
            client=department.client,
            department=department,
            status=status,
            visibility=visibility,
            project_manager=project_manager,
            created_by=created_by,
        )
        if with_document:
            document = Document.objects.create(
                title=f'{title} Brief',
                document_type='project_brief',
                project=project,
                client=project.client,
                department=department,
                created_by=created_by,
            )
            project.document = document
            project.save(update_fields=['document'])
        return project

    @staticmethod
    def create_task(department=None, title=None, project=None, assignee=None, status='todo',
                    priority='medium', size=None, estimated_hours=None, sprint=None,
                    visibility='department', task_type=None, created_by=None, **extra):
        """Create a test task; department defaults to the project's"""
        if project and not department:
            department = project.department
        if not department:
            department = TestDataFactory.create_department()
        if not title:
            title = f'Task_{TestDataFactory.random_string(6)}'
        return Task.objects.create(
            title=title,
            client=department.client,
            department=department,
            project=project,
            assignee=assignee,
            reporter=created_by,
            status=status,
            priority=priority,
            size=size,
            estimated_hours=estimated_hours,
            sprint=sprint,
            visibility=visibility,
            task_type=task_type,
            created_by=created_by,
            **extra
        )

    @staticmethod
    def create_sprint(department=None, name=None, status='planning', start_date=None, weeks=2,
                      total_capacity=None, created_by=None):
        """Create a test sprint starting today (or at start_date) for ``weeks`` weeks"""
        if not department:
            department = TestDataFactory.create_department()
        if not name:
            name = f'Sprint_{TestDataFactory.random_string(6)}'
        if not start_date:
            start_date = timezone.now()
        if total_capacity is None:
            total_capacity = department.workstream_count * department.workstream_capacity
        return Sprint.objects.create(
            name=name,
            department=department,
            client=department.client,
            start_date=start_date,
            end_date=start_date + timedelta(weeks=weeks),
            duration=weeks,
            status=status,
            total_capacity=total_capacity,
            created_by=created_by,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
