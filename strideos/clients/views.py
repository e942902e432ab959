import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.db import transaction
from django.db.models import Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone

from strideos.core.cache_utils import get_cached, set_cached, CLIENT_KPI_CACHE_TTL, CLIENT_DASHBOARD_CACHE_TTL
from strideos.core.exceptions import DomainError
from strideos.core.models import Organization
from strideos.core.permissions import IsAdminRole, IsAdminOrPM, forbidden
from strideos.core.utils import create_audit_log
from .filters import ClientFilter, DepartmentFilter, ProjectKeyFilter
from .models import Client, Department, ProjectKey, ClientDeletionAudit
from .serializers import (
    ClientSerializer, ClientLogoSerializer, DepartmentSerializer, VelocityEntrySerializer,
    ProjectKeySerializer, ProjectKeyUpdateSerializer, ClientDeletionAuditSerializer
)
from .slugs import default_key_for_name, resolve_slug
from .utils import validate_department_settings, department_capacity, add_velocity_entry

logger = logging.getLogger('strideos.clients')


def visible_clients(user, queryset):
    """Client-role users only ever see their own client"""
    if user.is_client_user:
        return queryset.filter(pk=user.client_id) if user.client_id else queryset.none()
    return queryset


def client_stats(client):
    """Department, project and workstream counts for one client"""
    projects = client.projects.all()
    active_departments = client.departments.filter(status='active')
    project_count = projects.count()
    completed = projects.filter(status='complete').count()
    return {
        'client_id': client.id,
        'department_count': active_departments.count(),
        'project_count': project_count,
        'active_project_count': project_count - completed,
        'completed_project_count': completed,
        'total_workstreams': active_departments.aggregate(total=Sum('workstream_count'))['total'] or 0,
    }


# Client views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def client_list_create(request):
    """List clients or create a new client with its default department"""
    if request.method == 'GET':
        queryset = visible_clients(request.user, Client.objects.select_related('created_by'))
        filterset = ClientFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(ClientSerializer(filterset.qs.order_by('name'), many=True).data)

    if not request.user.is_admin_or_pm:
        return forbidden(request, 'Only admins and project managers can create clients')

    serializer = ClientSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Client creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            client = serializer.save(created_by=request.user)
            Department.objects.create(
                name='Default',
                client=client,
                workstream_count=1,
                workstream_capacity=Organization.default_workstream_hours(),
                sprint_duration=Organization.default_sprint_weeks(),
                lead=request.user,
                primary_contact=request.user,
                created_by=request.user,
            )
    except Exception as e:
        logger.error(f"Unexpected error creating client: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(f"Client '{client.name}' created by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='Client', object_id=client.id,
                     object_name=client.name, changes={'name': client.name, 'project_key': client.project_key})
    return Response(ClientSerializer(client).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def client_detail(request, pk):
    """Retrieve, update or archive a client"""
    client = get_object_or_404(Client, pk=pk)

    if request.method == 'GET':
        if request.user.is_client_user and request.user.client_id != client.id:
            return forbidden(request, 'You do not have access to this client')
        return Response(ClientSerializer(client).data)

    if request.method in ('PUT', 'PATCH'):
        if not request.user.is_admin_or_pm:
            return forbidden(request, 'Only admins and project managers can update clients')
        serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        client = serializer.save()
        logger.info(f"Client {client.id} updated by {request.user.username}")
        create_audit_log(request=request, action='update', model_name='Client', object_id=client.id,
                         object_name=client.name, changes=dict(request.data.items()))
        return Response(ClientSerializer(client).data)

    if not request.user.is_admin:
        return forbidden(request, 'Only admins can delete clients')

    if client.departments.filter(status='active').exists():
        return Response(
            {'error': 'Cannot delete client with departments. Please delete departments first.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    if client.projects.exclude(status='complete').exists():
        return Response({'error': 'Cannot delete client with active projects.'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        audit = ClientDeletionAudit.objects.create(
            client=client,
            admin_user=request.user,
            action='archive',
            project_count=client.projects.count(),
            task_count=client.tasks.count(),
            team_member_count=client.users.count(),
        )
        client.status = 'archived'
        client.save(update_fields=['status', 'updated_at'])

    logger.info(f"Client {client.id} archived by {request.user.username}")
    create_audit_log(request=request, action='archive', model_name='Client', object_id=client.id,
                     object_name=client.name,
                     changes={'project_count': audit.project_count, 'task_count': audit.task_count})
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def client_internal(request):
    clients = Client.objects.filter(status='active', is_internal=True).order_by('name')
    return Response(ClientSerializer(visible_clients(request.user, clients), many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def client_external(request):
    clients = Client.objects.filter(status='active', is_internal=False).order_by('name')
    return Response(ClientSerializer(visible_clients(request.user, clients), many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def client_stats_view(request, pk):
    """Department, project and workstream counts for a client"""
    client = get_object_or_404(Client, pk=pk)
    if request.user.is_client_user and request.user.client_id != client.id:
        return forbidden(request, 'You do not have access to this client')
    return Response(client_stats(client))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def client_dashboard(request):
    """Stats and recent project activity for each visible client"""
    cached_data, cache_key = get_cached('client_dashboard', request.user.id)
    if cached_data is not None:
        return Response(cached_data)

    clients = visible_clients(request.user, Client.objects.exclude(status='archived')).order_by('name')
    results = []
    for client in clients:
        entry = ClientSerializer(client).data
        entry['stats'] = client_stats(client)
        entry['recent_activity'] = [
            {
                'project_id': project.id,
                'title': project.title,
                'status': project.status,
                'updated_at': project.updated_at,
            }
            for project in client.projects.order_by('-updated_at')[:5]
        ]
        results.append(entry)

    set_cached(cache_key, results, CLIENT_DASHBOARD_CACHE_TTL)
    return Response(results)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminOrPM])
def client_kpis(request):
    """Organization-wide client counts"""
    cached_data, cache_key = get_cached('client_kpis', request.user.id)
    if cached_data is not None:
        return Response(cached_data)

    from strideos.projects.models import Project

    month_start = timezone.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    data = {
        'total_clients': Client.objects.count(),
        'active_clients': Client.objects.filter(status='active').count(),
        'total_projects': Project.objects.count(),
        'new_clients_this_month': Client.objects.filter(created_at__gte=month_start).count(),
    }
    set_cached(cache_key, data, CLIENT_KPI_CACHE_TTL)
    return Response(data)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrPM])
@parser_classes([MultiPartParser, FormParser])
def client_logo_upload(request, pk):
    """Upload (POST) or remove (DELETE) a client's logo"""
    client = get_object_or_404(Client, pk=pk)

    if request.method == 'DELETE':
        if client.logo:
            client.logo.delete(save=False)
        client.logo = None
        client.save(update_fields=['logo', 'updated_at'])
        logger.info(f"Logo removed from client {client.id} by {request.user.username}")
        return Response(ClientSerializer(client).data)

    serializer = ClientLogoSerializer(client, data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Invalid logo upload for client {client.id}: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    serializer.save()
    logger.info(f"Logo uploaded for client {client.id} by {request.user.username}")
    create_audit_log(request=request, action='update', model_name='Client', object_id=client.id,
                     object_name=client.name, changes={'logo': client.logo.name})
    return Response(ClientSerializer(client).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def client_deletion_audits(request):
    """Recent client archive records, optionally for one client"""
    audits = ClientDeletionAudit.objects.select_related('client', 'admin_user')
    client_id = request.query_params.get('client')
    if client_id:
        if not str(client_id).isdigit():
            return Response({'error': 'client must be an id'}, status=status.HTTP_400_BAD_REQUEST)
        audits = audits.filter(client_id=client_id)
    return Response(ClientDeletionAuditSerializer(audits[:100], many=True).data)


# Department views
def check_department(data, instance=None):
    """Apply department business rules to merged request and stored values"""
    def value(field):
        if field in data:
            return data[field]
        return getattr(instance, field, None) if instance is not None else None

    client = value('client')
    if client is None:
        raise DomainError('Client is required')
    if instance is None and client.status != 'active':
        raise DomainError('Cannot create department for inactive client')

    name = (value('name') or '').strip()
    duplicates = Department.objects.filter(client=client, name__iexact=name)
    if instance is not None:
        duplicates = duplicates.exclude(pk=instance.pk)
    if duplicates.exists():
        raise DomainError('A department with this name already exists for this client')

    validate_department_settings(
        workstream_count=value('workstream_count'),
        workstream_capacity=value('workstream_capacity'),
        sprint_duration=value('sprint_duration'),
        workstream_labels=value('workstream_labels'),
        working_hours_start=value('working_hours_start'),
        working_hours_end=value('working_hours_end'),
        working_days=value('working_days'),
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def department_list_create(request):
    """List departments or create a department"""
    if request.method == 'GET':
        queryset = Department.objects.select_related('client')
        if request.user.is_client_user:
            queryset = queryset.filter(client_id=request.user.client_id)
        filterset = DepartmentFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(DepartmentSerializer(filterset.qs.order_by('client__name', 'name'), many=True).data)

    if not request.user.is_admin_or_pm:
        return forbidden(request, 'Only admins and project managers can create departments')

    serializer = DepartmentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    data.setdefault('workstream_count', Department._meta.get_field('workstream_count').default)
    data.setdefault('workstream_capacity', Organization.default_workstream_hours())
    data.setdefault('sprint_duration', Organization.default_sprint_weeks())
    try:
        check_department(data)
    except DomainError as e:
        logger.warning(f"Department creation rejected: {e.message}")
        return Response({'error': e.message}, status=e.status_code)

    department = serializer.save(created_by=request.user)
    logger.info(f"Department '{department.name}' created for client {department.client_id} by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='Department', object_id=department.id,
                     object_name=department.name)
    return Response(DepartmentSerializer(department).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def department_detail(request, pk):
    """Retrieve, update or deactivate a department"""
    department = get_object_or_404(Department.objects.select_related('client'), pk=pk)

    if request.method == 'GET':
        if request.user.is_client_user and request.user.client_id != department.client_id:
            return forbidden(request, 'You do not have access to this department')
        return Response(DepartmentSerializer(department).data)

    if request.method in ('PUT', 'PATCH'):
        if not request.user.is_admin_or_pm:
            return forbidden(request, 'Only admins and project managers can update departments')
        serializer = DepartmentSerializer(department, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            check_department(serializer.validated_data, instance=department)
        except DomainError as e:
            return Response({'error': e.message}, status=e.status_code)
        department = serializer.save()
        logger.info(f"Department {department.id} updated by {request.user.username}")
        create_audit_log(request=request, action='update', model_name='Department', object_id=department.id,
                         object_name=department.name, changes=dict(request.data.items()))
        return Response(DepartmentSerializer(department).data)

    if not request.user.is_admin:
        return forbidden(request, 'Only admins can delete departments')

    if department.projects.exclude(status='complete').exists():
        return Response(
            {'error': 'Cannot delete department with active projects. Please complete projects first.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    department.status = 'inactive'
    department.save(update_fields=['status', 'updated_at'])
    logger.info(f"Department {department.id} deactivated by {request.user.username}")
    create_audit_log(request=request, action='delete', model_name='Department', object_id=department.id,
                     object_name=department.name)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def department_capacity_view(request, pk):
    department = get_object_or_404(Department, pk=pk)
    return Response(department_capacity(department))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminOrPM])
def department_add_velocity(request, pk):
    """Record the completed points of a finished sprint"""
    department = get_object_or_404(Department, pk=pk)
    serializer = VelocityEntrySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    history = add_velocity_entry(
        department,
        serializer.validated_data['completed_points'],
        sprint_id=serializer.validated_data.get('sprint_id'),
    )
    logger.info(f"Velocity entry added to department {department.id} by {request.user.username}")
    return Response({'velocity_history': history})


# Project key views
def clear_other_defaults(project_key):
    """Only one default key per client/department scope"""
    ProjectKey.objects.filter(
        client_id=project_key.client_id,
        department_id=project_key.department_id,
        is_default=True,
    ).exclude(pk=project_key.pk).update(is_default=False)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_key_list_create(request):
    """List project keys (admin/pm) or create one (admin)"""
    if request.method == 'GET':
        if not request.user.is_admin_or_pm:
            return forbidden(request)
        filterset = ProjectKeyFilter(request.query_params, queryset=ProjectKey.objects.select_related('client'))
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(ProjectKeySerializer(filterset.qs.order_by('key'), many=True).data)

    if not request.user.is_admin:
        return forbidden(request, 'Only admins can create project keys')

    serializer = ProjectKeySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    client = serializer.validated_data['client']
    key = (serializer.validated_data.get('key') or '').strip().upper() or default_key_for_name(client.name)
    if ProjectKey.objects.filter(key=key).exists():
        return Response({'error': 'Project key already exists'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        project_key = serializer.save(key=key, created_by=request.user)
        if project_key.is_default:
            clear_other_defaults(project_key)

    logger.info(f"Project key {project_key.key} created by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='ProjectKey', object_id=project_key.id,
                     object_name=project_key.key)
    return Response(ProjectKeySerializer(project_key).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def project_key_detail(request, pk):
    project_key = get_object_or_404(ProjectKey, pk=pk)
    if request.method == 'GET':
        return Response(ProjectKeySerializer(project_key).data)

    serializer = ProjectKeyUpdateSerializer(project_key, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    with transaction.atomic():
        project_key = serializer.save()
        if project_key.is_default:
            clear_other_defaults(project_key)
    logger.info(f"Project key {project_key.key} updated by {request.user.username}")
    create_audit_log(request=request, action='update', model_name='ProjectKey', object_id=project_key.id,
                     object_name=project_key.key, changes=dict(request.data.items()))
    return Response(ProjectKeySerializer(project_key).data)


# Slug lookup
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_by_slug(request, slug):
    """Resolve KEY-N, KEY-S-N or KEY-P-N to the task, sprint or project it names"""
    kind, instance = resolve_slug(slug)
    if instance is None:
        return Response({'error': 'Not found'}, status=status.HTTP_404_NOT_FOUND)

    user = request.user
    if kind == 'task':
        from strideos.tasks.permissions import can_view_task
        from strideos.tasks.serializers import TaskSerializer
        allowed = can_view_task(user, instance)
        data = TaskSerializer(instance).data if allowed else None
    elif kind == 'project':
        from strideos.projects.permissions import can_view_project
        from strideos.projects.serializers import ProjectSerializer
        allowed = can_view_project(user, instance)
        data = ProjectSerializer(instance).data if allowed else None
    else:
        from strideos.sprints.permissions import can_view_sprint
        from strideos.sprints.serializers import SprintSerializer
        allowed = can_view_sprint(user, instance)
        data = SprintSerializer(instance).data if allowed else None

    if not allowed:
        return forbidden(request, f'You do not have access to this {kind}')
    return Response({'type': kind, 'id': instance.id, 'data': data})
