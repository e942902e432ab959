import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Avg, Case, Count, IntegerField, Q, Sum, Value, When
from django.shortcuts import get_object_or_404

from strideos.clients.models import Department
from strideos.clients.slugs import assign_slug
from strideos.clients.utils import add_velocity_entry
from strideos.core.cache_signals import suspend_cache_signals
from strideos.core.cache_utils import get_cached, set_cached, invalidate_dashboard_cache, SPRINT_STATS_CACHE_TTL
from strideos.core.exceptions import DomainError
from strideos.core.models import Organization
from strideos.core.permissions import IsAdminOrPM, forbidden
from strideos.core.utils import create_audit_log, parse_limit
from strideos.notifications.utils import notify
from strideos.tasks.models import Task
from strideos.tasks.permissions import visible_tasks
from strideos.tasks.serializers import TaskListSerializer
from strideos.tasks.sizing import task_hours
from .capacity import (
    calculate_capacity, capacity_status, committed_hours, duration_in_weeks, sprint_capacity_hours
)
from .filters import SprintFilter
from .models import Sprint
from .permissions import can_view_sprint, visible_sprints
from .serializers import SprintSerializer

logger = logging.getLogger('strideos.sprints')

PRIORITY_WEIGHT = {
    'urgent': 4,
    'high': 3,
    'medium': 2,
    'low': 1,
}

SPRINT_BACKLOG_PAGE_SIZE = 50


def check_sprint_dates(department, start_date, end_date, exclude_pk=None):
    if start_date >= end_date:
        raise DomainError('Start date must be before end date')
    overlapping = Sprint.objects.filter(
        department=department,
        status='active',
        start_date__lt=end_date,
        end_date__gt=start_date,
    )
    if exclude_pk is not None:
        overlapping = overlapping.exclude(pk=exclude_pk)
    if overlapping.exists():
        raise DomainError('Sprint dates overlap with existing active sprint')


def notify_sprint_assignees(sprint, assignees, type, title, message):
    for assignee in assignees:
        notify(
            assignee,
            type,
            title,
            message,
            sprint=sprint,
            entity_type='sprint',
            entity_id=sprint.id,
            action_url=f'/sprints/{sprint.id}',
        )


def sprint_assignees(sprint):
    return get_user_model().objects.filter(assigned_tasks__sprint=sprint).distinct()


def sprint_details(sprint):
    """Task counts, hours and progress for one sprint"""
    tasks = list(sprint.tasks.exclude(status='archived'))
    done = [task for task in tasks if task.status == 'done']
    committed = committed_hours(tasks)
    capacity = sprint_capacity_hours(sprint)
    data = SprintSerializer(sprint).data
    data.update({
        'total_tasks': len(tasks),
        'completed_tasks': len(done),
        'committed_hours': committed,
        'completed_hours': sum(task_hours(task) for task in done),
        'capacity_hours': capacity,
        'progress': round(len(done) / len(tasks) * 100) if tasks else 0,
        'capacity_status': capacity_status(committed, capacity),
    })
    return data


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sprint_list_create(request):
    """List sprints or plan a new one"""
    if request.method == 'GET':
        queryset = visible_sprints(request.user, Sprint.objects.select_related('department', 'client'))
        filterset = SprintFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(SprintSerializer(filterset.qs.order_by('-start_date'), many=True).data)

    if not request.user.is_admin_or_pm:
        return forbidden(request, 'Only admins and project managers can create sprints')

    serializer = SprintSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    department = data['department']
    try:
        check_sprint_dates(department, data['start_date'], data['end_date'])
        with transaction.atomic():
            sprint = serializer.save(
                client=department.client,
                status='planning',
                total_capacity=data.get('total_capacity') or calculate_capacity(department),
                duration=data.get('duration') or duration_in_weeks(data['start_date'], data['end_date']),
                created_by=request.user,
                updated_by=request.user,
            )
            assign_slug(sprint, 'sprint', department.client, user=request.user)
    except DomainError as e:
        logger.warning(f"Sprint creation rejected: {e.message}")
        return Response({'error': e.message}, status=e.status_code)

    logger.info(f"Sprint '{sprint.name}' ({sprint.slug}) created by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='Sprint', object_id=sprint.id,
                     object_name=sprint.slug or sprint.name)
    return Response(SprintSerializer(sprint).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def sprint_detail(request, pk):
    """Retrieve, update or delete a sprint"""
    sprint = get_object_or_404(Sprint.objects.select_related('department', 'client'), pk=pk)

    if request.method == 'GET':
        if not can_view_sprint(request.user, sprint):
            return forbidden(request, 'You do not have access to this sprint')
        return Response(sprint_details(sprint))

    if not request.user.is_admin_or_pm:
        return forbidden(request, 'Only admins and project managers can change sprints')

    if request.method == 'DELETE':
        task_count = sprint.tasks.count()
        if task_count:
            return Response(
                {'error': 'Cannot delete sprint with assigned tasks. Please move tasks to backlog first.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        sprint_id, label = sprint.id, sprint.slug or sprint.name
        sprint.delete()
        logger.info(f"Sprint {sprint_id} deleted by {request.user.username}")
        create_audit_log(request=request, action='delete', model_name='Sprint', object_id=sprint_id, object_name=label)
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = SprintSerializer(sprint, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    department = data.get('department', sprint.department)
    try:
        check_sprint_dates(
            department,
            data.get('start_date', sprint.start_date),
            data.get('end_date', sprint.end_date),
            exclude_pk=sprint.pk,
        )
    except DomainError as e:
        return Response({'error': e.message}, status=e.status_code)

    sprint = serializer.save(client=department.client, updated_by=request.user)
    logger.info(f"Sprint {sprint.id} updated by {request.user.username}")
    create_audit_log(request=request, action='update', model_name='Sprint', object_id=sprint.id,
                     object_name=sprint.slug or sprint.name, changes=dict(request.data.items()))
    return Response(SprintSerializer(sprint).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminOrPM])
def sprint_start(request, pk):
    """Activate a planning sprint"""
    with transaction.atomic():
        sprint = get_object_or_404(Sprint.objects.select_for_update(), pk=pk)
        if sprint.status != 'planning':
            return Response({'error': 'Only planning sprints can be started'}, status=status.HTTP_400_BAD_REQUEST)
        if Sprint.objects.filter(department_id=sprint.department_id, status='active').exclude(pk=sprint.pk).exists():
            return Response(
                {'error': 'Cannot start sprint while another sprint is active in the same department'},
                status=status.HTTP_400_BAD_REQUEST
            )
        sprint.status = 'active'
        sprint.committed_points = committed_hours(sprint.tasks.all())
        sprint.updated_by = request.user
        sprint.save()

    notify_sprint_assignees(
        sprint, sprint_assignees(sprint), 'sprint_started',
        'Sprint started', f'Sprint "{sprint.name}" has started',
    )
    logger.info(f"Sprint {sprint.id} started by {request.user.username}")
    create_audit_log(request=request, action='sprint_start', model_name='Sprint', object_id=sprint.id,
                     object_name=sprint.slug or sprint.name)
    return Response(SprintSerializer(sprint).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminOrPM])
def sprint_complete(request, pk):
    """Close an active sprint, record velocity and return unfinished work to the backlog"""
    try:
        with transaction.atomic(), suspend_cache_signals():
            sprint = get_object_or_404(Sprint.objects.select_for_update().select_related('department'), pk=pk)
            if sprint.status != 'active':
                raise DomainError('Only active sprints can be completed')

            assignees = list(sprint_assignees(sprint))
            done = sprint.tasks.filter(status='done')
            velocity = sum(task_hours(task) for task in done)

            sprint.actual_velocity = velocity
            sprint.completed_points = velocity
            sprint.status = 'complete'
            sprint.updated_by = request.user
            sprint.save()

            add_velocity_entry(sprint.department, velocity, sprint_id=sprint.id)
            returned = sprint.tasks.exclude(status__in=['done', 'archived']).update(sprint=None, sprint_order=None)
    except DomainError as e:
        return Response({'error': e.message}, status=e.status_code)

    invalidate_dashboard_cache()
    notify_sprint_assignees(
        sprint, assignees, 'sprint_completed',
        'Sprint completed', f'Sprint "{sprint.name}" is complete with {velocity}h delivered',
    )
    logger.info(f"Sprint {sprint.id} completed by {request.user.username}: velocity {velocity}, {returned} tasks returned")
    create_audit_log(request=request, action='sprint_complete', model_name='Sprint', object_id=sprint.id,
                     object_name=sprint.slug or sprint.name,
                     changes={'actual_velocity': velocity, 'returned_to_backlog': returned})
    data = SprintSerializer(sprint).data
    data['returned_to_backlog'] = returned
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sprints_with_details(request):
    queryset = visible_sprints(request.user, Sprint.objects.select_related('department', 'client'))
    filterset = SprintFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response([sprint_details(sprint) for sprint in filterset.qs.order_by('-start_date')])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sprint_stats(request):
    """Counts by status, active capacity and recent velocity"""
    cached_data, cache_key = get_cached('sprint_stats', request.user.id)
    if cached_data is not None:
        return Response(cached_data)

    sprints = Sprint.objects.filter(pk__in=visible_sprints(request.user, Sprint.objects.all()).values('pk'))
    by_status = {value: 0 for value, _ in Sprint.STATUS_CHOICES}
    for row in sprints.values('status').annotate(count=Count('id')):
        by_status[row['status']] = row['count']

    active = sprints.filter(status='active')
    total_capacity = active.aggregate(total=Sum('total_capacity'))['total'] or 0
    committed = committed_hours(Task.objects.filter(sprint__in=active))
    recent = sprints.filter(status='complete', actual_velocity__isnull=False).order_by('-end_date')[:6]
    velocities = [sprint.actual_velocity for sprint in recent]

    data = {
        'total': sum(by_status.values()),
        'by_status': by_status,
        'total_capacity': total_capacity,
        'committed_hours': committed,
        'average_velocity': round(sum(velocities) / len(velocities)) if velocities else 0,
        'utilization': round(committed / total_capacity * 100) if total_capacity else 0,
    }
    set_cached(cache_key, data, SPRINT_STATS_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sprints_by_department(request):
    """Sprint summary for each active department"""
    departments = Department.objects.filter(status='active').select_related('client').order_by('client__name', 'name')
    client_id = request.query_params.get('client')
    if client_id:
        departments = departments.filter(client_id=client_id)
    if request.user.is_client_user:
        departments = departments.filter(client_id=request.user.client_id)
    elif not request.user.is_admin_or_pm:
        departments = departments.filter(pk__in=request.user.department_ids)

    results = []
    for department in departments:
        sprints = department.sprints.all()
        counts = sprints.aggregate(
            total=Count('id'),
            planning=Count('id', filter=Q(status='planning')),
            active=Count('id', filter=Q(status='active')),
            complete=Count('id', filter=Q(status='complete')),
        )
        active_sprint = sprints.filter(status='active').first()
        last_three = sprints.filter(status='complete', actual_velocity__isnull=False).order_by('-end_date')[:3]
        average = Sprint.objects.filter(pk__in=[s.pk for s in last_three]).aggregate(avg=Avg('actual_velocity'))['avg']
        results.append({
            'department_id': department.id,
            'department_name': department.name,
            'client_id': department.client_id,
            'client_name': department.client.name,
            'sprint_counts': counts,
            'active_sprint': SprintSerializer(active_sprint).data if active_sprint else None,
            'capacity': calculate_capacity(department),
            'committed_hours': committed_hours(active_sprint.tasks.all()) if active_sprint else 0,
            'average_velocity': round(average) if average is not None else 0,
        })
    return Response(results)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def department_backlog(request, department_id):
    """Open department tasks outside any sprint, grouped by project"""
    department = get_object_or_404(Department, pk=department_id)
    scope = Q(sprint__isnull=True)
    current_sprint = request.query_params.get('current_sprint')
    if current_sprint and current_sprint.isdigit():
        scope |= Q(sprint_id=int(current_sprint))
    tasks = Task.objects.filter(scope, department=department).exclude(
        status__in=['done', 'archived']
    ).select_related('project', 'assignee')

    tasks = sorted(
        visible_tasks(request.user, tasks),
        key=lambda task: (-PRIORITY_WEIGHT.get(task.priority, 0), task.backlog_order or 0),
    )

    groups = {}
    for task in tasks:
        key = task.project_id
        if key not in groups:
            groups[key] = {
                'project_id': task.project_id,
                'project_title': task.project.title if task.project else None,
                'tasks': [],
            }
        groups[key]['tasks'].append(TaskListSerializer(task).data)
    return Response({
        'department_id': department.id,
        'total': len(tasks),
        'groups': list(groups.values()),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminOrPM])
def sprint_backlog_tasks(request, pk):
    """Todo tasks of the sprint's client that could be pulled into it, paged"""
    sprint = get_object_or_404(Sprint, pk=pk)
    try:
        offset = max(0, int(request.query_params.get('offset', 0)))
    except (TypeError, ValueError):
        offset = 0
    limit = parse_limit(request.query_params.get('limit'), default=SPRINT_BACKLOG_PAGE_SIZE)

    weight = Case(
        *[When(priority=priority, then=Value(value)) for priority, value in PRIORITY_WEIGHT.items()],
        default=Value(0),
        output_field=IntegerField(),
    )
    tasks = Task.objects.filter(client_id=sprint.client_id, status='todo').exclude(
        sprint_id=sprint.id
    ).annotate(priority_weight=weight).select_related('project', 'assignee').order_by('-priority_weight', '-created_at')

    total = tasks.count()
    page = tasks[offset:offset + limit]
    return Response({
        'tasks': TaskListSerializer(page, many=True).data,
        'total': total,
        'has_more': offset + limit < total,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def department_sprint_capacity(request, department_id):
    department = get_object_or_404(Department, pk=department_id)
    calculated = calculate_capacity(department)
    weeks = department.sprint_duration or Organization.default_sprint_weeks()
    return Response({
        'department_id': department.id,
        'calculated_capacity': calculated,
        'capacity_per_week': round(calculated / weeks) if weeks else calculated,
        'capacity_per_workstream': Organization.default_workstream_hours(),
        'workstream_count': department.workstream_count,
        'sprint_duration': weeks,
    })
