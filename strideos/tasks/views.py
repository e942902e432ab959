import logging
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.db import transaction
from django.db.models import Count, Max, Q, Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone

from strideos.clients.models import Client, Department
from strideos.clients.slugs import assign_slug
from strideos.core.cache_signals import suspend_cache_signals
from strideos.core.cache_utils import invalidate_dashboard_cache
from strideos.core.exceptions import DomainError
from strideos.core.permissions import IsAdminOrPM, forbidden
from strideos.core.utils import create_audit_log, parse_limit
from strideos.notifications.utils import notify
from strideos.sprints.capacity import sprint_capacity_status
from strideos.sprints.models import Sprint
from .filters import TaskFilter
from .models import Task
from .permissions import can_edit_task, can_delete_task, can_view_task, visible_tasks
from .serializers import (
    TaskSerializer, TaskListSerializer, AssignSprintSerializer, ReorderTasksSerializer, PersonalTodoSerializer
)
from .sizing import parse_size_hours

logger = logging.getLogger('strideos.tasks')

RECENTLY_COMPLETED_DAYS = 30

PERSONAL_WORKSPACE = 'Personal'


def task_queryset():
    return Task.objects.select_related('assignee', 'project', 'sprint', 'client', 'department')


def apply_completion(task, old_status):
    """Entering done stamps completed_date; leaving done clears it"""
    if task.status == 'done' and old_status != 'done':
        task.completed_date = timezone.now()
    elif task.status != 'done' and old_status == 'done':
        task.completed_date = None


def notify_assignment(task, actor):
    if task.assignee_id and task.assignee_id != actor.id:
        notify(
            task.assignee,
            'task_assigned',
            'Task assigned to you',
            f'{actor.display_name} assigned you "{task.title}"',
            task=task,
            entity_type='task',
            entity_id=task.id,
            action_url=f'/tasks/{task.slug or task.id}',
            action_text='View task',
        )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_list_create(request):
    """List visible tasks or create a task"""
    if request.method == 'GET':
        filterset = TaskFilter(request.query_params, queryset=visible_tasks(request.user, task_queryset()))
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        tasks = filterset.qs.order_by('-created_at')
        limit = parse_limit(request.query_params.get('limit'))
        if limit:
            tasks = tasks[:limit]
        return Response(TaskSerializer([t for t in tasks if can_view_task(request.user, t)], many=True).data)

    if not request.user.is_admin_or_pm:
        return forbidden(request, 'Only admins and project managers can create tasks')

    serializer = TaskSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Task creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    client = data['client']
    department = data['department']
    if department.client_id != client.id:
        return Response({'error': 'Department does not belong to client'}, status=status.HTTP_400_BAD_REQUEST)

    estimated_hours = data.get('estimated_hours') or data.get('size_hours') or parse_size_hours(data.get('size'))

    try:
        with transaction.atomic():
            max_order = Task.objects.filter(department=department).aggregate(m=Max('backlog_order'))['m']
            task = serializer.save(
                estimated_hours=estimated_hours,
                backlog_order=(max_order or 0) + 1,
                reporter=data.get('reporter') or request.user,
                created_by=request.user,
                updated_by=request.user,
                completed_date=timezone.now() if data.get('status') == 'done' else None,
            )
            if task.project_id:
                assign_slug(task, 'task', client, user=request.user)
    except DomainError as e:
        return Response({'error': e.message}, status=e.status_code)
    except Exception as e:
        logger.error(f"Unexpected error creating task: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    notify_assignment(task, request.user)
    logger.info(f"Task '{task.title}' ({task.slug}) created by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='Task', object_id=task.id,
                     object_name=task.slug or task.title)
    return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def task_detail(request, pk):
    """Retrieve, update or delete a task"""
    task = get_object_or_404(task_queryset(), pk=pk)

    if request.method == 'GET':
        if not can_view_task(request.user, task):
            return forbidden(request, 'You do not have access to this task')
        return Response(TaskSerializer(task).data)

    if request.method == 'DELETE':
        if not can_delete_task(request.user, task):
            return forbidden(request, 'You do not have permission to delete this task')
        task_id, label = task.id, task.slug or task.title
        task.delete()
        logger.info(f"Task {task_id} deleted by {request.user.username}")
        create_audit_log(request=request, action='delete', model_name='Task', object_id=task_id, object_name=label)
        return Response(status=status.HTTP_204_NO_CONTENT)

    if not can_edit_task(request.user, task):
        return forbidden(request, 'You do not have permission to edit this task')

    old_status = task.status
    old_assignee_id = task.assignee_id
    old_size_hours = task.size_hours

    serializer = TaskSerializer(task, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    client = serializer.validated_data.get('client', task.client)
    department = serializer.validated_data.get('department', task.department)
    if department.client_id != client.id:
        return Response({'error': 'Department does not belong to client'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        task = serializer.save(updated_by=request.user)
        apply_completion(task, old_status)
        if task.size_hours != old_size_hours and 'estimated_hours' not in request.data:
            task.estimated_hours = task.size_hours
        task.version += 1
        task.save()

    if task.assignee_id != old_assignee_id:
        notify_assignment(task, request.user)
    if task.status != old_status and task.assignee_id and task.assignee_id != request.user.id:
        notify(
            task.assignee,
            'task_status_changed',
            'Task status changed',
            f'"{task.title}" moved from {old_status} to {task.status}',
            task=task,
            entity_type='task',
            entity_id=task.id,
            action_url=f'/tasks/{task.slug or task.id}',
        )

    logger.info(f"Task {task.id} updated by {request.user.username} (version {task.version})")
    action = 'status_change' if task.status != old_status else 'update'
    create_audit_log(request=request, action=action, model_name='Task', object_id=task.id,
                     object_name=task.slug or task.title, changes=dict(request.data.items()))
    return Response(TaskSerializer(task).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def task_stats(request):
    """Counts by status and priority plus story points and overdue work"""
    filterset = TaskFilter(request.query_params, queryset=visible_tasks(request.user, Task.objects.all()))
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    tasks = Task.objects.filter(pk__in=filterset.qs.values('pk'))

    by_status = {value: 0 for value, _ in Task.STATUS_CHOICES}
    for row in tasks.values('status').annotate(count=Count('id')):
        by_status[row['status']] = row['count']
    by_priority = {value: 0 for value, _ in Task.PRIORITY_CHOICES}
    for row in tasks.values('priority').annotate(count=Count('id')):
        by_priority[row['priority']] = row['count']

    points = tasks.aggregate(
        total=Sum('story_points'),
        completed=Sum('story_points', filter=Q(status='done')),
    )
    overdue = tasks.filter(due_date__lt=timezone.now()).exclude(status__in=['done', 'archived']).count()

    return Response({
        'total': tasks.count(),
        'by_status': by_status,
        'by_priority': by_priority,
        'total_story_points': points['total'] or 0,
        'completed_story_points': points['completed'] or 0,
        'overdue': overdue,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminOrPM])
def assign_to_sprint(request, pk):
    """Move a task into a sprint (or back to the backlog with sprint=null)"""
    task = get_object_or_404(Task, pk=pk)
    serializer = AssignSprintSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    sprint_id = serializer.validated_data['sprint']
    if sprint_id is None:
        task.sprint = None
        task.sprint_order = None
        task.updated_by = request.user
        task.version += 1
        task.save()
        logger.info(f"Task {task.id} moved to backlog by {request.user.username}")
        create_audit_log(request=request, action='assign', model_name='Task', object_id=task.id,
                         object_name=task.slug or task.title, changes={'sprint': None})
        return Response({'task': TaskSerializer(task).data, 'capacity': None})

    sprint = get_object_or_404(Sprint.objects.select_related('department'), pk=sprint_id)
    with transaction.atomic():
        sprint_order = serializer.validated_data.get('sprint_order')
        if sprint_order is None:
            max_order = Task.objects.filter(sprint=sprint).aggregate(m=Max('sprint_order'))['m']
            sprint_order = (max_order or 0) + 1
        task.sprint = sprint
        task.sprint_order = sprint_order
        task.updated_by = request.user
        task.version += 1
        task.save()

    capacity = sprint_capacity_status(sprint)
    if capacity['status'] == 'over':
        logger.warning(f"Sprint {sprint.id} is over capacity by {capacity['over_by']}h after adding task {task.id}")
    logger.info(f"Task {task.id} assigned to sprint {sprint.id} by {request.user.username}")
    create_audit_log(request=request, action='assign', model_name='Task', object_id=task.id,
                     object_name=task.slug or task.title, changes={'sprint': sprint.id, 'sprint_order': sprint_order})
    return Response({'task': TaskSerializer(task).data, 'capacity': capacity})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def active_sprint_tasks(request):
    """Tasks on active sprint boards the caller can see"""
    tasks = visible_tasks(
        request.user,
        task_queryset().filter(sprint__status='active').exclude(status='archived')
    ).order_by('-updated_at')
    department_id = request.query_params.get('department')
    if department_id:
        tasks = tasks.filter(department_id=department_id)
    return Response(TaskListSerializer(tasks, many=True).data)


# My Work
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_work(request):
    """The caller's assigned tasks split into focus, active and recently completed"""
    mine = task_queryset().filter(assignee=request.user)
    since = timezone.now() - timedelta(days=RECENTLY_COMPLETED_DAYS)

    current_focus = mine.filter(status='in_progress').order_by('personal_order_index', 'created_at')
    active = mine.exclude(status__in=['done', 'archived']).order_by('personal_order_index', 'created_at')
    completed = mine.filter(status='done', completed_date__gte=since).order_by('-completed_date')

    return Response({
        'current_focus': TaskListSerializer(current_focus, many=True).data,
        'active': TaskListSerializer(active, many=True).data,
        'completed': TaskListSerializer(completed, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def reorder_tasks(request):
    """Rewrite the caller's personal order, optionally moving every task to one status"""
    serializer = ReorderTasksSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    task_ids = serializer.validated_data['task_ids']
    target_status = serializer.validated_data.get('target_status')

    try:
        with transaction.atomic(), suspend_cache_signals():
            locked = {
                task.id: task
                for task in Task.objects.select_for_update().filter(pk__in=task_ids, assignee=request.user)
            }
            reordered = []
            for index, task_id in enumerate(task_ids):
                task = locked.get(task_id)
                if task is None:
                    raise DomainError(f'Task {task_id} not found or not assigned to user')
                task.personal_order_index = index
                update_fields = ['personal_order_index', 'updated_at']
                if target_status and task.status != target_status:
                    old_status = task.status
                    task.status = target_status
                    apply_completion(task, old_status)
                    task.version += 1
                    update_fields.extend(['status', 'completed_date', 'version'])
                task.save(update_fields=update_fields)
                reordered.append(task)
    except DomainError as e:
        logger.warning(f"Reorder rejected for {request.user.username}: {e.message}")
        return Response({'error': e.message}, status=e.status_code)

    invalidate_dashboard_cache()
    logger.info(f"User {request.user.username} reordered {len(reordered)} tasks")
    create_audit_log(request=request, action='reorder', model_name='Task', object_id='personal',
                     changes={'task_ids': task_ids, 'target_status': target_status})
    return Response(TaskListSerializer(reordered, many=True).data)


def personal_workspace(user):
    """The caller's first department, or the shared Personal client/department"""
    department = user.departments.select_related('client').order_by('id').first()
    if department is not None:
        return department.client, department
    client, _ = Client.objects.get_or_create(
        name=PERSONAL_WORKSPACE,
        defaults={'is_internal': True, 'created_by': user},
    )
    department, _ = Department.objects.get_or_create(
        client=client,
        name=PERSONAL_WORKSPACE,
        defaults={'created_by': user},
    )
    return client, department


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_personal_todo(request):
    """Private todo assigned to the caller"""
    serializer = PersonalTodoSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    with transaction.atomic():
        client, department = personal_workspace(request.user)
        task = Task.objects.create(
            title=data['title'].strip(),
            description=data.get('description', ''),
            due_date=data.get('due_date'),
            priority=data.get('priority', 'medium'),
            status='todo',
            task_type='personal',
            visibility='private',
            client=client,
            department=department,
            assignee=request.user,
            reporter=request.user,
            created_by=request.user,
            updated_by=request.user,
            personal_order_index=Task.objects.filter(assignee=request.user).count(),
        )

    logger.info(f"Personal todo {task.id} created by {request.user.username}")
    return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)
