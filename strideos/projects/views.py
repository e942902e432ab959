import logging
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from strideos.clients.slugs import assign_slug
from strideos.core.cache_signals import suspend_cache_signals
from strideos.core.cache_utils import invalidate_dashboard_cache
from strideos.core.exceptions import DomainError
from strideos.core.permissions import IsAdminRole, forbidden
from strideos.core.serializers import UserSummarySerializer
from strideos.core.utils import create_audit_log, parse_limit
from strideos.notifications.models import Comment, CommentThread
from strideos.notifications.utils import notify
from .filters import ProjectFilter, DocumentFilter
from .models import Project, Document, DocumentStatusAudit, ProjectDeletionAudit
from .permissions import (
    can_view_project, can_edit_project, visible_projects, can_view_document, can_edit_document
)
from .serializers import (
    ProjectSerializer, ProjectListSerializer, DocumentSerializer, DocumentStatusAuditSerializer,
    ProjectDeletionAuditSerializer
)

User = get_user_model()

logger = logging.getLogger('strideos.projects')

AT_RISK_WINDOW = timedelta(days=7)


def project_queryset():
    return Project.objects.select_related('client', 'department', 'project_manager', 'document')


def deletion_summary(project):
    """What deleting a project would remove"""
    tasks = project.tasks.all()
    comments = Comment.objects.filter(Q(thread__task__project=project) | Q(thread__project=project))
    return {
        'project_id': project.id,
        'project_title': project.title,
        'task_count': tasks.count(),
        'comment_count': comments.count(),
        'document_count': project.documents.count(),
    }


def stamp_status_dates(project, old_status):
    """Record actual start/completion when the status crosses those milestones"""
    now = timezone.now()
    if project.status == old_status:
        return []
    changed = []
    if project.status == 'in_progress' and project.actual_start_date is None:
        project.actual_start_date = now
        changed.append('actual_start_date')
    if project.status == 'complete':
        project.actual_completion_date = now
        changed.append('actual_completion_date')
    return changed


def create_brief(project, user, title=None):
    project.document = Document.objects.create(
        title=title or f"{project.title} Brief",
        document_type='project_brief',
        status='draft',
        project=project,
        client=project.client,
        department=project.department,
        created_by=user,
    )
    project.save(update_fields=['document'])
    return project.document


def create_project(request, serializer, template=None):
    """Save a validated project with its brief, slug and creation notice"""
    client = serializer.validated_data['client']
    department = serializer.validated_data['department']
    if department.client_id != client.id:
        return Response({'error': 'Department does not belong to client'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            project = serializer.save(
                status='new',
                created_by=request.user,
                project_manager=serializer.validated_data.get('project_manager') or request.user,
                template_source=template,
            )
            brief_title = f"{project.title} Brief"
            if template is not None and template.document is not None:
                brief_title = template.document.title.replace(template.title, project.title)
            create_brief(project, request.user, brief_title)
            assign_slug(project, 'project', client, user=request.user)
    except DomainError as e:
        return Response({'error': e.message}, status=e.status_code)
    except Exception as e:
        logger.error(f"Unexpected error creating project: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    notify(
        project.project_manager,
        'project_created',
        'New project created',
        f'Project "{project.title}" was created for {client.name}',
        project=project,
        entity_type='project',
        entity_id=project.id,
        action_url=f'/projects/{project.id}',
        action_text='View project',
    )
    logger.info(f"Project '{project.title}' ({project.slug}) created by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='Project', object_id=project.id,
                     object_name=project.slug or project.title)
    return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_list_create(request):
    """List visible projects or create a project with its brief"""
    if request.method == 'GET':
        queryset = visible_projects(request.user, project_queryset())
        if 'is_template' not in request.query_params:
            queryset = queryset.filter(is_template=False)
        filterset = ProjectFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        projects = filterset.qs.order_by('-updated_at')
        limit = parse_limit(request.query_params.get('limit'))
        if limit:
            projects = projects[:limit]
        return Response(ProjectListSerializer(projects, many=True).data)

    if not request.user.is_admin_or_pm:
        return forbidden(request, 'Only admins and project managers can create projects')

    serializer = ProjectSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Project creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    return create_project(request, serializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def project_detail(request, pk):
    """Retrieve, update or delete a project"""
    project = get_object_or_404(project_queryset(), pk=pk)

    if request.method == 'GET':
        if not can_view_project(request.user, project):
            return forbidden(request, 'You do not have access to this project')
        return Response(ProjectSerializer(project).data)

    if request.method in ('PUT', 'PATCH'):
        if not can_edit_project(request.user, project):
            return forbidden(request, 'You do not have permission to edit this project')
        old_status = project.status
        serializer = ProjectSerializer(project, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        client = serializer.validated_data.get('client', project.client)
        department = serializer.validated_data.get('department', project.department)
        if department.client_id != client.id:
            return Response({'error': 'Department does not belong to client'}, status=status.HTTP_400_BAD_REQUEST)

        project = serializer.save()
        changed = stamp_status_dates(project, old_status)
        if changed:
            project.save(update_fields=changed)
        logger.info(f"Project {project.id} updated by {request.user.username}")
        action = 'status_change' if project.status != old_status else 'update'
        create_audit_log(request=request, action=action, model_name='Project', object_id=project.id,
                         object_name=project.slug or project.title,
                         changes={'old_status': old_status, 'new_status': project.status} if action == 'status_change'
                         else dict(request.data.items()))
        return Response(ProjectSerializer(project).data)

    if not request.user.is_admin:
        return forbidden(request, 'Only admins can delete projects')

    summary = deletion_summary(project)
    try:
        with transaction.atomic(), suspend_cache_signals():
            CommentThread.objects.filter(Q(task__project=project) | Q(project=project)).delete()
            project.tasks.all().delete()
            brief = project.document
            project.documents.all().delete()
            if brief is not None and brief.pk and Document.objects.filter(pk=brief.pk).exists():
                brief.delete()
            ProjectDeletionAudit.objects.create(
                project_id_ref=project.id,
                project_title=project.title,
                admin_user=request.user,
                document_count=summary['document_count'],
                task_count=summary['task_count'],
                comment_count=summary['comment_count'],
            )
            project.delete()
    except Exception as e:
        logger.error(f"Unexpected error deleting project {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    invalidate_dashboard_cache()
    logger.info(f"Project {pk} deleted by {request.user.username}: {summary}")
    create_audit_log(request=request, action='delete', model_name='Project', object_id=pk,
                     object_name=summary['project_title'], changes=summary)
    return Response(summary)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def project_deletion_summary(request, pk):
    project = get_object_or_404(Project, pk=pk)
    return Response(deletion_summary(project))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def project_deletion_audits(request):
    audits = ProjectDeletionAudit.objects.select_related('admin_user')[:100]
    return Response(ProjectDeletionAuditSerializer(audits, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def project_stats(request):
    """Headline counts and average progress over the caller's visible projects"""
    projects = Project.objects.filter(
        pk__in=visible_projects(request.user, Project.objects.filter(is_template=False)).values('pk')
    )
    now = timezone.now()
    totals = projects.aggregate(
        total=Count('id'),
        on_track=Count('id', filter=Q(status__in=['ready_for_work', 'in_progress'])),
        at_risk=Count('id', filter=Q(status='client_review') | (
            ~Q(status='complete') & Q(target_due_date__isnull=False) & Q(target_due_date__lte=now + AT_RISK_WINDOW)
        )),
        completed=Count('id', filter=Q(status='complete')),
    )

    progress = []
    rows = projects.annotate(
        task_total=Count('tasks'),
        task_done=Count('tasks', filter=Q(tasks__status='done')),
    ).filter(task_total__gt=0)
    for row in rows:
        progress.append(row.task_done / row.task_total * 100)
    totals['avg_progress'] = round(sum(progress) / len(progress)) if progress else 0
    return Response(totals)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def project_team(request, pk):
    """Everyone working on a project, de-duplicated"""
    project = get_object_or_404(Project.objects.select_related('department'), pk=pk)
    if not can_view_project(request.user, project):
        return forbidden(request, 'You do not have access to this project')

    department = project.department
    user_ids = set(department.team_members.values_list('id', flat=True))
    user_ids.update(project.team_members.values_list('id', flat=True))
    user_ids.update(
        project.tasks.filter(assignee__isnull=False).values_list('assignee_id', flat=True)
    )
    for single in (department.lead_id, project.project_manager_id):
        if single:
            user_ids.add(single)

    members = User.objects.filter(pk__in=user_ids).order_by('name', 'username')
    return Response({
        'project_id': project.id,
        'lead': department.lead_id,
        'project_manager': project.project_manager_id,
        'members': UserSummarySerializer(members, many=True).data,
    })


# Template views
TEMPLATE_FIELDS = ['title', 'client', 'department', 'description', 'visibility', 'project_manager']


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def project_templates(request):
    """Templates the caller can see, newest first"""
    queryset = visible_projects(request.user, project_queryset()).filter(is_template=True)
    filterset = ProjectFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response(ProjectListSerializer(filterset.qs.order_by('-created_at'), many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def project_save_as_template(request, pk):
    """Copy a project's setup and brief into a reusable template"""
    if not request.user.is_admin_or_pm:
        return forbidden(request, 'Only admins and project managers can create templates')
    project = get_object_or_404(project_queryset(), pk=pk)
    if not can_view_project(request.user, project):
        return forbidden(request, 'You do not have access to this project')

    title = (request.data.get('title') or '').strip() or f"{project.title} Template"
    with transaction.atomic():
        template = Project.objects.create(
            title=title,
            client=project.client,
            department=project.department,
            description=request.data.get('description', project.description),
            visibility=project.visibility,
            project_manager=project.project_manager,
            status='new',
            is_template=True,
            template_source=project,
            created_by=request.user,
        )
        template.team_members.set(project.team_members.all())
        brief_title = f"{title} Brief"
        if project.document is not None:
            brief_title = project.document.title.replace(project.title, title)
        create_brief(template, request.user, brief_title)

    logger.info(f"Project {project.id} saved as template {template.id} by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='Project', object_id=template.id,
                     object_name=template.title, changes={'template_source': project.id})
    return Response(ProjectSerializer(template).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def project_from_template(request, pk):
    """Start a new project from a template; request fields override the template's"""
    if not request.user.is_admin_or_pm:
        return forbidden(request, 'Only admins and project managers can create projects')
    template = get_object_or_404(project_queryset(), pk=pk)
    if not can_view_project(request.user, template):
        return forbidden(request, 'You do not have access to this template')
    if not template.is_template:
        return Response({'error': 'Project is not a template'}, status=status.HTTP_400_BAD_REQUEST)

    data = {
        'title': template.title,
        'client': template.client_id,
        'department': template.department_id,
        'description': template.description,
        'visibility': template.visibility,
        'project_manager': template.project_manager_id,
        'team_members': list(template.team_members.values_list('id', flat=True)),
    }
    for field in TEMPLATE_FIELDS + ['team_members', 'target_due_date']:
        if field in request.data:
            data[field] = request.data[field]

    serializer = ProjectSerializer(data=data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    return create_project(request, serializer, template=template)


# Document views
def visible_documents(user, queryset):
    if user.is_admin:
        return queryset
    projects = visible_projects(user, Project.objects.all()).values('pk')
    return queryset.filter(Q(project__in=projects) | Q(project__isnull=True, created_by=user))


def apply_document_status(document, old_status, user):
    """Stamp publish/archive times and record the transition"""
    if document.status == old_status:
        return
    now = timezone.now()
    if document.status == 'published':
        document.published_at = now
    elif document.status == 'archived':
        document.archived_at = now
    document.save(update_fields=['published_at', 'archived_at'])
    DocumentStatusAudit.objects.create(document=document, user=user, old_status=old_status, new_status=document.status)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def document_list_create(request):
    if request.method == 'GET':
        queryset = visible_documents(request.user, Document.objects.select_related('project', 'created_by'))
        filterset = DocumentFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(DocumentSerializer(filterset.qs.order_by('-updated_at'), many=True).data)

    serializer = DocumentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    project = serializer.validated_data.get('project')
    if project is not None and not can_edit_project(request.user, project):
        return forbidden(request, 'You do not have permission to add documents to this project')

    extra = {'created_by': request.user}
    if project is not None:
        extra.setdefault('client', serializer.validated_data.get('client') or project.client)
        extra.setdefault('department', serializer.validated_data.get('department') or project.department)
    document = serializer.save(**extra)
    apply_document_status(document, None, request.user)
    logger.info(f"Document '{document.title}' created by {request.user.username}")
    create_audit_log(request=request, action='create', model_name='Document', object_id=document.id,
                     object_name=document.title)
    return Response(DocumentSerializer(document).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def document_detail(request, pk):
    document = get_object_or_404(Document.objects.select_related('project'), pk=pk)

    if request.method == 'GET':
        if not can_view_document(request.user, document):
            return forbidden(request, 'You do not have access to this document')
        data = DocumentSerializer(document).data
        data['status_history'] = DocumentStatusAuditSerializer(document.status_audits.all(), many=True).data
        return Response(data)

    if not can_edit_document(request.user, document):
        return forbidden(request, 'You do not have permission to edit this document')

    if request.method == 'DELETE':
        if hasattr(document, 'brief_for'):
            return Response({'error': 'Project briefs are removed with their project'}, status=status.HTTP_400_BAD_REQUEST)
        document_id = document.id
        document.delete()
        logger.info(f"Document {document_id} deleted by {request.user.username}")
        create_audit_log(request=request, action='delete', model_name='Document', object_id=document_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    old_status = document.status
    serializer = DocumentSerializer(document, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    document = serializer.save()
    apply_document_status(document, old_status, request.user)
    logger.info(f"Document {document.id} updated by {request.user.username}")
    create_audit_log(request=request, action='update', model_name='Document', object_id=document.id,
                     object_name=document.title, changes=dict(request.data.items()))
    return Response(DocumentSerializer(document).data)
