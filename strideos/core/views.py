import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from .filters import UserFilter, AuditLogFilter
from .models import Organization, AuditLog
from .permissions import IsAdminRole
from .serializers import (
    UserSerializer, UserSummarySerializer, ProfileSerializer, UserWriteSerializer,
    BulkUserUpdateSerializer, SetPasswordSerializer, OrganizationSerializer, AuditLogSerializer
)
from .utils import create_audit_log, generate_token, parse_limit

User = get_user_model()

logger = logging.getLogger('strideos.core')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active or self.user.status == 'inactive':
            raise AuthenticationFailed('User account is disabled.')
        self.user.last_login_at = timezone.now()
        if self.user.status == 'invited':
            self.user.status = 'active'
        self.user.save(update_fields=['last_login_at', 'status'])
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def accept_invitation(request):
    """Set the first password for an invited user and activate the account"""
    serializer = SetPasswordSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    token = serializer.validated_data['token']
    user = User.objects.filter(invitation_token=token, status='invited').first()
    if user is None:
        logger.warning("Invitation acceptance attempted with an unknown or used token")
        return Response({'error': 'Invitation is invalid or has already been used'}, status=status.HTTP_400_BAD_REQUEST)

    user.set_password(serializer.validated_data['password'])
    user.status = 'active'
    user.is_active = True
    user.invitation_token = None
    user.save()
    logger.info(f"User {user.username} accepted invitation")
    create_audit_log(request=request, user=user, action='update', model_name='User',
                     object_id=user.id, object_name=user.email, changes={'status': 'active'})
    return Response(UserSerializer(user).data)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get or update the current user's profile"""
    user = request.user
    if request.method == 'PATCH':
        serializer = ProfileSerializer(user, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        logger.info(f"User {user.username} updated their profile")

    user_data = UserSerializer(user).data
    user_data['is_admin'] = user.is_admin
    user_data['can_manage_projects'] = user.is_admin_or_pm
    user_data['can_manage_users'] = user.is_admin
    return Response(user_data)


# User administration
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_list_create(request):
    """List users with filters or invite a new user"""
    if request.method == 'GET':
        queryset = User.objects.select_related('client').prefetch_related('departments')
        filterset = UserFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        users = filterset.qs.distinct().order_by('name', 'username')
        return Response(UserSerializer(users, many=True).data)

    serializer = UserWriteSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"User creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        user = serializer.save(
            status='invited',
            invited_by=request.user,
            invited_at=timezone.now(),
            invitation_token=generate_token(),
        )
    logger.info(f"User {user.email} invited by {request.user.username}")
    create_audit_log(request=request, action='invite', model_name='User', object_id=user.id,
                     object_name=user.email, changes={'role': user.role})
    data = UserSerializer(user).data
    data['invitation_token'] = user.invitation_token
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or deactivate a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    if request.method in ('PUT', 'PATCH'):
        new_status = request.data.get('status')
        if user.pk == request.user.pk and new_status == 'inactive':
            return Response({'error': 'You cannot deactivate your own account'}, status=status.HTTP_400_BAD_REQUEST)

        serializer = UserWriteSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        logger.info(f"User {user.pk} updated by {request.user.username}")
        create_audit_log(request=request, action='update', model_name='User', object_id=user.id,
                         object_name=user.email,
                         changes={k: v for k, v in request.data.items() if k != 'password'})
        return Response(UserSerializer(user).data)

    # DELETE is a soft delete
    if user.pk == request.user.pk:
        return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)

    assigned = user.assigned_tasks.count()
    if assigned > 0:
        return Response(
            {'error': f'Cannot delete user: {assigned} tasks are assigned to this user'},
            status=status.HTTP_400_BAD_REQUEST
        )

    user.status = 'inactive'
    user.is_active = False
    user.save(update_fields=['status', 'is_active', 'updated_at'])
    logger.info(f"User {user.pk} deactivated by {request.user.username}")
    create_audit_log(request=request, action='delete', model_name='User', object_id=user.id, object_name=user.email)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_resend_invitation(request, pk):
    """Issue a fresh invitation token to an invited user"""
    user = get_object_or_404(User, pk=pk)
    if user.status != 'invited':
        return Response({'error': 'User is not in invited status'}, status=status.HTTP_400_BAD_REQUEST)

    user.invitation_token = generate_token()
    user.invited_at = timezone.now()
    user.invited_by = request.user
    user.save(update_fields=['invitation_token', 'invited_at', 'invited_by', 'updated_at'])
    logger.info(f"Invitation resent to {user.email} by {request.user.username}")
    create_audit_log(request=request, action='invite', model_name='User', object_id=user.id, object_name=user.email)
    return Response({'id': user.id, 'invitation_token': user.invitation_token, 'invited_at': user.invited_at})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_bulk_update(request):
    """Apply the same status and/or role to several users"""
    serializer = BulkUserUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    if request.user.pk in data['user_ids']:
        return Response({'error': 'You cannot bulk update your own account'}, status=status.HTTP_400_BAD_REQUEST)

    updates = {}
    if 'status' in data:
        updates['status'] = data['status']
        updates['is_active'] = data['status'] != 'inactive'
    if 'role' in data:
        updates['role'] = data['role']
    if not updates:
        return Response({'error': 'Nothing to update'}, status=status.HTTP_400_BAD_REQUEST)

    updates['updated_at'] = timezone.now()
    updated = User.objects.filter(pk__in=data['user_ids']).update(**updates)
    logger.info(f"Bulk update of {updated} users by {request.user.username}: {updates}")
    create_audit_log(request=request, action='update', model_name='User', object_id='bulk',
                     changes={'user_ids': data['user_ids'], 'status': data.get('status'), 'role': data.get('role')})
    return Response({'updated': updated})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_stats(request):
    """User counts by status and role"""
    totals = User.objects.aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(status='active')),
        inactive=Count('id', filter=Q(status='inactive')),
        invited=Count('id', filter=Q(status='invited')),
        assigned_to_clients=Count('id', filter=Q(client__isnull=False)),
    )
    by_role = {role: 0 for role, _ in User.ROLE_CHOICES}
    for row in User.objects.values('role').annotate(count=Count('id')):
        by_role[row['role']] = row['count']
    totals['by_role'] = by_role
    totals['assigned_to_departments'] = User.objects.filter(departments__isnull=False).distinct().count()
    return Response(totals)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def team_list(request):
    """Active users, optionally narrowed to a client or department"""
    users = User.objects.filter(status='active')
    client_id = request.query_params.get('client')
    department_id = request.query_params.get('department')
    if client_id:
        users = users.filter(client_id=client_id)
    if department_id:
        users = users.filter(departments__id=department_id)
    users = users.distinct().order_by('name', 'username')
    return Response(UserSummarySerializer(users, many=True).data)


# Organization
def _organization_defaults():
    return {
        'id': None,
        'name': '',
        'slug': '',
        'default_workstream_capacity': Organization.default_workstream_hours(),
        'default_sprint_duration': Organization.default_sprint_weeks(),
        'email_invitations': True,
        'slack_integration': False,
        'client_portal': False,
    }


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def organization_detail(request):
    """Get the organization settings; admins may update them"""
    org = Organization.get_solo()

    if request.method == 'GET':
        if org is None:
            return Response(_organization_defaults())
        return Response(OrganizationSerializer(org).data)

    if not request.user.is_admin:
        logger.warning(f"User {request.user.username} attempted to update organization without admin role")
        return Response({'error': 'Only admins can update organization settings'}, status=status.HTTP_403_FORBIDDEN)

    if org is None:
        serializer = OrganizationSerializer(data=request.data)
    else:
        serializer = OrganizationSerializer(org, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    org = serializer.save()
    logger.info(f"Organization settings updated by {request.user.username}")
    create_audit_log(request=request, action='update', model_name='Organization', object_id=org.id,
                     object_name=org.name, changes=dict(request.data.items()))
    return Response(OrganizationSerializer(org).data)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def audit_log_list(request):
    """List audit logs with filtering"""
    filterset = AuditLogFilter(request.query_params, queryset=AuditLog.objects.select_related('user'))
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    limit = parse_limit(request.query_params.get('limit'), default=200)
    logs = filterset.qs.order_by('-created_at')[:limit]
    return Response(AuditLogSerializer(logs, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)
    return Response(AuditLogSerializer(audit_log).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """Search clients, projects, tasks and users the caller can see"""
    query = request.query_params.get('q', '').strip()

    if not query:
        return Response({
            'clients': [],
            'projects': [],
            'tasks': [],
            'users': [],
        })

    from strideos.clients.models import Client
    from strideos.clients.serializers import ClientSerializer
    from strideos.projects.models import Project
    from strideos.projects.permissions import visible_projects
    from strideos.projects.serializers import ProjectListSerializer
    from strideos.tasks.models import Task
    from strideos.tasks.permissions import visible_tasks
    from strideos.tasks.serializers import TaskListSerializer

    user = request.user
    results = {}

    clients = Client.objects.filter(name__icontains=query).exclude(status='archived')
    if user.is_client_user:
        clients = clients.filter(pk=user.client_id)
    results['clients'] = ClientSerializer(clients[:10], many=True).data

    projects = visible_projects(user, Project.objects.filter(
        Q(title__icontains=query) | Q(slug__icontains=query)
    ))
    results['projects'] = ProjectListSerializer(projects[:10], many=True).data

    tasks = visible_tasks(user, Task.objects.filter(
        Q(title__icontains=query) | Q(slug__icontains=query)
    ).select_related('assignee', 'project'))
    results['tasks'] = TaskListSerializer(tasks[:10], many=True).data

    users = User.objects.filter(status='active').filter(
        Q(name__icontains=query) | Q(email__icontains=query) | Q(username__icontains=query)
    )
    results['users'] = UserSummarySerializer(users[:10], many=True).data

    return Response(results)
