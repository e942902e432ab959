"""Sprint visibility follows department membership"""
from django.db.models import Q


def can_view_sprint(user, sprint):
    if user.is_admin:
        return True
    if user.is_client_user:
        return user.client_id is not None and sprint.client_id == user.client_id
    if user.is_pm:
        return True
    if sprint.department_id in user.department_ids:
        return True
    return sprint.team_members.filter(pk=user.pk).exists()


def visible_sprints(user, queryset):
    if user.is_admin or user.is_pm:
        return queryset
    if user.is_client_user:
        return queryset.filter(client_id=user.client_id) if user.client_id else queryset.none()
    return queryset.filter(Q(department_id__in=user.department_ids) | Q(team_members=user)).distinct()
