"""Project visibility rules"""
from django.db.models import Q


def can_view_project(user, project):
    if user.is_admin:
        return True
    if project.project_manager_id == user.id:
        return True
    if project.team_members.filter(pk=user.pk).exists():
        return True
    if project.visibility == 'organization':
        return True
    if project.visibility == 'department':
        return project.department_id in user.department_ids
    if project.visibility == 'client':
        return user.client_id is not None and project.client_id == user.client_id
    return False


def can_edit_project(user, project):
    if user.is_admin_or_pm:
        return True
    if project.project_manager_id == user.id:
        return True
    return project.team_members.filter(pk=user.pk).exists()


def visible_projects(user, queryset):
    """Restrict a Project queryset to what the user may see"""
    if user.is_admin:
        return queryset
    rules = (
        Q(project_manager=user)
        | Q(team_members=user)
        | Q(visibility='organization')
        | Q(visibility='department', department_id__in=user.department_ids)
    )
    if user.client_id:
        rules |= Q(visibility='client', client_id=user.client_id)
    return queryset.filter(rules).distinct()


def can_view_document(user, document):
    if user.is_admin or document.created_by_id == user.id:
        return True
    return document.project is not None and can_view_project(user, document.project)


def can_edit_document(user, document):
    if user.is_admin or document.created_by_id == user.id:
        return True
    return document.project is not None and can_edit_project(user, document.project)
