"""Task visibility and edit rules by role"""
from django.db.models import Q

SHARED_VISIBILITIES = ('team', 'department', 'client')


def can_view_task(user, task):
    if user.is_admin:
        return True
    if task.assignee_id == user.id:
        return True
    if user.is_client_user:
        return user.client_id is not None and task.client_id == user.client_id and task.visibility == 'client'
    if user.is_pm:
        return task.department_id in user.department_ids
    # task_owner
    return task.department_id in user.department_ids and task.visibility in SHARED_VISIBILITIES


def can_edit_task(user, task):
    if user.is_admin:
        return True
    if user.is_pm:
        return task.department_id in user.department_ids
    if user.role == 'task_owner':
        return task.assignee_id == user.id
    return False


def can_delete_task(user, task):
    if user.is_admin:
        return True
    if user.is_pm:
        return task.department_id in user.department_ids
    return False


def visible_tasks(user, queryset):
    """Restrict a Task queryset to what the user may see"""
    if user.is_admin:
        return queryset
    departments = user.department_ids
    if user.is_client_user:
        if not user.client_id:
            return queryset.filter(assignee=user)
        return queryset.filter(Q(client_id=user.client_id, visibility='client') | Q(assignee=user))
    if user.is_pm:
        return queryset.filter(Q(department_id__in=departments) | Q(assignee=user))
    return queryset.filter(
        Q(assignee=user)
        | Q(department_id__in=departments, visibility__in=SHARED_VISIBILITIES)
    )
