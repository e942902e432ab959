import django_filters
from django.db.models import Q

from .models import Task


class TaskFilter(django_filters.FilterSet):
    """Task list filters; ``backlog=true`` keeps tasks that are not in a sprint"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    client = django_filters.NumberFilter(field_name='client_id')
    department = django_filters.NumberFilter(field_name='department_id')
    project = django_filters.NumberFilter(field_name='project_id')
    sprint = django_filters.NumberFilter(field_name='sprint_id')
    assignee = django_filters.NumberFilter(field_name='assignee_id')
    status = django_filters.MultipleChoiceFilter(choices=Task.STATUS_CHOICES)
    priority = django_filters.ChoiceFilter(choices=Task.PRIORITY_CHOICES)
    task_type = django_filters.ChoiceFilter(choices=Task.TYPE_CHOICES)
    backlog = django_filters.BooleanFilter(field_name='sprint', lookup_expr='isnull')

    class Meta:
        model = Task
        fields = ['search', 'client', 'department', 'project', 'sprint', 'assignee',
                  'status', 'priority', 'task_type', 'backlog']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value) |
            Q(slug__icontains=value) |
            Q(description__icontains=value)
        )
