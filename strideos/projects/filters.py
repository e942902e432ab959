import django_filters
from django.db.models import Q

from .models import Project, Document


class ProjectFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    client = django_filters.NumberFilter(field_name='client_id')
    department = django_filters.NumberFilter(field_name='department_id')
    status = django_filters.ChoiceFilter(choices=Project.STATUS_CHOICES)
    project_manager = django_filters.NumberFilter(field_name='project_manager_id')
    is_template = django_filters.BooleanFilter()

    class Meta:
        model = Project
        fields = ['search', 'client', 'department', 'status', 'project_manager', 'is_template']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value) |
            Q(slug__icontains=value) |
            Q(description__icontains=value)
        )


class DocumentFilter(django_filters.FilterSet):
    project = django_filters.NumberFilter(field_name='project_id')
    client = django_filters.NumberFilter(field_name='client_id')
    status = django_filters.ChoiceFilter(choices=Document.STATUS_CHOICES)
    document_type = django_filters.ChoiceFilter(choices=Document.TYPE_CHOICES)
    search = django_filters.CharFilter(field_name='title', lookup_expr='icontains')

    class Meta:
        model = Document
        fields = ['project', 'client', 'status', 'document_type', 'search']
