import django_filters

from .models import Client, Department, ProjectKey


class ClientFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')
    status = django_filters.ChoiceFilter(choices=Client.STATUS_CHOICES)
    is_internal = django_filters.BooleanFilter()

    class Meta:
        model = Client
        fields = ['search', 'status', 'is_internal']


class DepartmentFilter(django_filters.FilterSet):
    client = django_filters.NumberFilter(field_name='client_id')
    status = django_filters.ChoiceFilter(choices=Department.STATUS_CHOICES)
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')

    class Meta:
        model = Department
        fields = ['client', 'status', 'search']


class ProjectKeyFilter(django_filters.FilterSet):
    client = django_filters.NumberFilter(field_name='client_id')
    department = django_filters.NumberFilter(field_name='department_id')
    is_active = django_filters.BooleanFilter()

    class Meta:
        model = ProjectKey
        fields = ['client', 'department', 'is_active']
