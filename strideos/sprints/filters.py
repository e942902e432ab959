import django_filters

from .models import Sprint


class SprintFilter(django_filters.FilterSet):
    department = django_filters.NumberFilter(field_name='department_id')
    client = django_filters.NumberFilter(field_name='client_id')
    status = django_filters.MultipleChoiceFilter(choices=Sprint.STATUS_CHOICES)

    class Meta:
        model = Sprint
        fields = ['department', 'client', 'status']
