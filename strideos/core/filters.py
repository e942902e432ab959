import django_filters
from django.db.models import Q

from .models import User, AuditLog


class UserFilter(django_filters.FilterSet):
    """Admin user directory filters"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    role = django_filters.ChoiceFilter(choices=User.ROLE_CHOICES)
    status = django_filters.ChoiceFilter(choices=User.STATUS_CHOICES)
    client = django_filters.NumberFilter(field_name='client_id')
    department = django_filters.NumberFilter(field_name='departments', lookup_expr='exact')

    class Meta:
        model = User
        fields = ['search', 'role', 'status', 'client', 'department']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(email__icontains=value) |
            Q(job_title__icontains=value) |
            Q(username__icontains=value)
        )


class AuditLogFilter(django_filters.FilterSet):
    action = django_filters.CharFilter(field_name='action')
    model_name = django_filters.CharFilter(field_name='model_name')
    user = django_filters.NumberFilter(field_name='user_id')
    date_from = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='gte')
    date_to = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = AuditLog
        fields = ['action', 'model_name', 'user', 'date_from', 'date_to']
