from django.contrib import admin
from .models import Sprint


@admin.register(Sprint)
class SprintAdmin(admin.ModelAdmin):
    list_display = ['slug', 'name', 'department', 'status', 'start_date', 'end_date', 'total_capacity', 'actual_velocity']
    list_filter = ['status', 'client']
    search_fields = ['name', 'slug']
    ordering = ['-start_date']
    filter_horizontal = ['team_members']
