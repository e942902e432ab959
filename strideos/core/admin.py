from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Organization, AuditLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'name', 'role', 'status', 'client', 'last_login_at']
    list_filter = ['role', 'status', 'is_staff', 'is_superuser']
    search_fields = ['username', 'email', 'name', 'job_title']
    ordering = ['name', 'username']
    filter_horizontal = ['departments']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('StrideOS', {'fields': ('name', 'role', 'status', 'client', 'departments', 'job_title', 'bio',
                                 'timezone', 'preferred_language', 'theme_preference')}),
        ('Invitation', {'fields': ('invited_by', 'invited_at', 'invitation_token', 'last_login_at')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('StrideOS', {'fields': ('email', 'name', 'role', 'client')}),
    )


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'default_workstream_capacity', 'default_sprint_duration', 'updated_at']
    search_fields = ['name', 'slug']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'model_name', 'object_id', 'object_name', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__username', 'model_name', 'object_id', 'object_name']
    ordering = ['-created_at']
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'object_name', 'changes', 'ip_address', 'created_at']
