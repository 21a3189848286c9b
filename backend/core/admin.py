from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, SystemConfig, SystemLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'is_active', 'is_staff', 'platform_admin', 'custom_margin_enabled', 'date_joined']
    list_filter = ['is_active', 'is_staff', 'platform_admin', 'custom_margin_enabled', 'date_joined']
    search_fields = ['username', 'email', 'first_name', 'last_name']
    ordering = ['username']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Marketplace', {'fields': ('phone', 'platform_admin', 'custom_margin_enabled', 'margin_override_history')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Marketplace', {'fields': ('phone',)}),
    )


@admin.register(SystemConfig)
class SystemConfigAdmin(admin.ModelAdmin):
    list_display = ['config_key', 'config_value', 'data_type', 'category', 'is_active', 'updated_at']
    list_filter = ['category', 'data_type', 'is_active']
    search_fields = ['config_key', 'description']
    ordering = ['category', 'config_key']
    readonly_fields = ['updated_at']


@admin.register(SystemLog)
class SystemLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action_type', 'module', 'target_id', 'severity', 'ip_address', 'created_at']
    list_filter = ['action_type', 'module', 'severity', 'created_at']
    search_fields = ['user__username', 'module', 'target_id', 'target_name']
    ordering = ['-created_at']
    readonly_fields = ['user', 'action_type', 'module', 'target_id', 'target_name', 'details', 'severity', 'ip_address', 'created_at']
