from django.contrib import admin
from .models import Notification, Feedback


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'type', 'title', 'priority', 'read_status', 'created_at']
    list_filter = ['type', 'priority', 'read_status', 'created_at']
    search_fields = ['user__username', 'user__email', 'title', 'message']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'read_at']


@admin.register(Feedback)
class FeedbackAdmin(admin.ModelAdmin):
    list_display = ['type', 'title', 'user', 'rating', 'status', 'public_visible', 'votes', 'created_at']
    list_filter = ['type', 'status', 'public_visible']
    search_fields = ['title', 'message', 'user__email']
    ordering = ['-created_at']
