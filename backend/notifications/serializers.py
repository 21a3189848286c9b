from rest_framework import serializers

from backend.core.validators import sanitize_input
from .models import Notification, Feedback


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'type', 'title', 'message', 'link', 'priority', 'action_required',
                  'related_object_id', 'read_status', 'read_at', 'created_at']
        read_only_fields = fields


class FeedbackSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True, default=None)

    class Meta:
        model = Feedback
        fields = ['id', 'user_email', 'type', 'title', 'message', 'rating', 'page_context', 'status',
                  'public_visible', 'votes', 'admin_response', 'created_at', 'updated_at']
        read_only_fields = ['status', 'public_visible', 'votes', 'admin_response', 'created_at', 'updated_at']

    def validate_message(self, value):
        value = sanitize_input(value)
        if not value:
            raise serializers.ValidationError('Feedback message is required.')
        return value

    def validate_title(self, value):
        return sanitize_input(value)

    def validate_rating(self, value):
        if value is not None and not 1 <= value <= 5:
            raise serializers.ValidationError('Rating must be between 1 and 5.')
        return value


class FeedbackAdminSerializer(FeedbackSerializer):
    class Meta(FeedbackSerializer.Meta):
        read_only_fields = ['type', 'title', 'message', 'rating', 'page_context', 'created_at', 'updated_at']
