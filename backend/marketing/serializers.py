from rest_framework import serializers

from backend.core.validators import sanitize_input, validate_url
from .models import MarketingAsset, SocialMediaAccount
from .services import BATCH_ACTIONS

METRIC_KEYS = ['views', 'shares', 'clicks', 'leads_generated', 'likes', 'comments', 'impressions']


class MarketingAssetSerializer(serializers.ModelSerializer):
    vehicle_name = serializers.CharField(source='vehicle.display_name', read_only=True)

    class Meta:
        model = MarketingAsset
        fields = ['id', 'vehicle', 'vehicle_name', 'asset_type', 'platform', 'url', 'thumbnail_url', 'dimensions',
                  'tags', 'content', 'status', 'ai_generated', 'performance_metrics', 'social_media_posts',
                  'last_used_at', 'dealer_rating', 'dealer_feedback', 'ai_insights', 'created_at', 'updated_at']
        read_only_fields = fields


class SocialMediaAccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = SocialMediaAccount
        fields = ['id', 'platform', 'account_id', 'account_username', 'connection_status', 'default_hashtags',
                  'connected_at', 'updated_at']
        read_only_fields = ['account_id', 'connection_status', 'connected_at', 'updated_at']

    def validate_account_username(self, value):
        value = sanitize_input(value).lstrip('@')
        if not value:
            raise serializers.ValidationError('Account username is required.')
        return value

    def validate_default_hashtags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError('Must be a list of hashtags.')
        return [tag if tag.startswith('#') else f'#{tag}' for tag in (sanitize_input(t) for t in value) if tag]


class GenerateContentSerializer(serializers.Serializer):
    vehicle_id = serializers.IntegerField()
    content_type = serializers.ChoiceField(choices=MarketingAsset.ASSET_TYPE_CHOICES, default='social_post')
    platform = serializers.ChoiceField(choices=MarketingAsset.PLATFORM_CHOICES, default='instagram')
    preferences = serializers.DictField(required=False, default=dict)


class ProcessingSerializer(serializers.Serializer):
    image_urls = serializers.ListField(child=serializers.CharField(max_length=500), required=False, default=list)

    def validate_image_urls(self, value):
        invalid = [url for url in value if not validate_url(url)]
        if invalid:
            raise serializers.ValidationError(f'Invalid image URL: {invalid[0]}')
        return value


class ResetProcessingSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=BATCH_ACTIONS, default='all')


class BatchProcessingSerializer(serializers.Serializer):
    vehicle_ids = serializers.ListField(child=serializers.IntegerField(), min_length=1, max_length=50)
    action = serializers.ChoiceField(choices=BATCH_ACTIONS, default='all')


class AssetFeedbackSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    feedback = serializers.CharField(required=False, allow_blank=True, max_length=2000, default='')

    def validate_feedback(self, value):
        return sanitize_input(value)


class PerformanceSerializer(serializers.Serializer):
    metrics = serializers.DictField(child=serializers.IntegerField(min_value=0))

    def validate_metrics(self, value):
        unknown = sorted(set(value) - set(METRIC_KEYS))
        if unknown:
            raise serializers.ValidationError(f"Unknown metric(s): {', '.join(unknown)}")
        if not value:
            raise serializers.ValidationError('Provide at least one metric.')
        return value


class PublishSerializer(serializers.Serializer):
    platforms = serializers.ListField(
        child=serializers.ChoiceField(choices=SocialMediaAccount.PLATFORM_CHOICES), min_length=1
    )
    caption = serializers.CharField(required=False, allow_blank=True, max_length=2200, default='')
    hashtags = serializers.ListField(child=serializers.CharField(max_length=100), required=False, default=list)
    scheduled_for = serializers.DateTimeField(required=False, allow_null=True, default=None)

    def validate_caption(self, value):
        return sanitize_input(value)

    def validate_platforms(self, value):
        return list(dict.fromkeys(value))
