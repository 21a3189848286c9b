from rest_framework import serializers
from django.utils import timezone

from backend.core.validators import sanitize_input, validate_vehicle_data, validate_url
from backend.dealers.serializers import DealerPublicSerializer
from .models import Vehicle

SANITIZED_FIELDS = ['make', 'model', 'variant', 'description', 'color', 'registration_number']
OWNER_SETTABLE_STATUSES = ('draft', 'live')


class VehicleListSerializer(serializers.ModelSerializer):
    """Marketplace card: no private cost data"""
    dealer = DealerPublicSerializer(read_only=True)
    days_in_stock = serializers.IntegerField(read_only=True)

    class Meta:
        model = Vehicle
        fields = ['id', 'dealer', 'make', 'model', 'variant', 'year', 'price', 'kilometers', 'fuel_type',
                  'transmission', 'color', 'owners', 'rc_verified', 'inspection_score', 'image_urls',
                  'processed_image_urls', 'view_360_url', 'reel_url', 'status', 'is_featured',
                  'date_listed', 'days_in_stock', 'views', 'created_at']


class VehicleSerializer(serializers.ModelSerializer):
    """Full record for the owning dealer"""
    dealer = DealerPublicSerializer(read_only=True)
    days_in_stock = serializers.IntegerField(read_only=True)
    status = serializers.ChoiceField(choices=Vehicle.STATUS_CHOICES, required=False)

    class Meta:
        model = Vehicle
        fields = ['id', 'dealer', 'make', 'model', 'variant', 'year', 'price', 'cost_price', 'final_sale_price',
                  'description', 'vin', 'registration_number', 'kilometers', 'fuel_type', 'transmission', 'color',
                  'engine_capacity', 'power', 'seating_capacity', 'owners', 'rc_verified', 'insurance_verified',
                  'inspection_checklist', 'inspection_score', 'image_urls', 'video_url', 'document_urls',
                  'processed_image_urls', 'view_360_url', 'reel_url', 'marketing_content_urls',
                  'image_processing_status', 'view_360_processing_status', 'reel_processing_status',
                  'marketing_content_processing_status', 'processing_job_id', 'last_processed_at',
                  'status', 'date_listed', 'date_sold', 'days_in_stock', 'views', 'inquiries', 'is_featured',
                  'priority_score', 'created_at', 'updated_at']
        read_only_fields = ['final_sale_price', 'rc_verified', 'insurance_verified', 'inspection_score',
                            'processed_image_urls', 'view_360_url', 'reel_url', 'marketing_content_urls',
                            'image_processing_status', 'view_360_processing_status', 'reel_processing_status',
                            'marketing_content_processing_status', 'processing_job_id', 'last_processed_at',
                            'date_listed', 'date_sold', 'views', 'inquiries', 'is_featured', 'priority_score',
                            'created_at', 'updated_at']

    def validate_status(self, value):
        current = getattr(self.instance, 'status', None)
        if value == current:
            return value
        if value not in OWNER_SETTABLE_STATUSES:
            raise serializers.ValidationError('Only draft or live can be set directly.')
        if current in ('in_transaction', 'sold'):
            raise serializers.ValidationError(f'Cannot change status of a vehicle that is {current}.')
        return value

    def validate_image_urls(self, value):
        if not isinstance(value, list) or not all(validate_url(url) for url in value):
            raise serializers.ValidationError('Image URLs must be a list of http(s) URLs.')
        return value

    def validate_document_urls(self, value):
        if not isinstance(value, list) or not all(validate_url(url) for url in value):
            raise serializers.ValidationError('Document URLs must be a list of http(s) URLs.')
        return value

    def validate(self, attrs):
        for field in SANITIZED_FIELDS:
            if field in attrs:
                attrs[field] = sanitize_input(attrs[field])
        if attrs.get('vin'):
            attrs['vin'] = attrs['vin'].strip().upper()

        merged = {}
        if self.instance is not None:
            merged = {
                field: getattr(self.instance, field)
                for field in ('make', 'model', 'year', 'price', 'fuel_type', 'transmission', 'kilometers', 'vin',
                              'engine_capacity', 'power', 'seating_capacity', 'owners')
            }
        merged.update(attrs)
        result = validate_vehicle_data(merged)
        if not result['is_valid']:
            raise serializers.ValidationError(result['errors'])

        if 'inspection_checklist' in attrs:
            attrs['inspection_score'] = Vehicle.score_inspection(attrs['inspection_checklist'])
        return attrs

    def _apply_status_dates(self, validated_data, instance=None):
        if validated_data.get('status') == 'live' and not getattr(instance, 'date_listed', None):
            validated_data['date_listed'] = timezone.now()

    def create(self, validated_data):
        validated_data.setdefault('status', 'draft')
        self._apply_status_dates(validated_data)
        return super().create(validated_data)

    def update(self, instance, validated_data):
        self._apply_status_dates(validated_data, instance)
        return super().update(instance, validated_data)


class PriceSuggestionSerializer(serializers.Serializer):
    make = serializers.CharField(max_length=100)
    model = serializers.CharField(max_length=100)
    year = serializers.IntegerField()
    kilometers = serializers.IntegerField(required=False, min_value=0)
    fuel_type = serializers.ChoiceField(choices=Vehicle.FUEL_TYPE_CHOICES, required=False)
