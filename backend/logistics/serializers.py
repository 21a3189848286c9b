from rest_framework import serializers

from .models import LogisticsPartner


class LogisticsPartnerSerializer(serializers.ModelSerializer):
    class Meta:
        model = LogisticsPartner
        fields = ['id', 'partner_name', 'contact_person', 'phone', 'email', 'base_rate_per_km', 'minimum_charge',
                  'pricing_multipliers', 'insurance_included', 'insurance_rate_percent', 'average_delivery_days',
                  'service_areas', 'rating', 'total_deliveries', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['total_deliveries', 'created_at', 'updated_at']

    def validate_pricing_multipliers(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Must be an object of multiplier values.')
        for key, multiplier in value.items():
            try:
                if float(multiplier) <= 0:
                    raise ValueError
            except (TypeError, ValueError):
                raise serializers.ValidationError(f'Multiplier "{key}" must be a positive number.')
        return value

    def validate_service_areas(self, value):
        if not isinstance(value, list) or not all(isinstance(area, str) for area in value):
            raise serializers.ValidationError('Must be a list of state names.')
        return value


class BookingSerializer(serializers.Serializer):
    partner = serializers.CharField(max_length=50)
    pickup_date = serializers.DateField()
    pickup_address = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    delivery_address = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    special_instructions = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class TransportStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['picked_up', 'in_transit'])


class DeliveryConfirmationSerializer(serializers.Serializer):
    handover_code = serializers.CharField(required=False, allow_blank=True, max_length=20)
