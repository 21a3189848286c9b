from rest_framework import serializers

from .models import PaymentGateway
from .services import GATEWAYS


class PaymentSerializer(serializers.ModelSerializer):
    gateway_name = serializers.SerializerMethodField()

    class Meta:
        model = PaymentGateway
        fields = ['id', 'transaction', 'payment_gateway', 'gateway_name', 'gateway_order_id', 'payment_method',
                  'deal_amount', 'processing_fee', 'amount', 'status', 'gateway_payment_id', 'escrow_reference',
                  'failure_reason', 'webhook_verified', 'payment_initiated_at', 'payment_completed_at']
        read_only_fields = fields

    def get_gateway_name(self, obj):
        return GATEWAYS.get(obj.payment_gateway, {}).get('name', obj.payment_gateway)


class PaymentRequestSerializer(serializers.Serializer):
    gateway = serializers.ChoiceField(choices=list(GATEWAYS))
    payment_method = serializers.ChoiceField(choices=[choice for choice, _ in PaymentGateway.METHOD_CHOICES])

    def validate(self, attrs):
        methods = GATEWAYS[attrs['gateway']]['methods']
        if attrs['payment_method'] not in methods:
            raise serializers.ValidationError(
                {'payment_method': f"Supported methods for {attrs['gateway']}: {', '.join(methods)}"}
            )
        return attrs


class QuoteRequestSerializer(serializers.Serializer):
    gateway = serializers.ChoiceField(choices=list(GATEWAYS))
