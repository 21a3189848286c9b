from rest_framework import serializers

from .models import DigitalDocument, RTOApplication


class DigitalDocumentSerializer(serializers.ModelSerializer):
    document_type_display = serializers.CharField(source='get_document_type_display', read_only=True)

    class Meta:
        model = DigitalDocument
        fields = ['id', 'transaction', 'document_type', 'document_type_display', 'template_used', 'document_number',
                  'document_url', 'document_hash', 'document_data', 'legal_validity', 'signed_by_seller',
                  'seller_signature_timestamp', 'signed_by_buyer', 'buyer_signature_timestamp', 'executed_at',
                  'created_at']
        read_only_fields = fields


class GenerateDocumentSerializer(serializers.Serializer):
    document_type = serializers.ChoiceField(choices=DigitalDocument.DOCUMENT_TYPE_CHOICES)


class RTOApplicationSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = RTOApplication
        fields = ['id', 'transaction', 'vehicle', 'seller_name', 'seller_address', 'buyer_name', 'buyer_address',
                  'application_fee', 'document_urls', 'status', 'status_display', 'tracking_number',
                  'rejection_reason', 'created_at', 'updated_at']
        read_only_fields = fields


class RTOSubmitSerializer(serializers.Serializer):
    application_fee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    document_urls = serializers.ListField(child=serializers.DictField(), required=False, default=list)


class RTOStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=RTOApplication.STATUS_CHOICES)
    tracking_number = serializers.CharField(required=False, allow_blank=True, max_length=50)
    rejection_reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)
