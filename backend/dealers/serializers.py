from rest_framework import serializers
from django.utils import timezone

from backend.core.validators import sanitize_input, validate_dealer_profile, validate_url
from .models import Dealer

SANITIZED_FIELDS = ['business_name', 'address', 'city', 'state', 'bank_name', 'account_holder_name']
UPPERCASE_FIELDS = ['gstin', 'pan', 'ifsc_code']
KYB_DOCUMENT_TYPES = ('gst_certificate', 'pan_card', 'trade_license', 'address_proof', 'cancelled_cheque')


class DealerPublicSerializer(serializers.ModelSerializer):
    """What other dealers see on listings and deals"""
    class Meta:
        model = Dealer
        fields = ['id', 'business_name', 'business_type', 'city', 'state', 'verification_status',
                  'rating', 'rating_count', 'completed_deals']


class DealerSerializer(serializers.ModelSerializer):
    owner_email = serializers.EmailField(source='owner.email', read_only=True)
    has_private_pin = serializers.SerializerMethodField()

    class Meta:
        model = Dealer
        fields = ['id', 'owner_email', 'business_name', 'business_type', 'address', 'city', 'state', 'pincode',
                  'phone', 'email', 'gstin', 'pan', 'kyb_documents', 'bank_name', 'account_holder_name',
                  'account_number', 'ifsc_code', 'verification_status', 'verification_notes', 'verified_at',
                  'rating', 'rating_count', 'completed_deals', 'total_sales_value', 'is_active',
                  'last_activity', 'has_private_pin', 'created_at', 'updated_at']
        read_only_fields = ['verification_status', 'verification_notes', 'verified_at', 'rating', 'rating_count',
                            'completed_deals', 'total_sales_value', 'is_active', 'last_activity',
                            'created_at', 'updated_at']

    def get_has_private_pin(self, obj):
        return bool(obj.private_view_pin_hash)

    def validate_kyb_documents(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Expected a list of documents.')
        for doc in value:
            if not isinstance(doc, dict) or doc.get('type') not in KYB_DOCUMENT_TYPES:
                raise serializers.ValidationError(f"Document type must be one of: {', '.join(KYB_DOCUMENT_TYPES)}")
            if not validate_url(doc.get('url')):
                raise serializers.ValidationError('Each document needs a valid http(s) url.')
        # One document per type, last upload wins
        by_type = {doc['type']: doc for doc in value}
        return list(by_type.values())

    def validate(self, attrs):
        for field in SANITIZED_FIELDS:
            if field in attrs:
                attrs[field] = sanitize_input(attrs[field])
        for field in UPPERCASE_FIELDS:
            if attrs.get(field):
                attrs[field] = attrs[field].strip().upper()

        # Validate the merged record so partial updates are checked in context
        merged = {}
        if self.instance is not None:
            merged = {field: getattr(self.instance, field) for field in self.Meta.fields if hasattr(self.instance, field)}
        merged.update(attrs)
        result = validate_dealer_profile(merged)
        if not result['is_valid']:
            raise serializers.ValidationError(result['errors'])
        return attrs

    def create(self, validated_data):
        validated_data.setdefault('verification_status', 'provisional')
        validated_data['last_activity'] = timezone.now()
        return super().create(validated_data)

    def update(self, instance, validated_data):
        validated_data['last_activity'] = timezone.now()
        return super().update(instance, validated_data)


class VerificationDecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=['verified', 'rejected'])
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class PrivatePinSerializer(serializers.Serializer):
    pin = serializers.RegexField(r'^\d{4}$', error_messages={'invalid': 'PIN must be exactly 4 digits.'})
    current_pin = serializers.CharField(required=False, allow_blank=True)
