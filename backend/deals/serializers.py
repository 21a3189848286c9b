from rest_framework import serializers

from backend.dealers.serializers import DealerPublicSerializer
from .models import Transaction, DealMessage


class DealVehicleSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    make = serializers.CharField()
    model = serializers.CharField()
    variant = serializers.CharField()
    year = serializers.IntegerField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    kilometers = serializers.IntegerField()
    fuel_type = serializers.CharField()
    transmission = serializers.CharField()
    image_urls = serializers.JSONField()
    status = serializers.CharField()


class DealMessageSerializer(serializers.ModelSerializer):
    sender_name = serializers.SerializerMethodField()

    class Meta:
        model = DealMessage
        fields = ['id', 'sender', 'sender_name', 'message_type', 'message', 'amount', 'created_at']
        read_only_fields = fields

    def get_sender_name(self, obj):
        return obj.sender.business_name if obj.sender_id else 'System'


class TransactionListSerializer(serializers.ModelSerializer):
    """
    Deal summary. Customer Mode figures (landed cost, margins, floor) are
    never included here; only the showroom price, and only for the buyer.
    Pass the viewing dealer as ``context['dealer']``.
    """
    reference = serializers.CharField(read_only=True)
    vehicle = DealVehicleSerializer(read_only=True)
    seller = DealerPublicSerializer(read_only=True)
    buyer = DealerPublicSerializer(read_only=True)
    my_role = serializers.SerializerMethodField()
    awaiting_my_response = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = ['id', 'reference', 'vehicle', 'seller', 'buyer', 'offer_amount', 'final_amount',
                  'last_offer_by', 'status', 'escrow_status', 'transport_status', 'my_role',
                  'awaiting_my_response', 'customer_mode_active', 'deal_archived', 'accepted_at',
                  'completed_at', 'created_at', 'updated_at']
        read_only_fields = fields

    def _dealer(self):
        return self.context.get('dealer')

    def get_my_role(self, obj):
        return obj.party_role(self._dealer())

    def get_awaiting_my_response(self, obj):
        dealer = self._dealer()
        if dealer is None or obj.status not in ('offer_made', 'negotiating'):
            return False
        return obj.party_role(dealer) is not None and obj.last_offer_by_id != dealer.id

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if instance.party_role(self._dealer()) != 'buyer':
            data.pop('customer_mode_active', None)
        return data


class TransactionDetailSerializer(TransactionListSerializer):
    messages = DealMessageSerializer(many=True, read_only=True)
    handover_code = serializers.SerializerMethodField()
    showroom_price = serializers.SerializerMethodField()
    customer_final_price = serializers.SerializerMethodField()

    class Meta(TransactionListSerializer.Meta):
        fields = TransactionListSerializer.Meta.fields + [
            'notes', 'cancellation_reason', 'payment_method', 'payment_confirmed_at', 'funds_released_at',
            'transport_booking_id', 'logistics_partner', 'transport_cost', 'pickup_date',
            'estimated_delivery_date', 'pickup_address', 'delivery_address', 'special_instructions',
            'picked_up_at', 'delivered_at', 'delivery_confirmed_at', 'documents_transferred',
            'rto_transfer_initiated', 'rto_transfer_completed', 'seller_rating', 'buyer_rating',
            'archived_at', 'messages', 'handover_code', 'showroom_price', 'customer_final_price',
        ]
        read_only_fields = fields

    def get_handover_code(self, obj):
        if obj.transport_status == 'not_booked' or obj.party_role(self._dealer()) is None:
            return None
        return obj.handover_code()

    def _buyer_only(self, obj, value):
        return value if obj.party_role(self._dealer()) == 'buyer' else None

    def get_showroom_price(self, obj):
        value = self._buyer_only(obj, obj.showroom_price)
        return str(value) if value is not None else None

    def get_customer_final_price(self, obj):
        value = self._buyer_only(obj, obj.customer_final_price)
        return str(value) if value is not None else None

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if instance.party_role(self._dealer()) != 'buyer':
            data.pop('showroom_price', None)
            data.pop('customer_final_price', None)
        return data


class CustomerViewSerializer(serializers.ModelSerializer):
    """
    What the retail customer sees on the buyer's screen: the car and the
    showroom price. No dealer identities, costs or margins.
    """
    vehicle = serializers.SerializerMethodField()
    price = serializers.DecimalField(source='showroom_price', max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Transaction
        fields = ['id', 'vehicle', 'price', 'customer_mode_active']
        read_only_fields = fields

    def get_vehicle(self, obj):
        vehicle = obj.vehicle
        return {
            'make': vehicle.make,
            'model': vehicle.model,
            'variant': vehicle.variant,
            'year': vehicle.year,
            'kilometers': vehicle.kilometers,
            'fuel_type': vehicle.fuel_type,
            'transmission': vehicle.transmission,
            'color': vehicle.color,
            'owners': vehicle.owners,
            'inspection_score': vehicle.inspection_score,
            'image_urls': vehicle.processed_image_urls or vehicle.image_urls,
            'view_360_url': vehicle.view_360_url,
        }


class OfferSerializer(serializers.Serializer):
    vehicle_id = serializers.IntegerField()
    offer_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    message = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class OfferCheckSerializer(serializers.Serializer):
    vehicle_id = serializers.IntegerField()
    offer_amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class CounterOfferSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=1)
    message = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class MessageSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=2000)


class RatingSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    review = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class CustomerModeSerializer(serializers.Serializer):
    vehicle_id = serializers.IntegerField()
    desired_margin_percent = serializers.DecimalField(max_digits=5, decimal_places=2, required=False,
                                                      min_value=0, max_value=100)
    minimum_margin_percent = serializers.DecimalField(max_digits=5, decimal_places=2, required=False,
                                                      min_value=0, max_value=100)


class PinSerializer(serializers.Serializer):
    pin = serializers.RegexField(r'^\d{4}$', error_messages={'invalid': 'PIN must be 4 digits.'})


class FinalizeSerializer(serializers.Serializer):
    customer_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=1)


class ArchiveSerializer(serializers.Serializer):
    archived = serializers.BooleanField(default=True)
