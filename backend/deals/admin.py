from django.contrib import admin
from .models import Transaction, DealMessage


class DealMessageInline(admin.TabularInline):
    model = DealMessage
    extra = 0
    readonly_fields = ['sender', 'message_type', 'message', 'amount', 'created_at']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['id', 'vehicle', 'seller', 'buyer', 'offer_amount', 'final_amount', 'status',
                    'escrow_status', 'transport_status', 'created_at']
    list_filter = ['status', 'escrow_status', 'transport_status', 'customer_mode_active', 'deal_archived']
    search_fields = ['vehicle__make', 'vehicle__model', 'vehicle__vin', 'seller__business_name',
                     'buyer__business_name', 'transport_booking_id']
    raw_id_fields = ['vehicle', 'seller', 'buyer', 'last_offer_by']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [DealMessageInline]
