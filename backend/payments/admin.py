from django.contrib import admin
from .models import PaymentGateway


@admin.register(PaymentGateway)
class PaymentGatewayAdmin(admin.ModelAdmin):
    list_display = ['gateway_order_id', 'transaction', 'payer', 'payment_gateway', 'payment_method', 'amount',
                    'status', 'payment_initiated_at']
    list_filter = ['status', 'payment_gateway', 'payment_method']
    search_fields = ['gateway_order_id', 'gateway_payment_id', 'escrow_reference']
    raw_id_fields = ['transaction', 'payer']
    readonly_fields = ['gateway_response', 'payment_initiated_at', 'payment_completed_at', 'updated_at']
