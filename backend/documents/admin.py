from django.contrib import admin
from .models import DigitalDocument, RTOApplication


@admin.register(DigitalDocument)
class DigitalDocumentAdmin(admin.ModelAdmin):
    list_display = ['document_number', 'transaction', 'document_type', 'legal_validity', 'signed_by_seller',
                    'signed_by_buyer', 'created_at']
    list_filter = ['document_type', 'legal_validity']
    search_fields = ['document_number', 'document_hash']
    raw_id_fields = ['transaction', 'created_by']
    readonly_fields = ['document_hash', 'document_data', 'created_at', 'updated_at']


@admin.register(RTOApplication)
class RTOApplicationAdmin(admin.ModelAdmin):
    list_display = ['id', 'transaction', 'vehicle', 'seller_name', 'buyer_name', 'status', 'tracking_number',
                    'created_at']
    list_filter = ['status']
    search_fields = ['seller_name', 'buyer_name', 'tracking_number']
    raw_id_fields = ['transaction', 'vehicle', 'submitted_by']
