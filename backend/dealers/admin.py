from django.contrib import admin
from .models import Dealer


@admin.register(Dealer)
class DealerAdmin(admin.ModelAdmin):
    list_display = ['business_name', 'owner', 'city', 'state', 'verification_status', 'rating', 'completed_deals', 'is_active']
    list_filter = ['verification_status', 'business_type', 'state', 'is_active']
    search_fields = ['business_name', 'owner__email', 'gstin', 'pan', 'city']
    ordering = ['business_name']
    readonly_fields = ['private_view_pin_hash', 'rating', 'rating_count', 'completed_deals', 'total_sales_value',
                       'last_activity', 'created_at', 'updated_at']
