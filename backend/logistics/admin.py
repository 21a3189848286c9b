from django.contrib import admin
from .models import LogisticsPartner


@admin.register(LogisticsPartner)
class LogisticsPartnerAdmin(admin.ModelAdmin):
    list_display = ['partner_name', 'contact_person', 'base_rate_per_km', 'minimum_charge', 'average_delivery_days',
                    'rating', 'total_deliveries', 'is_active']
    list_filter = ['is_active', 'insurance_included']
    search_fields = ['partner_name', 'contact_person', 'phone']
