from django.contrib import admin
from .models import Vehicle


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'dealer', 'price', 'status', 'fuel_type', 'rc_verified', 'is_featured', 'created_at']
    list_filter = ['status', 'fuel_type', 'transmission', 'rc_verified', 'is_featured']
    search_fields = ['make', 'model', 'vin', 'registration_number', 'dealer__business_name']
    ordering = ['-created_at']
    readonly_fields = ['views', 'inquiries', 'last_processed_at', 'created_at', 'updated_at']
