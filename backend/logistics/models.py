from decimal import Decimal

from django.db import models


class LogisticsPartner(models.Model):
    """Transport company that moves vehicles between dealers"""
    partner_name = models.CharField(max_length=200)
    contact_person = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    base_rate_per_km = models.DecimalField(max_digits=8, decimal_places=2)
    minimum_charge = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    pricing_multipliers = models.JSONField(default=dict, blank=True,
                                           help_text="e.g. {'interstate': 1.5, 'luxury_vehicle': 1.3}")
    insurance_included = models.BooleanField(default=False)
    insurance_rate_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.5'))
    average_delivery_days = models.PositiveIntegerField(default=3)
    service_areas = models.JSONField(default=list, blank=True, help_text="States served; empty means everywhere")
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal('4.0'))
    total_deliveries = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.partner_name

    def serves(self, state):
        if not self.service_areas or not state:
            return True
        return state.strip().lower() in {area.strip().lower() for area in self.service_areas}

    class Meta:
        db_table = 'logistics_partners'
        ordering = ['partner_name']
