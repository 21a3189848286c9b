from django.conf import settings
from django.contrib.auth.hashers import make_password, check_password
from django.db import models
from decimal import Decimal


class Dealer(models.Model):
    """A dealership business trading on the marketplace"""
    BUSINESS_TYPE_CHOICES = [
        ('sole_proprietorship', 'Sole Proprietorship'),
        ('partnership', 'Partnership'),
        ('private_limited', 'Private Limited'),
        ('public_limited', 'Public Limited'),
    ]
    VERIFICATION_STATUS_CHOICES = [
        ('provisional', 'Provisional'),
        ('in_review', 'In Review'),
        ('verified', 'Verified'),
        ('rejected', 'Rejected'),
    ]

    owner = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='dealer')
    business_name = models.CharField(max_length=255)
    business_type = models.CharField(max_length=30, choices=BUSINESS_TYPE_CHOICES)
    address = models.TextField()
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    pincode = models.CharField(max_length=6, blank=True)
    phone = models.CharField(max_length=20)
    email = models.EmailField(blank=True)

    # KYB
    gstin = models.CharField(max_length=15, blank=True)
    pan = models.CharField(max_length=10, blank=True)
    kyb_documents = models.JSONField(default=list, blank=True, help_text="[{type, url, name}] e.g. gst_certificate, pan_card")
    bank_name = models.CharField(max_length=255, blank=True)
    account_holder_name = models.CharField(max_length=255, blank=True)
    account_number = models.CharField(max_length=18, blank=True)
    ifsc_code = models.CharField(max_length=11, blank=True)

    verification_status = models.CharField(max_length=20, choices=VERIFICATION_STATUS_CHOICES, default='provisional')
    verification_notes = models.TextField(blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)

    rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal('0.00'))
    rating_count = models.PositiveIntegerField(default=0)
    completed_deals = models.PositiveIntegerField(default=0)
    total_sales_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(default=True)
    last_activity = models.DateTimeField(null=True, blank=True)

    # Customer Mode PIN guarding private margin data
    private_view_pin_hash = models.CharField(max_length=128, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.business_name

    def set_private_pin(self, pin):
        self.private_view_pin_hash = make_password(pin)

    def check_private_pin(self, pin):
        if not self.private_view_pin_hash:
            return False
        return check_password(pin, self.private_view_pin_hash)

    def record_rating(self, rating):
        """Fold a new deal rating into the running average"""
        count = self.rating_count
        current = self.rating or Decimal('0')
        new_rating = (current * count + Decimal(str(rating))) / (count + 1)
        self.rating = new_rating.quantize(Decimal('0.01'))
        self.rating_count = count + 1

    class Meta:
        db_table = 'dealers'
        ordering = ['business_name']
        indexes = [
            models.Index(fields=['verification_status'], name='dealers_verification_idx'),
            models.Index(fields=['state', 'city'], name='dealers_state_city_idx'),
        ]
