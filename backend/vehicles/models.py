from decimal import Decimal

from django.db import models
from django.utils import timezone


PROCESSING_STATUS_CHOICES = [
    ('none', 'None'),
    ('pending', 'Pending'),
    ('processing', 'Processing'),
    ('completed', 'Completed'),
    ('failed', 'Failed'),
]

INSPECTION_ITEMS = [
    'body_condition',
    'engine_condition',
    'interior_condition',
    'electrical_systems',
    'tires_condition',
    'brakes_condition',
]


class Vehicle(models.Model):
    """A vehicle listed by a dealer"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('live', 'Live'),
        ('in_transaction', 'In Transaction'),
        ('sold', 'Sold'),
    ]
    FUEL_TYPE_CHOICES = [
        ('petrol', 'Petrol'),
        ('diesel', 'Diesel'),
        ('cng', 'CNG'),
        ('electric', 'Electric'),
        ('hybrid', 'Hybrid'),
    ]
    TRANSMISSION_CHOICES = [
        ('manual', 'Manual'),
        ('automatic', 'Automatic'),
        ('amt', 'AMT'),
    ]

    dealer = models.ForeignKey('dealers.Dealer', on_delete=models.CASCADE, related_name='vehicles')
    make = models.CharField(max_length=100)
    model = models.CharField(max_length=100)
    variant = models.CharField(max_length=100, blank=True)
    year = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=12, decimal_places=2)
    cost_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True, help_text="Dealer's acquisition cost (private)")
    final_sale_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    description = models.TextField(blank=True)

    vin = models.CharField(max_length=17, blank=True)
    registration_number = models.CharField(max_length=20, blank=True)
    kilometers = models.PositiveIntegerField(default=0)
    fuel_type = models.CharField(max_length=20, choices=FUEL_TYPE_CHOICES)
    transmission = models.CharField(max_length=20, choices=TRANSMISSION_CHOICES)
    color = models.CharField(max_length=50, blank=True)
    engine_capacity = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True, help_text="Litres")
    power = models.PositiveIntegerField(null=True, blank=True, help_text="Horsepower")
    seating_capacity = models.PositiveSmallIntegerField(null=True, blank=True)
    owners = models.PositiveSmallIntegerField(default=1)

    # Verification
    rc_verified = models.BooleanField(default=False)
    insurance_verified = models.BooleanField(default=False)
    inspection_checklist = models.JSONField(default=dict, blank=True)
    inspection_score = models.PositiveSmallIntegerField(default=0)

    # Media
    image_urls = models.JSONField(default=list, blank=True)
    video_url = models.URLField(max_length=500, blank=True)
    document_urls = models.JSONField(default=list, blank=True)
    processed_image_urls = models.JSONField(default=list, blank=True)
    view_360_url = models.URLField(max_length=500, blank=True)
    reel_url = models.URLField(max_length=500, blank=True)
    marketing_content_urls = models.JSONField(default=list, blank=True)
    image_processing_status = models.CharField(max_length=20, choices=PROCESSING_STATUS_CHOICES, default='none')
    view_360_processing_status = models.CharField(max_length=20, choices=PROCESSING_STATUS_CHOICES, default='none')
    reel_processing_status = models.CharField(max_length=20, choices=PROCESSING_STATUS_CHOICES, default='none')
    marketing_content_processing_status = models.CharField(max_length=20, choices=PROCESSING_STATUS_CHOICES, default='none')
    processing_job_id = models.CharField(max_length=100, blank=True)
    last_processed_at = models.DateTimeField(null=True, blank=True)

    # Listing lifecycle
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    date_listed = models.DateTimeField(null=True, blank=True)
    date_sold = models.DateTimeField(null=True, blank=True)
    views = models.PositiveIntegerField(default=0)
    inquiries = models.PositiveIntegerField(default=0)
    is_featured = models.BooleanField(default=False)
    priority_score = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        return f"{self.year} {self.make} {self.model}"

    @property
    def days_in_stock(self):
        start = self.date_listed or self.created_at
        if start is None:
            return 0
        end = self.date_sold or timezone.now()
        return max((end - start).days, 0)

    @property
    def profit_margin(self):
        """(sale - cost) / cost, or None when either side is unknown"""
        if not self.cost_price or self.final_sale_price is None:
            return None
        return (self.final_sale_price - self.cost_price) / self.cost_price

    @staticmethod
    def score_inspection(checklist):
        """Percentage of inspection items that passed"""
        if not checklist:
            return 0
        passed = sum(1 for item in INSPECTION_ITEMS if checklist.get(item))
        return round(Decimal(passed) * 100 / len(INSPECTION_ITEMS))

    class Meta:
        db_table = 'vehicles'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='vehicles_status_created_idx'),
            models.Index(fields=['dealer', 'status'], name='vehicles_dealer_status_idx'),
            models.Index(fields=['make', 'model'], name='vehicles_make_model_idx'),
            models.Index(fields=['price'], name='vehicles_price_idx'),
        ]
