from django.db import models


class DigitalDocument(models.Model):
    """Generated deal paperwork with a content hash and two-party signatures"""
    DOCUMENT_TYPE_CHOICES = [
        ('sale_agreement', 'Sale Agreement'),
        ('invoice', 'Tax Invoice'),
        ('receipt', 'Payment Receipt'),
        ('rto_form_29', 'RTO Form 29'),
        ('rto_form_30', 'RTO Form 30'),
        ('noc', 'No Objection Certificate'),
        ('delivery_receipt', 'Delivery Receipt'),
        ('inspection_report', 'Inspection Report'),
    ]
    LEGAL_VALIDITY_CHOICES = [
        ('draft', 'Draft'),
        ('executed', 'Executed'),
    ]

    transaction = models.ForeignKey('deals.Transaction', on_delete=models.CASCADE, related_name='documents')
    document_type = models.CharField(max_length=30, choices=DOCUMENT_TYPE_CHOICES)
    template_used = models.CharField(max_length=100)
    document_number = models.CharField(max_length=100, unique=True)
    document_url = models.CharField(max_length=500)
    document_hash = models.CharField(max_length=64)
    document_data = models.JSONField(default=dict)
    legal_validity = models.CharField(max_length=20, choices=LEGAL_VALIDITY_CHOICES, default='draft')
    access_permissions = models.JSONField(default=list, blank=True)

    signed_by_seller = models.BooleanField(default=False)
    seller_signature_timestamp = models.DateTimeField(null=True, blank=True)
    seller_ip_address = models.GenericIPAddressField(null=True, blank=True)
    signed_by_buyer = models.BooleanField(default=False)
    buyer_signature_timestamp = models.DateTimeField(null=True, blank=True)
    buyer_ip_address = models.GenericIPAddressField(null=True, blank=True)
    executed_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey('dealers.Dealer', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.document_number

    class Meta:
        db_table = 'digital_documents'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['transaction', 'document_type'], name='unique_document_type_per_deal'),
        ]


class RTOApplication(models.Model):
    """Ownership transfer filed with the Regional Transport Office"""
    STATUS_CHOICES = [
        ('submitted', 'Submitted'),
        ('in_process', 'In Process'),
        ('dispatch', 'Dispatched'),
        ('completed', 'Completed'),
        ('rejected', 'Rejected'),
    ]

    transaction = models.ForeignKey('deals.Transaction', on_delete=models.CASCADE, related_name='rto_applications')
    vehicle = models.ForeignKey('vehicles.Vehicle', on_delete=models.PROTECT, related_name='rto_applications')
    seller_name = models.CharField(max_length=200)
    seller_address = models.TextField(blank=True)
    buyer_name = models.CharField(max_length=200)
    buyer_address = models.TextField(blank=True)
    application_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    document_urls = models.JSONField(default=list, blank=True, help_text="[{'type': ..., 'url': ...}]")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='submitted')
    tracking_number = models.CharField(max_length=50, blank=True)
    rejection_reason = models.TextField(blank=True)
    submitted_by = models.ForeignKey('dealers.Dealer', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"RTO #{self.id} for deal {self.transaction_id} ({self.status})"

    class Meta:
        db_table = 'rto_applications'
        ordering = ['-created_at']
