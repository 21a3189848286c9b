from django.db import models


class PaymentGateway(models.Model):
    """One payment attempt for a deal through a (simulated) gateway"""
    GATEWAY_CHOICES = [
        ('razorpay', 'Razorpay'),
        ('payu', 'PayU India'),
        ('mock', 'Mock Gateway (Demo)'),
    ]
    METHOD_CHOICES = [
        ('card', 'Credit/Debit Card'),
        ('upi', 'UPI'),
        ('netbanking', 'Net Banking'),
        ('wallet', 'Digital Wallet'),
        ('emi', 'EMI'),
    ]
    STATUS_CHOICES = [
        ('created', 'Created'),
        ('processing', 'Processing'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]

    transaction = models.ForeignKey('deals.Transaction', on_delete=models.PROTECT, related_name='payments')
    payer = models.ForeignKey('dealers.Dealer', on_delete=models.PROTECT, related_name='payments')
    payment_gateway = models.CharField(max_length=20, choices=GATEWAY_CHOICES)
    gateway_order_id = models.CharField(max_length=100, unique=True)
    payment_method = models.CharField(max_length=20, choices=METHOD_CHOICES)
    deal_amount = models.DecimalField(max_digits=12, decimal_places=2)
    processing_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    amount = models.DecimalField(max_digits=12, decimal_places=2, help_text="Deal amount plus processing fee")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='created')
    gateway_payment_id = models.CharField(max_length=100, blank=True)
    escrow_reference = models.CharField(max_length=120, blank=True)
    gateway_response = models.JSONField(default=dict, blank=True)
    buyer_details = models.JSONField(default=dict, blank=True)
    failure_reason = models.TextField(blank=True)
    webhook_verified = models.BooleanField(default=False)
    payment_initiated_at = models.DateTimeField(auto_now_add=True)
    payment_completed_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.gateway_order_id} ({self.status})"

    class Meta:
        db_table = 'payment_gateways'
        ordering = ['-payment_initiated_at']
        indexes = [
            models.Index(fields=['transaction', 'status'], name='payments_txn_status_idx'),
        ]
