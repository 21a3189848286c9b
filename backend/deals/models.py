from django.db import models


class Transaction(models.Model):
    """A deal between two dealers for one vehicle"""
    STATUS_CHOICES = [
        ('pending_customer_view', 'Pending Customer View'),
        ('offer_made', 'Offer Made'),
        ('negotiating', 'Negotiating'),
        ('accepted', 'Accepted'),
        ('in_escrow', 'In Escrow'),
        ('in_transit', 'In Transit'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]
    ESCROW_STATUS_CHOICES = [
        ('none', 'None'),
        ('paid', 'Paid'),
        ('released', 'Released'),
        ('refunded', 'Refunded'),
    ]
    TRANSPORT_STATUS_CHOICES = [
        ('not_booked', 'Not Booked'),
        ('pending', 'Pending Pickup'),
        ('picked_up', 'Picked Up'),
        ('in_transit', 'In Transit'),
        ('delivered', 'Delivered'),
    ]

    vehicle = models.ForeignKey('vehicles.Vehicle', on_delete=models.PROTECT, related_name='transactions')
    seller = models.ForeignKey('dealers.Dealer', on_delete=models.PROTECT, related_name='sales')
    buyer = models.ForeignKey('dealers.Dealer', on_delete=models.PROTECT, related_name='purchases')

    offer_amount = models.DecimalField(max_digits=12, decimal_places=2)
    final_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    last_offer_by = models.ForeignKey('dealers.Dealer', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='offer_made')
    notes = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)

    # Escrow
    escrow_status = models.CharField(max_length=20, choices=ESCROW_STATUS_CHOICES, default='none')
    payment_method = models.CharField(max_length=30, blank=True)
    payment_confirmed_at = models.DateTimeField(null=True, blank=True)
    funds_released_at = models.DateTimeField(null=True, blank=True)

    # Logistics
    transport_status = models.CharField(max_length=20, choices=TRANSPORT_STATUS_CHOICES, default='not_booked')
    transport_booking_id = models.CharField(max_length=50, blank=True)
    logistics_partner = models.CharField(max_length=100, blank=True)
    transport_cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    pickup_date = models.DateField(null=True, blank=True)
    estimated_delivery_date = models.DateField(null=True, blank=True)
    pickup_address = models.TextField(blank=True)
    delivery_address = models.TextField(blank=True)
    special_instructions = models.TextField(blank=True)
    picked_up_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    delivery_confirmed_at = models.DateTimeField(null=True, blank=True)

    # Paperwork
    documents_transferred = models.BooleanField(default=False)
    rto_transfer_initiated = models.BooleanField(default=False)
    rto_transfer_completed = models.BooleanField(default=False)

    # Customer Mode pricing (private to the buyer)
    customer_mode_active = models.BooleanField(default=False)
    customer_mode_activated_at = models.DateTimeField(null=True, blank=True)
    estimated_logistics_cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    platform_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    landed_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    desired_margin_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    minimum_margin_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    desired_margin_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    minimum_margin_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    showroom_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    final_floor_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    customer_final_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True, help_text="Price agreed with the retail customer")
    pricing_tier_notes = models.TextField(blank=True)

    # Post-sale
    seller_rating = models.JSONField(null=True, blank=True, help_text="Buyer's rating of the seller")
    buyer_rating = models.JSONField(null=True, blank=True, help_text="Seller's rating of the buyer")
    deal_archived = models.BooleanField(default=False)
    archived_at = models.DateTimeField(null=True, blank=True)

    accepted_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Deal #{self.id} - {self.vehicle}"

    @property
    def reference(self):
        return f"TXN-{self.id:06d}" if self.id else "TXN-NEW"

    @property
    def agreed_amount(self):
        return self.final_amount if self.final_amount is not None else self.offer_amount

    def party_role(self, dealer):
        """'buyer', 'seller' or None for a dealer"""
        if dealer is None:
            return None
        if dealer.id == self.buyer_id:
            return 'buyer'
        if dealer.id == self.seller_id:
            return 'seller'
        return None

    def counterparty(self, dealer):
        return self.seller if dealer.id == self.buyer_id else self.buyer

    def handover_code(self):
        """Code the driver shows at delivery: deal reference tail plus VIN tail"""
        deal_part = f"{self.id:06d}"[-6:]
        vin = self.vehicle.vin or ''
        vin_part = vin[-4:] if len(vin) >= 4 else 'XXXX'
        return f"{deal_part}{vin_part}".upper()

    class Meta:
        db_table = 'transactions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='transactions_status_idx'),
            models.Index(fields=['buyer', 'status'], name='transactions_buyer_status_idx'),
            models.Index(fields=['seller', 'status'], name='transactions_seller_status_idx'),
            models.Index(fields=['-created_at'], name='transactions_created_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=~models.Q(buyer=models.F('seller')), name='transaction_buyer_not_seller'),
        ]


class DealMessage(models.Model):
    """Negotiation thread entry"""
    MESSAGE_TYPE_CHOICES = [
        ('text', 'Text'),
        ('offer', 'Offer'),
        ('counter_offer', 'Counter Offer'),
        ('system', 'System'),
    ]

    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey('dealers.Dealer', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    message_type = models.CharField(max_length=20, choices=MESSAGE_TYPE_CHOICES, default='text')
    message = models.TextField()
    amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.get_message_type_display()} on deal {self.transaction_id}"

    class Meta:
        db_table = 'deal_messages'
        ordering = ['created_at']
