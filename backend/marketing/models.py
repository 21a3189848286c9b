from django.db import models


def default_performance_metrics():
    return {'views': 0, 'shares': 0, 'clicks': 0, 'leads_generated': 0}


class MarketingAsset(models.Model):
    """Generated creative for a vehicle (image, 360 view, reel, copy, post)"""
    ASSET_TYPE_CHOICES = [
        ('enhanced_image', 'Enhanced Image'),
        ('360_view', '360 View'),
        ('marketing_reel', 'Marketing Reel'),
        ('marketing_content', 'Marketing Content'),
        ('social_post', 'Social Post'),
        ('story_template', 'Story Template'),
        ('ad_creative', 'Ad Creative'),
        ('brochure', 'Brochure'),
    ]
    PLATFORM_CHOICES = [
        ('instagram', 'Instagram'),
        ('facebook', 'Facebook'),
        ('youtube', 'YouTube'),
        ('twitter', 'Twitter'),
        ('linkedin', 'LinkedIn'),
        ('whatsapp', 'WhatsApp'),
        ('general', 'General'),
    ]
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('published', 'Published'),
    ]

    dealer = models.ForeignKey('dealers.Dealer', on_delete=models.CASCADE, related_name='marketing_assets')
    vehicle = models.ForeignKey('vehicles.Vehicle', on_delete=models.CASCADE, related_name='marketing_assets')
    asset_type = models.CharField(max_length=30, choices=ASSET_TYPE_CHOICES)
    platform = models.CharField(max_length=20, choices=PLATFORM_CHOICES, default='general')
    url = models.CharField(max_length=500, blank=True)
    thumbnail_url = models.CharField(max_length=500, blank=True)
    dimensions = models.CharField(max_length=20, blank=True)
    tags = models.JSONField(default=list, blank=True)
    content = models.JSONField(default=dict, blank=True, help_text="title, description, hashtags, call_to_action, ...")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    ai_generated = models.BooleanField(default=True)

    performance_metrics = models.JSONField(default=default_performance_metrics, blank=True)
    social_media_posts = models.JSONField(default=list, blank=True)
    last_used_at = models.DateTimeField(null=True, blank=True)

    dealer_rating = models.PositiveSmallIntegerField(null=True, blank=True)
    dealer_feedback = models.TextField(blank=True)
    ai_insights = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_asset_type_display()} ({self.platform}) for vehicle {self.vehicle_id}"

    class Meta:
        db_table = 'marketing_assets'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['dealer', '-created_at'], name='mkt_assets_dealer_created_idx'),
            models.Index(fields=['vehicle', 'asset_type'], name='mkt_assets_vehicle_type_idx'),
        ]


class SocialMediaAccount(models.Model):
    PLATFORM_CHOICES = [
        ('instagram', 'Instagram'),
        ('facebook', 'Facebook'),
        ('youtube', 'YouTube'),
        ('twitter', 'Twitter'),
        ('linkedin', 'LinkedIn'),
    ]
    CONNECTION_STATUS_CHOICES = [
        ('connected', 'Connected'),
        ('disconnected', 'Disconnected'),
        ('expired', 'Expired'),
    ]

    dealer = models.ForeignKey('dealers.Dealer', on_delete=models.CASCADE, related_name='social_accounts')
    platform = models.CharField(max_length=20, choices=PLATFORM_CHOICES)
    account_id = models.CharField(max_length=100)
    account_username = models.CharField(max_length=100)
    connection_status = models.CharField(max_length=20, choices=CONNECTION_STATUS_CHOICES, default='connected')
    default_hashtags = models.JSONField(default=list, blank=True)
    connected_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.dealer} @ {self.platform} ({self.account_username})"

    class Meta:
        db_table = 'social_media_accounts'
        ordering = ['platform']
        constraints = [
            models.UniqueConstraint(fields=['dealer', 'platform'], name='unique_social_account_per_platform'),
        ]
