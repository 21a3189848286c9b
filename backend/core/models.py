from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with platform flags"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    platform_admin = models.BooleanField(default=False)
    custom_margin_enabled = models.BooleanField(default=False, help_text="Dealer may override bracket margins in Customer Mode")
    margin_override_history = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_platform_admin(self):
        return bool(self.platform_admin or self.is_staff or self.is_superuser)

    class Meta:
        db_table = 'users'


class SystemConfig(models.Model):
    """Runtime business configuration (platform fee, margin brackets, ...)"""
    DATA_TYPE_CHOICES = [
        ('number', 'Number'),
        ('string', 'String'),
        ('boolean', 'Boolean'),
        ('json', 'JSON'),
    ]
    CATEGORY_CHOICES = [
        ('pricing', 'Pricing'),
        ('logistics', 'Logistics'),
        ('payments', 'Payments'),
        ('general', 'General'),
    ]

    config_key = models.CharField(max_length=100, unique=True)
    config_value = models.TextField()
    description = models.TextField(blank=True)
    data_type = models.CharField(max_length=20, choices=DATA_TYPE_CHOICES, default='string')
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='general')
    is_active = models.BooleanField(default=True)
    last_modified_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='modified_configs')
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.config_key

    class Meta:
        db_table = 'system_configs'
        ordering = ['category', 'config_key']


class SystemLog(models.Model):
    """Audit trail for administrative and deal-critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('margin_permission_change', 'Margin Permission Change'),
        ('system_config_change', 'System Config Change'),
        ('report_generation', 'Report Generation'),
        ('dealer_verification', 'Dealer Verification'),
        ('offer_made', 'Offer Made'),
        ('deal_status_change', 'Deal Status Change'),
        ('payment', 'Payment'),
        ('document_signed', 'Document Signed'),
        ('rto_status_change', 'RTO Status Change'),
    ]
    SEVERITY_CHOICES = [
        ('info', 'Info'),
        ('warning', 'Warning'),
        ('error', 'Error'),
        ('critical', 'Critical'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='system_logs')
    action_type = models.CharField(max_length=50, choices=ACTION_CHOICES)
    module = models.CharField(max_length=100)
    target_id = models.CharField(max_length=100)
    target_name = models.CharField(max_length=255, blank=True, null=True)
    details = models.JSONField(default=dict, blank=True)
    severity = models.CharField(max_length=20, choices=SEVERITY_CHOICES, default='info')
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'system_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='system_logs_created_idx'),
            models.Index(fields=['action_type'], name='system_logs_action_idx'),
            models.Index(fields=['module'], name='system_logs_module_idx'),
        ]
