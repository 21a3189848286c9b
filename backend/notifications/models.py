from django.conf import settings
from django.db import models


class Notification(models.Model):
    """In-app notification for a user"""
    TYPE_CHOICES = [
        ('offer', 'Offer'),
        ('deal_update', 'Deal Update'),
        ('payment', 'Payment'),
        ('logistics', 'Logistics'),
        ('document', 'Document'),
        ('verification', 'Verification'),
        ('marketing', 'Marketing'),
        ('system', 'System'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('normal', 'Normal'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=500, blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    action_required = models.BooleanField(default=False)
    related_object_id = models.CharField(max_length=100, blank=True)
    read_status = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} - {self.title}"

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'read_status'], name='notifications_user_read_idx'),
            models.Index(fields=['-created_at'], name='notifications_created_idx'),
        ]


class Feedback(models.Model):
    """User feedback about the platform"""
    TYPE_CHOICES = [
        ('bug', 'Bug Report'),
        ('feature', 'Feature Request'),
        ('improvement', 'Improvement'),
        ('praise', 'Praise'),
        ('other', 'Other'),
    ]
    STATUS_CHOICES = [
        ('new', 'New'),
        ('reviewing', 'Reviewing'),
        ('planned', 'Planned'),
        ('resolved', 'Resolved'),
        ('dismissed', 'Dismissed'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='feedback')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255, blank=True)
    message = models.TextField()
    rating = models.PositiveSmallIntegerField(null=True, blank=True)
    page_context = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='new')
    public_visible = models.BooleanField(default=False)
    votes = models.PositiveIntegerField(default=0)
    admin_response = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_type_display()}: {self.title or self.message[:40]}"

    class Meta:
        db_table = 'feedback'
        ordering = ['-created_at']
