from django.contrib import admin
from .models import MarketingAsset, SocialMediaAccount


@admin.register(MarketingAsset)
class MarketingAssetAdmin(admin.ModelAdmin):
    list_display = ['id', 'dealer', 'vehicle', 'asset_type', 'platform', 'status', 'dealer_rating', 'created_at']
    list_filter = ['asset_type', 'platform', 'status', 'ai_generated']
    search_fields = ['dealer__business_name', 'vehicle__make', 'vehicle__model']
    raw_id_fields = ['dealer', 'vehicle']


@admin.register(SocialMediaAccount)
class SocialMediaAccountAdmin(admin.ModelAdmin):
    list_display = ['dealer', 'platform', 'account_username', 'connection_status', 'connected_at']
    list_filter = ['platform', 'connection_status']
    search_fields = ['dealer__business_name', 'account_username']
    raw_id_fields = ['dealer']
