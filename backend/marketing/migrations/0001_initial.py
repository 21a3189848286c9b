# Generated manually for the MarketingAsset and SocialMediaAccount models

import backend.marketing.models
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('dealers', '0001_initial'),
        ('vehicles', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='MarketingAsset',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('asset_type', models.CharField(choices=[('enhanced_image', 'Enhanced Image'), ('360_view', '360 View'), ('marketing_reel', 'Marketing Reel'), ('marketing_content', 'Marketing Content'), ('social_post', 'Social Post'), ('story_template', 'Story Template'), ('ad_creative', 'Ad Creative'), ('brochure', 'Brochure')], max_length=30)),
                ('platform', models.CharField(choices=[('instagram', 'Instagram'), ('facebook', 'Facebook'), ('youtube', 'YouTube'), ('twitter', 'Twitter'), ('linkedin', 'LinkedIn'), ('whatsapp', 'WhatsApp'), ('general', 'General')], default='general', max_length=20)),
                ('url', models.CharField(blank=True, max_length=500)),
                ('thumbnail_url', models.CharField(blank=True, max_length=500)),
                ('dimensions', models.CharField(blank=True, max_length=20)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('content', models.JSONField(blank=True, default=dict, help_text='title, description, hashtags, call_to_action, ...')),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('published', 'Published')], default='draft', max_length=20)),
                ('ai_generated', models.BooleanField(default=True)),
                ('performance_metrics', models.JSONField(blank=True, default=backend.marketing.models.default_performance_metrics)),
                ('social_media_posts', models.JSONField(blank=True, default=list)),
                ('last_used_at', models.DateTimeField(blank=True, null=True)),
                ('dealer_rating', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('dealer_feedback', models.TextField(blank=True)),
                ('ai_insights', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('dealer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='marketing_assets', to='dealers.dealer')),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='marketing_assets', to='vehicles.vehicle')),
            ],
            options={
                'db_table': 'marketing_assets',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['dealer', '-created_at'], name='mkt_assets_dealer_created_idx'), models.Index(fields=['vehicle', 'asset_type'], name='mkt_assets_vehicle_type_idx')],
            },
        ),
        migrations.CreateModel(
            name='SocialMediaAccount',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('platform', models.CharField(choices=[('instagram', 'Instagram'), ('facebook', 'Facebook'), ('youtube', 'YouTube'), ('twitter', 'Twitter'), ('linkedin', 'LinkedIn')], max_length=20)),
                ('account_id', models.CharField(max_length=100)),
                ('account_username', models.CharField(max_length=100)),
                ('connection_status', models.CharField(choices=[('connected', 'Connected'), ('disconnected', 'Disconnected'), ('expired', 'Expired')], default='connected', max_length=20)),
                ('default_hashtags', models.JSONField(blank=True, default=list)),
                ('connected_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('dealer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='social_accounts', to='dealers.dealer')),
            ],
            options={
                'db_table': 'social_media_accounts',
                'ordering': ['platform'],
                'constraints': [models.UniqueConstraint(fields=('dealer', 'platform'), name='unique_social_account_per_platform')],
            },
        ),
    ]
