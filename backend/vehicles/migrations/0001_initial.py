# Generated manually for the Vehicle model

import django.db.models.deletion
from django.db import migrations, models


PROCESSING_STATUS_CHOICES = [('none', 'None'), ('pending', 'Pending'), ('processing', 'Processing'), ('completed', 'Completed'), ('failed', 'Failed')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('dealers', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Vehicle',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('make', models.CharField(max_length=100)),
                ('model', models.CharField(max_length=100)),
                ('variant', models.CharField(blank=True, max_length=100)),
                ('year', models.PositiveIntegerField()),
                ('price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('cost_price', models.DecimalField(blank=True, decimal_places=2, help_text="Dealer's acquisition cost (private)", max_digits=12, null=True)),
                ('final_sale_price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('description', models.TextField(blank=True)),
                ('vin', models.CharField(blank=True, max_length=17)),
                ('registration_number', models.CharField(blank=True, max_length=20)),
                ('kilometers', models.PositiveIntegerField(default=0)),
                ('fuel_type', models.CharField(choices=[('petrol', 'Petrol'), ('diesel', 'Diesel'), ('cng', 'CNG'), ('electric', 'Electric'), ('hybrid', 'Hybrid')], max_length=20)),
                ('transmission', models.CharField(choices=[('manual', 'Manual'), ('automatic', 'Automatic'), ('amt', 'AMT')], max_length=20)),
                ('color', models.CharField(blank=True, max_length=50)),
                ('engine_capacity', models.DecimalField(blank=True, decimal_places=1, help_text='Litres', max_digits=4, null=True)),
                ('power', models.PositiveIntegerField(blank=True, help_text='Horsepower', null=True)),
                ('seating_capacity', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('owners', models.PositiveSmallIntegerField(default=1)),
                ('rc_verified', models.BooleanField(default=False)),
                ('insurance_verified', models.BooleanField(default=False)),
                ('inspection_checklist', models.JSONField(blank=True, default=dict)),
                ('inspection_score', models.PositiveSmallIntegerField(default=0)),
                ('image_urls', models.JSONField(blank=True, default=list)),
                ('video_url', models.URLField(blank=True, max_length=500)),
                ('document_urls', models.JSONField(blank=True, default=list)),
                ('processed_image_urls', models.JSONField(blank=True, default=list)),
                ('view_360_url', models.URLField(blank=True, max_length=500)),
                ('reel_url', models.URLField(blank=True, max_length=500)),
                ('marketing_content_urls', models.JSONField(blank=True, default=list)),
                ('image_processing_status', models.CharField(choices=PROCESSING_STATUS_CHOICES, default='none', max_length=20)),
                ('view_360_processing_status', models.CharField(choices=PROCESSING_STATUS_CHOICES, default='none', max_length=20)),
                ('reel_processing_status', models.CharField(choices=PROCESSING_STATUS_CHOICES, default='none', max_length=20)),
                ('marketing_content_processing_status', models.CharField(choices=PROCESSING_STATUS_CHOICES, default='none', max_length=20)),
                ('processing_job_id', models.CharField(blank=True, max_length=100)),
                ('last_processed_at', models.DateTimeField(blank=True, null=True)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('live', 'Live'), ('in_transaction', 'In Transaction'), ('sold', 'Sold')], default='draft', max_length=20)),
                ('date_listed', models.DateTimeField(blank=True, null=True)),
                ('date_sold', models.DateTimeField(blank=True, null=True)),
                ('views', models.PositiveIntegerField(default=0)),
                ('inquiries', models.PositiveIntegerField(default=0)),
                ('is_featured', models.BooleanField(default=False)),
                ('priority_score', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('dealer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vehicles', to='dealers.dealer')),
            ],
            options={
                'db_table': 'vehicles',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', '-created_at'], name='vehicles_status_created_idx'), models.Index(fields=['dealer', 'status'], name='vehicles_dealer_status_idx'), models.Index(fields=['make', 'model'], name='vehicles_make_model_idx'), models.Index(fields=['price'], name='vehicles_price_idx')],
            },
        ),
    ]
