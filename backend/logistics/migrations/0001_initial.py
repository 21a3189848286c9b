# Generated manually for the LogisticsPartner model

from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='LogisticsPartner',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('partner_name', models.CharField(max_length=200)),
                ('contact_person', models.CharField(blank=True, max_length=200)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('base_rate_per_km', models.DecimalField(decimal_places=2, max_digits=8)),
                ('minimum_charge', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10)),
                ('pricing_multipliers', models.JSONField(blank=True, default=dict, help_text="e.g. {'interstate': 1.5, 'luxury_vehicle': 1.3}")),
                ('insurance_included', models.BooleanField(default=False)),
                ('insurance_rate_percent', models.DecimalField(decimal_places=2, default=Decimal('0.5'), max_digits=5)),
                ('average_delivery_days', models.PositiveIntegerField(default=3)),
                ('service_areas', models.JSONField(blank=True, default=list, help_text='States served; empty means everywhere')),
                ('rating', models.DecimalField(decimal_places=2, default=Decimal('4.0'), max_digits=3)),
                ('total_deliveries', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'logistics_partners',
                'ordering': ['partner_name'],
            },
        ),
    ]
