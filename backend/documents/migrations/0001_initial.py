# Generated manually for the DigitalDocument and RTOApplication models

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('dealers', '0001_initial'),
        ('deals', '0001_initial'),
        ('vehicles', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='DigitalDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('document_type', models.CharField(choices=[('sale_agreement', 'Sale Agreement'), ('invoice', 'Tax Invoice'), ('receipt', 'Payment Receipt'), ('rto_form_29', 'RTO Form 29'), ('rto_form_30', 'RTO Form 30'), ('noc', 'No Objection Certificate'), ('delivery_receipt', 'Delivery Receipt'), ('inspection_report', 'Inspection Report')], max_length=30)),
                ('template_used', models.CharField(max_length=100)),
                ('document_number', models.CharField(max_length=100, unique=True)),
                ('document_url', models.CharField(max_length=500)),
                ('document_hash', models.CharField(max_length=64)),
                ('document_data', models.JSONField(default=dict)),
                ('legal_validity', models.CharField(choices=[('draft', 'Draft'), ('executed', 'Executed')], default='draft', max_length=20)),
                ('access_permissions', models.JSONField(blank=True, default=list)),
                ('signed_by_seller', models.BooleanField(default=False)),
                ('seller_signature_timestamp', models.DateTimeField(blank=True, null=True)),
                ('seller_ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('signed_by_buyer', models.BooleanField(default=False)),
                ('buyer_signature_timestamp', models.DateTimeField(blank=True, null=True)),
                ('buyer_ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('executed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='dealers.dealer')),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='deals.transaction')),
            ],
            options={
                'db_table': 'digital_documents',
                'ordering': ['-created_at'],
                'constraints': [models.UniqueConstraint(fields=('transaction', 'document_type'), name='unique_document_type_per_deal')],
            },
        ),
        migrations.CreateModel(
            name='RTOApplication',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('seller_name', models.CharField(max_length=200)),
                ('seller_address', models.TextField(blank=True)),
                ('buyer_name', models.CharField(max_length=200)),
                ('buyer_address', models.TextField(blank=True)),
                ('application_fee', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('document_urls', models.JSONField(blank=True, default=list, help_text="[{'type': ..., 'url': ...}]")),
                ('status', models.CharField(choices=[('submitted', 'Submitted'), ('in_process', 'In Process'), ('dispatch', 'Dispatched'), ('completed', 'Completed'), ('rejected', 'Rejected')], default='submitted', max_length=20)),
                ('tracking_number', models.CharField(blank=True, max_length=50)),
                ('rejection_reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('submitted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='dealers.dealer')),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rto_applications', to='deals.transaction')),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='rto_applications', to='vehicles.vehicle')),
            ],
            options={
                'db_table': 'rto_applications',
                'ordering': ['-created_at'],
            },
        ),
    ]
