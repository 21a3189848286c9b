# Generated manually for the PaymentGateway model

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('dealers', '0001_initial'),
        ('deals', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='PaymentGateway',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('payment_gateway', models.CharField(choices=[('razorpay', 'Razorpay'), ('payu', 'PayU India'), ('mock', 'Mock Gateway (Demo)')], max_length=20)),
                ('gateway_order_id', models.CharField(max_length=100, unique=True)),
                ('payment_method', models.CharField(choices=[('card', 'Credit/Debit Card'), ('upi', 'UPI'), ('netbanking', 'Net Banking'), ('wallet', 'Digital Wallet'), ('emi', 'EMI')], max_length=20)),
                ('deal_amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('processing_fee', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('amount', models.DecimalField(decimal_places=2, help_text='Deal amount plus processing fee', max_digits=12)),
                ('status', models.CharField(choices=[('created', 'Created'), ('processing', 'Processing'), ('completed', 'Completed'), ('failed', 'Failed'), ('refunded', 'Refunded')], default='created', max_length=20)),
                ('gateway_payment_id', models.CharField(blank=True, max_length=100)),
                ('escrow_reference', models.CharField(blank=True, max_length=120)),
                ('gateway_response', models.JSONField(blank=True, default=dict)),
                ('buyer_details', models.JSONField(blank=True, default=dict)),
                ('failure_reason', models.TextField(blank=True)),
                ('webhook_verified', models.BooleanField(default=False)),
                ('payment_initiated_at', models.DateTimeField(auto_now_add=True)),
                ('payment_completed_at', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('payer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='dealers.dealer')),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='deals.transaction')),
            ],
            options={
                'db_table': 'payment_gateways',
                'ordering': ['-payment_initiated_at'],
                'indexes': [models.Index(fields=['transaction', 'status'], name='payments_txn_status_idx')],
            },
        ),
    ]
