# Generated manually for the Transaction and DealMessage models

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
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('offer_amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('final_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('status', models.CharField(choices=[('pending_customer_view', 'Pending Customer View'), ('offer_made', 'Offer Made'), ('negotiating', 'Negotiating'), ('accepted', 'Accepted'), ('in_escrow', 'In Escrow'), ('in_transit', 'In Transit'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='offer_made', max_length=30)),
                ('notes', models.TextField(blank=True)),
                ('cancellation_reason', models.TextField(blank=True)),
                ('escrow_status', models.CharField(choices=[('none', 'None'), ('paid', 'Paid'), ('released', 'Released'), ('refunded', 'Refunded')], default='none', max_length=20)),
                ('payment_method', models.CharField(blank=True, max_length=30)),
                ('payment_confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('funds_released_at', models.DateTimeField(blank=True, null=True)),
                ('transport_status', models.CharField(choices=[('not_booked', 'Not Booked'), ('pending', 'Pending Pickup'), ('picked_up', 'Picked Up'), ('in_transit', 'In Transit'), ('delivered', 'Delivered')], default='not_booked', max_length=20)),
                ('transport_booking_id', models.CharField(blank=True, max_length=50)),
                ('logistics_partner', models.CharField(blank=True, max_length=100)),
                ('transport_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('pickup_date', models.DateField(blank=True, null=True)),
                ('estimated_delivery_date', models.DateField(blank=True, null=True)),
                ('pickup_address', models.TextField(blank=True)),
                ('delivery_address', models.TextField(blank=True)),
                ('special_instructions', models.TextField(blank=True)),
                ('picked_up_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('delivery_confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('documents_transferred', models.BooleanField(default=False)),
                ('rto_transfer_initiated', models.BooleanField(default=False)),
                ('rto_transfer_completed', models.BooleanField(default=False)),
                ('customer_mode_active', models.BooleanField(default=False)),
                ('customer_mode_activated_at', models.DateTimeField(blank=True, null=True)),
                ('estimated_logistics_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('platform_fee', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('landed_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('desired_margin_percent', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('minimum_margin_percent', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('desired_margin_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('minimum_margin_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('showroom_price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('final_floor_price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('customer_final_price', models.DecimalField(blank=True, decimal_places=2, help_text='Price agreed with the retail customer', max_digits=12, null=True)),
                ('pricing_tier_notes', models.TextField(blank=True)),
                ('seller_rating', models.JSONField(blank=True, help_text="Buyer's rating of the seller", null=True)),
                ('buyer_rating', models.JSONField(blank=True, help_text="Seller's rating of the buyer", null=True)),
                ('deal_archived', models.BooleanField(default=False)),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('buyer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchases', to='dealers.dealer')),
                ('last_offer_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='dealers.dealer')),
                ('seller', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to='dealers.dealer')),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='vehicles.vehicle')),
            ],
            options={
                'db_table': 'transactions',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status'], name='transactions_status_idx'), models.Index(fields=['buyer', 'status'], name='transactions_buyer_status_idx'), models.Index(fields=['seller', 'status'], name='transactions_seller_status_idx'), models.Index(fields=['-created_at'], name='transactions_created_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(('buyer', models.F('seller')), _negated=True), name='transaction_buyer_not_seller')],
            },
        ),
        migrations.CreateModel(
            name='DealMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('message_type', models.CharField(choices=[('text', 'Text'), ('offer', 'Offer'), ('counter_offer', 'Counter Offer'), ('system', 'System')], default='text', max_length=20)),
                ('message', models.TextField()),
                ('amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('sender', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='dealers.dealer')),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='deals.transaction')),
            ],
            options={
                'db_table': 'deal_messages',
                'ordering': ['created_at'],
            },
        ),
    ]
