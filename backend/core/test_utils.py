"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.core.config import invalidate_config
from backend.core.models import SystemConfig
from backend.dealers.models import Dealer
from backend.vehicles.models import Vehicle
from backend.deals.models import Transaction
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()

VIN_CHARS = 'ABCDEFGHJKLMNPRSTUVWXYZ0123456789'


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False,
                    platform_admin=False, custom_margin_enabled=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser,
            platform_admin=platform_admin,
            custom_margin_enabled=custom_margin_enabled,
        )
        return user

    @staticmethod
    def create_admin():
        return TestDataFactory.create_user(platform_admin=True)

    @staticmethod
    def create_dealer(user=None, verified=True, city='Mumbai', state='Maharashtra', pin=None, **kwargs):
        """Create a dealer profile, verified unless asked otherwise"""
        if user is None:
            user = TestDataFactory.create_user()
        fields = {
            'business_name': f'Dealer {TestDataFactory.random_string(6)} Motors',
            'business_type': 'private_limited',
            'address': '12 Test Road',
            'city': city,
            'state': state,
            'pincode': '400001',
            'phone': f'9{random.randint(100000000, 999999999)}',
            'verification_status': 'verified' if verified else 'provisional',
        }
        fields.update(kwargs)
        dealer = Dealer(owner=user, **fields)
        if pin:
            dealer.set_private_pin(pin)
        dealer.save()
        return dealer

    @staticmethod
    def create_vehicle(dealer, status='live', price=None, make='Maruti', model='Swift', year=2020, **kwargs):
        """Create a test vehicle; live listings get a listing date"""
        if price is None:
            price = Decimal('500000')
        fields = {
            'fuel_type': 'petrol',
            'transmission': 'manual',
            'kilometers': 25000,
            'vin': 'MA3' + ''.join(random.choices(VIN_CHARS, k=14)),
            'image_urls': [f'https://images.test/{TestDataFactory.random_string(8)}.jpg' for _ in range(3)],
        }
        fields.update(kwargs)
        if status != 'draft' and 'date_listed' not in fields:
            fields['date_listed'] = timezone.now()
        return Vehicle.objects.create(
            dealer=dealer,
            make=make,
            model=model,
            year=year,
            price=Decimal(price),
            status=status,
            **fields
        )

    @staticmethod
    def create_transaction(vehicle, buyer, offer_amount=None, status='offer_made', **kwargs):
        """Create a deal on a vehicle; the buyer made the last offer unless told otherwise"""
        if offer_amount is None:
            offer_amount = vehicle.price
        kwargs.setdefault('last_offer_by', buyer)
        if status in ('accepted', 'in_escrow', 'in_transit', 'completed'):
            kwargs.setdefault('final_amount', offer_amount)
            kwargs.setdefault('accepted_at', timezone.now())
        return Transaction.objects.create(
            vehicle=vehicle,
            seller=vehicle.dealer,
            buyer=buyer,
            offer_amount=Decimal(offer_amount),
            status=status,
            **kwargs
        )

    @staticmethod
    def set_config(key, value, data_type='number'):
        """Override a SystemConfig value for a test"""
        config, _ = SystemConfig.objects.update_or_create(
            config_key=key,
            defaults={'config_value': str(value), 'data_type': data_type, 'is_active': True},
        )
        invalidate_config(key)
        return config

    @staticmethod
    def clear_cache():
        cache.clear()


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
