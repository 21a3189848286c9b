"""
Test suite for the core module
Tests: validators, runtime config, auth endpoints, platform admin user management, audit log
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core import validators
from backend.core.config import get_config_value, seed_default_configs, DEFAULT_CONFIGS
from backend.core.models import SystemConfig, SystemLog, User
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_system_log


class ValidatorTests(TestCase):
    """Field validators and formatters"""

    def test_sanitize_input_strips_tags_and_escapes(self):
        self.assertEqual(validators.sanitize_input('  <b>Hi</b> & bye '), 'Hi &amp; bye')
        self.assertEqual(validators.sanitize_input('<script>alert(1)</script>'), 'alert(1)')
        self.assertEqual(validators.sanitize_input(42), 42)

    def test_sanitize_input_caps_length(self):
        self.assertEqual(len(validators.sanitize_input('a' * 5000)), validators.MAX_INPUT_LENGTH)

    def test_sanitize_and_validate_text(self):
        result = validators.sanitize_and_validate_text('ab', min_length=3)
        self.assertFalse(result['is_valid'])
        self.assertTrue(validators.sanitize_and_validate_text('abc', min_length=3)['is_valid'])

    def test_validate_phone(self):
        self.assertTrue(validators.validate_phone('9876543210'))
        self.assertTrue(validators.validate_phone('+91 98765-43210'))
        self.assertFalse(validators.validate_phone('1234567890'))
        self.assertFalse(validators.validate_phone('98765'))
        self.assertFalse(validators.validate_phone(None))

    def test_format_phone(self):
        self.assertEqual(validators.format_phone('9876543210'), '98765 43210')
        self.assertEqual(validators.format_phone('+919876543210'), '+91 98765 43210')

    def test_pan_and_gstin_are_optional(self):
        self.assertTrue(validators.validate_pan(''))
        self.assertTrue(validators.validate_pan('abcde1234f'))
        self.assertFalse(validators.validate_pan('ABCDE12345'))
        self.assertTrue(validators.validate_gstin(''))
        self.assertTrue(validators.validate_gstin('27ABCDE1234F1Z5'))
        self.assertFalse(validators.validate_gstin('27ABCDE1234F1X5'))

    def test_bank_details(self):
        self.assertTrue(validators.validate_bank_account('123456789012'))
        self.assertFalse(validators.validate_bank_account('12345'))
        self.assertTrue(validators.validate_ifsc('HDFC0001234'))
        self.assertFalse(validators.validate_ifsc('HDFC1001234'))
        self.assertTrue(validators.validate_pincode('400001'))
        self.assertFalse(validators.validate_pincode('4000'))

    def test_validate_vin(self):
        self.assertTrue(validators.validate_vin(''))
        self.assertTrue(validators.validate_vin('MA3EWDE1S00123456'))
        # I, O and Q never appear in a VIN
        self.assertFalse(validators.validate_vin('MA3EWDE1S0012345O'))
        self.assertFalse(validators.validate_vin('MA3EWDE1S'))

    def test_validate_price_bounds(self):
        self.assertTrue(validators.validate_price('10000'))
        self.assertTrue(validators.validate_price(100000000))
        self.assertFalse(validators.validate_price(9999))
        self.assertFalse(validators.validate_price(100000001))
        self.assertFalse(validators.validate_price('abc'))
        self.assertFalse(validators.validate_price(None))

    def test_validate_year(self):
        self.assertTrue(validators.validate_year(1990))
        self.assertTrue(validators.validate_year(timezone.now().year + 1))
        self.assertFalse(validators.validate_year(1989))
        self.assertFalse(validators.validate_year(timezone.now().year + 2))

    def test_optional_ranges(self):
        self.assertTrue(validators.validate_kilometers(None))
        self.assertTrue(validators.validate_kilometers(2000000))
        self.assertFalse(validators.validate_kilometers(2000001))
        self.assertTrue(validators.validate_engine_capacity('1.2'))
        self.assertFalse(validators.validate_engine_capacity('25'))
        self.assertFalse(validators.validate_power(0))

    def test_validate_offer(self):
        self.assertFalse(validators.validate_offer(0, 500000)['is_valid'])
        self.assertFalse(validators.validate_offer(-5, 500000)['is_valid'])

        high = validators.validate_offer(600000, 500000)
        self.assertTrue(high['is_valid'])
        self.assertIn('above asking price', high['warning'])

        low = validators.validate_offer(300000, 500000)
        self.assertTrue(low['is_valid'])
        self.assertIn('may be rejected', low['warning'])
        self.assertIn('4.0L', low['suggestion'])

        self.assertIn('20.0% below', validators.validate_offer(400000, 500000)['suggestion'])
        self.assertEqual(validators.validate_offer(480000, 500000)['suggestion'],
                         'Your offer is within reasonable range')

    def test_validate_offer_without_price(self):
        result = validators.validate_offer(100000, None)
        self.assertTrue(result['is_valid'])
        self.assertEqual(result['warning'], 'Unable to compare with asking price')

    def test_rating_and_inspection_score(self):
        self.assertTrue(validators.validate_rating(1))
        self.assertTrue(validators.validate_rating('4.5'))
        self.assertFalse(validators.validate_rating(6))
        self.assertTrue(validators.validate_inspection_score(100))
        self.assertFalse(validators.validate_inspection_score(101))

    def test_validate_url(self):
        self.assertTrue(validators.validate_url('https://example.com/a.jpg'))
        self.assertFalse(validators.validate_url('ftp://example.com/a.jpg'))
        self.assertFalse(validators.validate_url('not a url'))

    def test_upload_validation(self):
        class Upload:
            def __init__(self, content_type, size):
                self.content_type = content_type
                self.size = size

        self.assertTrue(validators.validate_image_file(Upload('image/png', 1024))['is_valid'])
        self.assertFalse(validators.validate_image_file(Upload('application/pdf', 1024))['is_valid'])
        self.assertFalse(validators.validate_image_file(Upload('image/png', 11 * 1024 * 1024))['is_valid'])
        self.assertTrue(validators.validate_document_file(Upload('application/pdf', 1024))['is_valid'])
        self.assertFalse(validators.validate_document_file(Upload('application/pdf', 6 * 1024 * 1024))['is_valid'])

    def test_dates(self):
        self.assertTrue(validators.validate_date('2024-01-15'))
        self.assertFalse(validators.validate_date('not-a-date'))
        self.assertFalse(validators.validate_date('2020-01-01', allow_past=False))
        self.assertTrue(validators.validate_date_range('2024-01-01', '2024-02-01'))
        self.assertFalse(validators.validate_date_range('2024-02-01', '2024-01-01'))

    def test_validate_dealer_profile(self):
        result = validators.validate_dealer_profile({
            'business_name': 'A', 'phone': '123', 'address': 'short', 'gstin': 'BAD',
        })
        self.assertFalse(result['is_valid'])
        for field in ('business_name', 'phone', 'business_type', 'address', 'city', 'state', 'gstin'):
            self.assertIn(field, result['errors'])

        result = validators.validate_dealer_profile({
            'business_name': 'Sharma Motors', 'phone': '9876543210', 'business_type': 'partnership',
            'address': '12 MG Road, Andheri', 'city': 'Mumbai', 'state': 'Maharashtra',
        })
        self.assertTrue(result['is_valid'])

    def test_validate_vehicle_data(self):
        result = validators.validate_vehicle_data({'make': 'M', 'year': 1980, 'price': 500})
        self.assertFalse(result['is_valid'])
        for field in ('make', 'model', 'year', 'price', 'fuel_type', 'transmission'):
            self.assertIn(field, result['errors'])

        result = validators.validate_vehicle_data({
            'make': 'Maruti', 'model': 'Swift', 'year': 2020, 'price': 550000,
            'fuel_type': 'petrol', 'transmission': 'manual', 'seating_capacity': 5,
        })
        self.assertTrue(result['is_valid'])

    def test_formatters(self):
        self.assertEqual(validators.format_indian_number(1234567), '12,34,567')
        self.assertEqual(validators.format_indian_number(999), '999')
        self.assertEqual(validators.format_price(25000000), '₹2.5 Cr')
        self.assertEqual(validators.format_price(550000), '₹5.5 L')
        self.assertEqual(validators.format_price(45000), '₹45,000')
        self.assertEqual(validators.format_price(None), 'Price not set')
        self.assertEqual(validators.format_kilometers(125000), '1,25,000 km')


class SystemConfigTests(TestCase):
    """Typed config lookups with defaults"""

    def setUp(self):
        TestDataFactory.clear_cache()

    def test_defaults_apply_without_rows(self):
        self.assertEqual(get_config_value('platform_fee'), Decimal('13000'))
        self.assertEqual(len(get_config_value('margin_brackets')), 3)
        self.assertEqual(get_config_value('missing_key', 'fallback'), 'fallback')

    def test_stored_value_overrides_default(self):
        TestDataFactory.set_config('platform_fee', 15000)
        self.assertEqual(get_config_value('platform_fee'), Decimal('15000'))

    def test_inactive_row_falls_back_to_default(self):
        SystemConfig.objects.create(config_key='platform_fee', config_value='20000', data_type='number',
                                    is_active=False)
        self.assertEqual(get_config_value('platform_fee'), Decimal('13000'))

    def test_boolean_coercion(self):
        TestDataFactory.set_config('feature_flag', 'true', data_type='boolean')
        self.assertTrue(get_config_value('feature_flag'))

    def test_seed_default_configs_is_idempotent(self):
        created = seed_default_configs()
        self.assertEqual(sorted(created), sorted(DEFAULT_CONFIGS))
        self.assertEqual(seed_default_configs(), [])
        self.assertEqual(SystemConfig.objects.count(), len(DEFAULT_CONFIGS))


class AuthTests(TestCase):
    """Registration, login and the current user"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newdealer',
            'email': 'NewDealer@Example.com',
            'password': 'Str0ng-pass-123',
            'password_confirm': 'Str0ng-pass-123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['email'], 'newdealer@example.com')
        self.assertFalse(response.data['user']['platform_admin'])

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newdealer', 'email': 'a@example.com',
            'password': 'Str0ng-pass-123', 'password_confirm': 'other-pass-123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_duplicate_email(self):
        TestDataFactory.create_user(email='taken@example.com')
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'another', 'email': 'TAKEN@example.com',
            'password': 'Str0ng-pass-123', 'password_confirm': 'Str0ng-pass-123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_login(self):
        TestDataFactory.create_user(username='dealer1', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'username': 'dealer1', 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_without_dealer_needs_onboarding(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['dealer'])
        self.assertTrue(response.data['needs_onboarding'])
        self.assertFalse(response.data['can_trade'])

    def test_me_with_verified_dealer(self):
        dealer = TestDataFactory.create_dealer(pin='1234')
        self.client.authenticate_user(dealer.owner)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.data['dealer']['id'], dealer.id)
        self.assertTrue(response.data['dealer']['has_private_pin'])
        self.assertTrue(response.data['can_trade'])
        self.assertFalse(response.data['can_use_custom_margins'])

    def test_me_patch_cannot_grant_admin(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.patch('/api/v1/auth/me/', {'first_name': 'Ravi', 'platform_admin': True},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertEqual(user.first_name, 'Ravi')
        self.assertFalse(user.platform_admin)


class PlatformAdminTests(TestCase):
    """Admin-only user management, config and logs"""

    def setUp(self):
        TestDataFactory.clear_cache()
        self.admin = TestDataFactory.create_admin()
        self.user = TestDataFactory.create_user(email='dealer@example.com')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_non_admin_is_forbidden(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/admin/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_user_list_search(self):
        response = self.client.get('/api/v1/admin/users/?search=dealer@example')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], self.user.id)

    def test_grant_margin_permission_records_history_and_log(self):
        response = self.client.post(f'/api/v1/admin/users/{self.user.id}/margin-permission/',
                                    {'custom_margin_enabled': True, 'reason': 'Trusted dealer'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.custom_margin_enabled)
        self.assertEqual(len(self.user.margin_override_history), 1)
        entry = self.user.margin_override_history[0]
        self.assertFalse(entry['previous'])
        self.assertTrue(entry['new'])
        self.assertEqual(entry['reason'], 'Trusted dealer')

        log = SystemLog.objects.get(action_type='margin_permission_change')
        self.assertEqual(log.target_id, str(self.user.id))
        self.assertEqual(log.severity, 'warning')
        self.assertEqual(log.user, self.admin)

    def test_revoke_margin_permission_appends_history(self):
        self.client.post(f'/api/v1/admin/users/{self.user.id}/margin-permission/',
                         {'custom_margin_enabled': True}, format='json')
        self.client.post(f'/api/v1/admin/users/{self.user.id}/margin-permission/',
                         {'custom_margin_enabled': False}, format='json')
        self.user.refresh_from_db()
        self.assertFalse(self.user.custom_margin_enabled)
        self.assertEqual(len(self.user.margin_override_history), 2)

    def test_config_create_and_update(self):
        response = self.client.post('/api/v1/admin/config/', {
            'config_key': 'platform_fee', 'config_value': '14000', 'data_type': 'number', 'category': 'pricing',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(get_config_value('platform_fee'), Decimal('14000'))

        response = self.client.patch('/api/v1/admin/config/platform_fee/', {'config_value': '16000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(get_config_value('platform_fee'), Decimal('16000'))
        self.assertEqual(SystemLog.objects.filter(action_type='system_config_change').count(), 2)

    def test_config_rejects_invalid_number(self):
        response = self.client.post('/api/v1/admin/config/', {
            'config_key': 'platform_fee', 'config_value': 'lots', 'data_type': 'number',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_system_log_filters(self):
        create_system_log(user=self.admin, action_type='payment', module='payments', target_id=1)
        create_system_log(user=self.admin, action_type='delete', module='vehicles', target_id=2, severity='error')
        response = self.client.get('/api/v1/admin/logs/?module=vehicles')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/admin/logs/?severity=error')
        self.assertEqual(response.data['results'][0]['action_type'], 'delete')


class SystemLogUtilTests(TestCase):

    def test_missing_fields_skip_log(self):
        self.assertIsNone(create_system_log(action_type='create', module=None, target_id=1))
        self.assertEqual(SystemLog.objects.count(), 0)

    def test_log_without_request(self):
        user = TestDataFactory.create_user()
        log = create_system_log(user=user, action_type='create', module='vehicles', target_id=7,
                                details={'make': 'Honda'})
        self.assertEqual(log.target_id, '7')
        self.assertIsNone(log.ip_address)
        self.assertEqual(log.details, {'make': 'Honda'})


class SetupPlatformAdminCommandTests(TestCase):

    def setUp(self):
        TestDataFactory.clear_cache()

    def test_creates_admin_and_seeds_config(self):
        out = StringIO()
        call_command('setup_platform_admin', 'boss@example.com', '--password', 'Secret-123', stdout=out)
        user = User.objects.get(email='boss@example.com')
        self.assertTrue(user.platform_admin)
        self.assertTrue(user.custom_margin_enabled)
        self.assertEqual(SystemConfig.objects.count(), len(DEFAULT_CONFIGS))
        self.assertIn('Created platform admin', out.getvalue())

    def test_upgrades_existing_user(self):
        user = TestDataFactory.create_user(email='ops@example.com')
        call_command('setup_platform_admin', 'ops@example.com', stdout=StringIO())
        user.refresh_from_db()
        self.assertTrue(user.platform_admin)
        self.assertEqual(user.margin_override_history[-1]['reason'], 'Platform admin setup')

    def test_unknown_user_without_password(self):
        with self.assertRaises(CommandError):
            call_command('setup_platform_admin', 'ghost@example.com', stdout=StringIO())


class UserModelTests(TestCase):

    def test_is_platform_admin(self):
        self.assertFalse(TestDataFactory.create_user().is_platform_admin)
        self.assertTrue(TestDataFactory.create_admin().is_platform_admin)
        self.assertTrue(TestDataFactory.create_user(is_staff=True).is_platform_admin)

    def test_recent_login_window(self):
        user = TestDataFactory.create_user()
        user.last_login = timezone.now() - timedelta(days=2)
        user.save()
        self.assertEqual(User.objects.filter(last_login__gt=timezone.now() - timedelta(days=7)).count(), 1)
