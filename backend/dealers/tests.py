"""
Test suite for the dealers module
Tests: onboarding, KYB verification, private PIN, directory and dashboard
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.models import SystemLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.dealers.models import Dealer
from backend.notifications.models import Notification

PROFILE = {
    'business_name': 'Sharma Motors',
    'business_type': 'partnership',
    'address': '12 MG Road, Andheri East',
    'city': 'Mumbai',
    'state': 'Maharashtra',
    'pincode': '400069',
    'phone': '9876543210',
}


class DealerModelTests(TestCase):

    def test_private_pin_is_hashed(self):
        dealer = TestDataFactory.create_dealer(pin='4321')
        self.assertNotEqual(dealer.private_view_pin_hash, '4321')
        self.assertTrue(dealer.check_private_pin('4321'))
        self.assertFalse(dealer.check_private_pin('0000'))

    def test_check_pin_without_pin_set(self):
        dealer = TestDataFactory.create_dealer()
        self.assertFalse(dealer.check_private_pin('1234'))

    def test_record_rating_running_average(self):
        dealer = TestDataFactory.create_dealer()
        dealer.record_rating(5)
        dealer.record_rating(4)
        dealer.record_rating(3)
        self.assertEqual(dealer.rating, Decimal('4.00'))
        self.assertEqual(dealer.rating_count, 3)


class DealerOnboardingTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_get_profile_before_onboarding(self):
        response = self.client.get('/api/v1/dealers/me/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_profile(self):
        response = self.client.post('/api/v1/dealers/me/', {**PROFILE, 'gstin': '27abcde1234f1z5'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['verification_status'], 'provisional')
        self.assertEqual(response.data['gstin'], '27ABCDE1234F1Z5')
        self.assertFalse(response.data['has_private_pin'])
        self.assertTrue(SystemLog.objects.filter(module='dealers', action_type='create').exists())

    def test_cannot_self_verify(self):
        response = self.client.post('/api/v1/dealers/me/', {**PROFILE, 'verification_status': 'verified'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Dealer.objects.get(owner=self.user).verification_status, 'provisional')

    def test_create_profile_validation(self):
        response = self.client.post('/api/v1/dealers/me/', {**PROFILE, 'phone': '12345', 'pan': 'BADPAN'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data)
        self.assertIn('pan', response.data)

    def test_create_profile_twice(self):
        self.client.post('/api/v1/dealers/me/', PROFILE, format='json')
        response = self.client.post('/api/v1/dealers/me/', PROFILE, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_business_name_is_sanitized(self):
        response = self.client.post('/api/v1/dealers/me/', {**PROFILE, 'business_name': '<b>Sharma</b> Motors'},
                                    format='json')
        self.assertEqual(response.data['business_name'], 'Sharma Motors')

    def test_partial_update_validates_merged_record(self):
        TestDataFactory.create_dealer(user=self.user)
        response = self.client.patch('/api/v1/dealers/me/', {'city': 'Pune'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['city'], 'Pune')

        response = self.client.patch('/api/v1/dealers/me/', {'address': 'short'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_kyb_documents_deduplicated_by_type(self):
        TestDataFactory.create_dealer(user=self.user)
        response = self.client.patch('/api/v1/dealers/me/', {'kyb_documents': [
            {'type': 'pan_card', 'url': 'https://docs.test/pan-old.pdf'},
            {'type': 'pan_card', 'url': 'https://docs.test/pan-new.pdf'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['kyb_documents']), 1)
        self.assertEqual(response.data['kyb_documents'][0]['url'], 'https://docs.test/pan-new.pdf')

    def test_kyb_documents_unknown_type(self):
        TestDataFactory.create_dealer(user=self.user)
        response = self.client.patch('/api/v1/dealers/me/', {'kyb_documents': [
            {'type': 'selfie', 'url': 'https://docs.test/me.jpg'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class DealerVerificationTests(TestCase):

    def setUp(self):
        self.dealer = TestDataFactory.create_dealer(verified=False, pan='ABCDE1234F')
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()

    def test_submit_for_review(self):
        self.client.authenticate_user(self.dealer.owner)
        response = self.client.post('/api/v1/dealers/me/verification/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['verification_status'], 'in_review')
        self.assertTrue(Notification.objects.filter(user=self.dealer.owner, type='verification').exists())

        response = self.client.post('/api/v1/dealers/me/verification/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_submit_requires_tax_ids(self):
        dealer = TestDataFactory.create_dealer(verified=False)
        self.client.authenticate_user(dealer.owner)
        response = self.client.post('/api/v1/dealers/me/verification/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('GSTIN or PAN', response.data['error'])

    def test_admin_approves(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/v1/admin/dealers/{self.dealer.id}/verification/',
                                    {'decision': 'verified'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.dealer.refresh_from_db()
        self.assertEqual(self.dealer.verification_status, 'verified')
        self.assertIsNotNone(self.dealer.verified_at)
        self.assertTrue(SystemLog.objects.filter(action_type='dealer_verification').exists())
        self.assertEqual(Notification.objects.get(user=self.dealer.owner).priority, 'high')

    def test_admin_rejects_with_notes(self):
        self.client.authenticate_user(self.admin)
        self.client.post(f'/api/v1/admin/dealers/{self.dealer.id}/verification/',
                         {'decision': 'rejected', 'notes': 'GST certificate unreadable'}, format='json')
        self.dealer.refresh_from_db()
        self.assertEqual(self.dealer.verification_status, 'rejected')
        self.assertIsNone(self.dealer.verified_at)
        notification = Notification.objects.get(user=self.dealer.owner)
        self.assertIn('GST certificate unreadable', notification.message)
        self.assertTrue(notification.action_required)

    def test_dealer_cannot_decide(self):
        self.client.authenticate_user(self.dealer.owner)
        response = self.client.post(f'/api/v1/admin/dealers/{self.dealer.id}/verification/',
                                    {'decision': 'verified'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class PrivatePinTests(TestCase):

    def setUp(self):
        self.dealer = TestDataFactory.create_dealer()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.dealer.owner)

    def test_set_pin(self):
        response = self.client.post('/api/v1/dealers/me/private-pin/', {'pin': '2468'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.dealer.refresh_from_db()
        self.assertTrue(self.dealer.check_private_pin('2468'))

    def test_pin_must_be_four_digits(self):
        response = self.client.post('/api/v1/dealers/me/private-pin/', {'pin': '12ab'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_pin_requires_current_pin(self):
        self.client.post('/api/v1/dealers/me/private-pin/', {'pin': '2468'}, format='json')
        response = self.client.post('/api/v1/dealers/me/private-pin/', {'pin': '1357', 'current_pin': '0000'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post('/api/v1/dealers/me/private-pin/', {'pin': '1357', 'current_pin': '2468'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.dealer.refresh_from_db()
        self.assertTrue(self.dealer.check_private_pin('1357'))


class DealerDirectoryTests(TestCase):

    def setUp(self):
        TestDataFactory.clear_cache()
        self.dealer = TestDataFactory.create_dealer(business_name='Pune Auto Hub', city='Pune')
        self.other = TestDataFactory.create_dealer(business_name='Delhi Wheels', city='Delhi', state='Delhi',
                                                   verified=False)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.dealer.owner)

    def test_list_filters(self):
        response = self.client.get('/api/v1/dealers/?state=delhi')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/dealers/?verified_only=true')
        self.assertEqual([d['id'] for d in response.data['results']], [self.dealer.id])
        response = self.client.get('/api/v1/dealers/?search=wheels')
        self.assertEqual(response.data['results'][0]['business_name'], 'Delhi Wheels')

    def test_other_dealer_sees_public_fields_only(self):
        response = self.client.get(f'/api/v1/dealers/{self.other.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('account_number', response.data)
        self.assertNotIn('phone', response.data)

    def test_owner_sees_full_profile(self):
        response = self.client.get(f'/api/v1/dealers/{self.dealer.id}/')
        self.assertIn('account_number', response.data)

    def test_dashboard_stats(self):
        TestDataFactory.create_vehicle(self.dealer, status='live')
        TestDataFactory.create_vehicle(self.dealer, status='draft')
        vehicle = TestDataFactory.create_vehicle(self.dealer, status='in_transaction')
        TestDataFactory.create_transaction(vehicle, self.other)

        response = self.client.get('/api/v1/dealers/me/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stats = response.data['stats']
        self.assertEqual(stats['totalInventory'], 3)
        self.assertEqual(stats['liveListings'], 1)
        self.assertEqual(stats['inTransaction'], 1)
        self.assertEqual(stats['pendingOffers'], 1)
        self.assertEqual(len(response.data['recent_transactions']), 1)

    def test_dashboard_requires_dealer_profile(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/dealers/me/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
