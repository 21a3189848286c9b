"""
Test suite for the payments module
Tests: gateway fees, escrow payment success and decline, payment history
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.models import SystemLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.deals.state import DealError
from backend.notifications.models import Notification
from backend.payments import services
from backend.payments.models import PaymentGateway


class GatewayFeeTests(TestCase):

    def test_razorpay_fee(self):
        figures = services.quote(Decimal('500000'), 'razorpay')
        self.assertEqual(figures['processing_fee'], Decimal('10000'))
        self.assertEqual(figures['total_amount'], Decimal('510000'))

    def test_fee_rounds_half_up(self):
        self.assertEqual(services.processing_fee(Decimal('150'), 'payu'), Decimal('3'))

    def test_mock_gateway_is_free(self):
        self.assertEqual(services.processing_fee(Decimal('500000'), 'mock'), Decimal('0'))

    def test_unknown_gateway(self):
        with self.assertRaises(DealError):
            services.processing_fee(Decimal('100'), 'paypal')

    def test_gateway_list_endpoint(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/payments/gateways/')
        self.assertEqual({g['id'] for g in response.data}, {'razorpay', 'payu', 'mock'})


class EscrowPaymentTests(TestCase):

    def setUp(self):
        TestDataFactory.clear_cache()
        self.seller = TestDataFactory.create_dealer()
        self.buyer = TestDataFactory.create_dealer()
        vehicle = TestDataFactory.create_vehicle(self.seller, status='in_transaction')
        self.deal = TestDataFactory.create_transaction(vehicle, self.buyer, status='accepted',
                                                       offer_amount=480000)
        self.buyer_client = AuthenticatedAPIClient().authenticate_user(self.buyer.owner)
        self.seller_client = AuthenticatedAPIClient().authenticate_user(self.seller.owner)

    def _pay(self, client=None, gateway='razorpay', method='upi'):
        client = client or self.buyer_client
        return client.post(f'/api/v1/deals/{self.deal.id}/payments/',
                           {'gateway': gateway, 'payment_method': method}, format='json')

    def test_quote_endpoint(self):
        response = self.buyer_client.get(f'/api/v1/deals/{self.deal.id}/payments/quote/?gateway=payu')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['processing_fee'], Decimal('9120'))

    def test_successful_payment_funds_escrow(self):
        TestDataFactory.set_config('payment_success_rate', 1)
        response = self._pay()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['amount'], '489600.00')
        self.assertTrue(response.data['escrow_reference'].startswith('escrow_pay_'))
        self.assertTrue(response.data['webhook_verified'])

        self.deal.refresh_from_db()
        self.assertEqual(self.deal.status, 'in_escrow')
        self.assertEqual(self.deal.escrow_status, 'paid')
        self.assertEqual(self.deal.payment_method, 'upi')
        self.assertTrue(Notification.objects.filter(user=self.seller.owner, type='payment').exists())
        self.assertTrue(SystemLog.objects.filter(module='payments', action_type='payment').exists())

    def test_declined_payment_is_recorded(self):
        TestDataFactory.set_config('payment_success_rate', 0)
        response = self._pay()
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self.assertEqual(response.data['payment']['status'], 'failed')
        self.assertEqual(response.data['error'], services.DECLINE_REASON)

        self.deal.refresh_from_db()
        self.assertEqual(self.deal.escrow_status, 'none')
        self.assertEqual(PaymentGateway.objects.filter(status='failed').count(), 1)

    def test_retry_after_decline(self):
        TestDataFactory.set_config('payment_success_rate', 0)
        self._pay()
        TestDataFactory.set_config('payment_success_rate', 1)
        response = self._pay(gateway='mock', method='card')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.buyer_client.get(f'/api/v1/deals/{self.deal.id}/payments/')
        self.assertEqual([p['status'] for p in response.data], ['completed', 'failed'])

    def test_cannot_pay_twice(self):
        TestDataFactory.set_config('payment_success_rate', 1)
        self._pay()
        response = self._pay()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(PaymentGateway.objects.count(), 1)

    def test_only_buyer_pays(self):
        response = self._pay(client=self.seller_client)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_deal_must_be_accepted(self):
        self.deal.status = 'negotiating'
        self.deal.save()
        response = self._pay()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_unsupported_method(self):
        response = self._pay(gateway='mock', method='emi')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('payment_method', response.data)

    def test_unverified_buyer(self):
        self.buyer.verification_status = 'in_review'
        self.buyer.save()
        response = self._pay()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_stale_payment_fails_without_double_escrow(self):
        TestDataFactory.set_config('payment_success_rate', 1)
        first = services.initiate_payment(self.buyer, self.deal.id, 'mock', 'card')
        second = services.initiate_payment(self.buyer, self.deal.id, 'mock', 'upi')
        self.assertEqual(services.process_payment(first).status, 'completed')
        stale = services.process_payment(second)
        self.assertEqual(stale.status, 'failed')
        self.assertEqual(stale.failure_reason, 'Deal is no longer awaiting payment')
