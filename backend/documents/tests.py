"""
Test suite for the documents module
Tests: document generation, content hashing, two-party signing and RTO transfer tracking
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.models import SystemLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.documents import services
from backend.documents.models import DigitalDocument, RTOApplication
from backend.notifications.models import Notification


class HashTests(TestCase):

    def test_canonical_json_is_key_order_independent(self):
        self.assertEqual(services.compute_hash({'b': 1, 'a': [1, 2]}), services.compute_hash({'a': [1, 2], 'b': 1}))

    def test_decimals_hash_as_strings(self):
        self.assertEqual(services.canonical_json({'amount': Decimal('480000.00')}), '{"amount":"480000.00"}')

    def test_hash_is_sha256_hex(self):
        self.assertEqual(len(services.compute_hash({})), 64)


class DocumentTestMixin:

    def setUp(self):
        self.seller = TestDataFactory.create_dealer(business_name='Seller Motors', gstin='27ABCDE1234F1Z5')
        self.buyer = TestDataFactory.create_dealer(business_name='Buyer Cars')
        self.vehicle = TestDataFactory.create_vehicle(self.seller, status='in_transaction',
                                                      registration_number='MH12AB1234')
        self.deal = TestDataFactory.create_transaction(self.vehicle, self.buyer, status='accepted',
                                                       offer_amount=480000)
        self.seller_client = AuthenticatedAPIClient().authenticate_user(self.seller.owner)
        self.buyer_client = AuthenticatedAPIClient().authenticate_user(self.buyer.owner)


class DocumentGenerationTests(DocumentTestMixin, TestCase):

    def _generate(self, document_type='sale_agreement', client=None):
        client = client or self.seller_client
        return client.post(f'/api/v1/deals/{self.deal.id}/documents/', {'document_type': document_type},
                           format='json')

    def test_generate_sale_agreement(self):
        response = self._generate()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['legal_validity'], 'draft')
        self.assertTrue(response.data['document_number'].startswith(f'SALE_AGREEMENT-{self.deal.id}-'))
        data = response.data['document_data']
        self.assertEqual(data['transaction']['finalAmount'], '480000.00')
        self.assertEqual(data['vehicle']['registrationNumber'], 'MH12AB1234')
        self.assertEqual(data['seller']['gstin'], '27ABCDE1234F1Z5')
        self.assertEqual(response.data['document_hash'], services.compute_hash(data))
        self.assertTrue(Notification.objects.filter(user=self.buyer.owner, type='document').exists())

    def test_inspection_report_includes_checklist(self):
        self.vehicle.inspection_checklist = {'engine': 'pass'}
        self.vehicle.save()
        response = self._generate('inspection_report')
        self.assertEqual(response.data['document_data']['inspection']['checklist'], {'engine': 'pass'})

    def test_one_document_per_type(self):
        self._generate()
        response = self._generate(client=self.buyer_client)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_not_before_acceptance(self):
        self.deal.status = 'negotiating'
        self.deal.save()
        response = self._generate()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_unknown_type(self):
        response = self._generate('lease')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_outsider_cannot_generate(self):
        outsider = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_dealer().owner)
        response = self._generate(client=outsider)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_documents(self):
        self._generate()
        self._generate('invoice')
        response = self.buyer_client.get(f'/api/v1/deals/{self.deal.id}/documents/')
        self.assertEqual(len(response.data), 2)


class SigningTests(DocumentTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.document = services.generate_document(self.seller, self.deal.id, 'sale_agreement')

    def test_both_signatures_execute(self):
        response = self.seller_client.post(f'/api/v1/documents/{self.document.id}/sign/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['signed_by_seller'])
        self.assertEqual(response.data['legal_validity'], 'draft')

        response = self.buyer_client.post(f'/api/v1/documents/{self.document.id}/sign/')
        self.assertEqual(response.data['legal_validity'], 'executed')
        self.assertIsNotNone(response.data['executed_at'])

        self.document.refresh_from_db()
        self.assertEqual(self.document.buyer_ip_address, '127.0.0.1')
        self.assertEqual(SystemLog.objects.filter(action_type='document_signed').count(), 2)
        self.assertTrue(Notification.objects.filter(user=self.seller.owner, title='Document executed').exists())

    def test_sign_twice(self):
        self.seller_client.post(f'/api/v1/documents/{self.document.id}/sign/')
        response = self.seller_client.post(f'/api/v1/documents/{self.document.id}/sign/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_executed_document_is_final(self):
        self.seller_client.post(f'/api/v1/documents/{self.document.id}/sign/')
        self.buyer_client.post(f'/api/v1/documents/{self.document.id}/sign/')
        response = self.buyer_client.post(f'/api/v1/documents/{self.document.id}/sign/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_tampered_document_cannot_be_signed(self):
        data = dict(self.document.document_data)
        data['transaction'] = {**data['transaction'], 'finalAmount': '1.00'}
        DigitalDocument.objects.filter(pk=self.document.pk).update(document_data=data)

        response = self.buyer_client.get(f'/api/v1/documents/{self.document.id}/verify/')
        self.assertFalse(response.data['is_valid'])
        response = self.buyer_client.post(f'/api/v1/documents/{self.document.id}/sign/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_verify(self):
        response = self.buyer_client.get(f'/api/v1/documents/{self.document.id}/verify/')
        self.assertTrue(response.data['is_valid'])
        self.assertEqual(response.data['stored_hash'], response.data['computed_hash'])

    def test_verify_access(self):
        outsider = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_dealer().owner)
        response = outsider.get(f'/api/v1/documents/{self.document.id}/verify/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        admin = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = admin.get(f'/api/v1/documents/{self.document.id}/verify/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class RTOTests(DocumentTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.deal.status = 'in_escrow'
        self.deal.escrow_status = 'paid'
        self.deal.save()
        self.admin_client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())

    def _submit(self, **extra):
        payload = {'application_fee': '1500', 'document_urls': [
            {'type': 'form_29', 'url': 'https://docs.test/form29.pdf'},
        ]}
        payload.update(extra)
        return self.seller_client.post(f'/api/v1/deals/{self.deal.id}/rto/', payload, format='json')

    def _advance(self, application_id, new_status, **extra):
        return self.admin_client.post(f'/api/v1/admin/rto/{application_id}/status/',
                                      {'status': new_status, **extra}, format='json')

    def test_submit(self):
        response = self._submit()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'submitted')
        self.assertEqual(response.data['seller_name'], 'Seller Motors')
        self.deal.refresh_from_db()
        self.assertTrue(self.deal.rto_transfer_initiated)

        response = self.buyer_client.get(f'/api/v1/deals/{self.deal.id}/rto/')
        self.assertEqual(response.data['buyer_name'], 'Buyer Cars')

    def test_submit_before_payment(self):
        self.deal.status = 'accepted'
        self.deal.escrow_status = 'none'
        self.deal.save()
        response = self._submit()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_one_open_application(self):
        self._submit()
        response = self._submit()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_bad_document_url(self):
        response = self._submit(document_urls=[{'type': 'form_29', 'url': 'not a url'}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_steps_in_order(self):
        application_id = self._submit().data['id']
        response = self._advance(application_id, 'dispatch')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        for step in ('in_process', 'dispatch', 'completed'):
            response = self._advance(application_id, step, tracking_number='RTO-MH12-7781')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tracking_number'], 'RTO-MH12-7781')

        self.deal.refresh_from_db()
        self.assertTrue(self.deal.rto_transfer_completed)
        self.assertTrue(self.deal.documents_transferred)
        self.assertEqual(SystemLog.objects.filter(action_type='rto_status_change').count(), 3)

        response = self._advance(application_id, 'rejected', rejection_reason='late')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_reject_needs_reason_and_allows_resubmission(self):
        application_id = self._submit().data['id']
        response = self._advance(application_id, 'rejected')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self._advance(application_id, 'rejected', rejection_reason='Form 30 missing')
        self.assertEqual(response.data['status'], 'rejected')
        notification = Notification.objects.filter(user=self.buyer.owner, title='RTO application rejected').get()
        self.assertIn('Form 30 missing', notification.message)
        self.assertEqual(notification.priority, 'high')
        self.deal.refresh_from_db()
        self.assertFalse(self.deal.rto_transfer_initiated)

        response = self._submit()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(RTOApplication.objects.count(), 2)

    def test_admin_list(self):
        self._submit()
        response = self.admin_client.get('/api/v1/admin/rto/?status=submitted')
        self.assertEqual(response.data['count'], 1)
        response = self.seller_client.get('/api/v1/admin/rto/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
