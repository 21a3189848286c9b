"""
Test suite for the logistics module
Tests: partner quotes, transport booking, pickup progress and delivery confirmation
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.logistics import services
from backend.logistics.models import LogisticsPartner
from backend.notifications.models import Notification


class LowRandom:
    """Stands in for the random module with the lowest possible draws"""

    def random(self):
        return 0.0

    def randrange(self, stop):
        return 0

    def choice(self, seq):
        return seq[0]


def create_partner(**kwargs):
    fields = {
        'partner_name': 'Highway Carriers',
        'base_rate_per_km': Decimal('20'),
        'minimum_charge': Decimal('5000'),
        'average_delivery_days': 3,
    }
    fields.update(kwargs)
    return LogisticsPartner.objects.create(**fields)


class QuoteTests(TestCase):

    def setUp(self):
        self.mumbai = TestDataFactory.create_dealer(city='Mumbai', state='Maharashtra')
        self.pune = TestDataFactory.create_dealer(city='Pune', state='Maharashtra')
        self.bengaluru = TestDataFactory.create_dealer(city='Bengaluru', state='Karnataka')

    def test_simulated_distance_bands(self):
        rng = LowRandom()
        self.assertEqual(services.simulate_distance(self.mumbai, self.mumbai, rng), 15)
        self.assertEqual(services.simulate_distance(self.mumbai, self.pune, rng), 150)
        self.assertEqual(services.simulate_distance(self.mumbai, self.bengaluru, rng), 400)

    def test_minimum_charge_applies(self):
        quote = services.quote_partner(create_partner(), 15, Decimal('500000'), False)
        self.assertEqual(quote['total_cost'], 5000)
        self.assertEqual(quote['base_cost'], 300)
        self.assertEqual(quote['delivery_time'], '3 days (Standard)')

    def test_half_rupee_rounds_up(self):
        partner = create_partner(base_rate_per_km=Decimal('25.01'), minimum_charge=Decimal('0'))
        quote = services.quote_partner(partner, 50, Decimal('500000'), False)
        self.assertEqual(quote['base_cost'], 1251)
        self.assertEqual(quote['total_cost'], 1251)

    def test_interstate_and_luxury_multipliers(self):
        partner = create_partner(pricing_multipliers={'interstate': 2})
        quote = services.quote_partner(partner, 400, Decimal('500000'), True)
        self.assertEqual(quote['total_cost'], 16000)
        self.assertEqual(quote['estimated_days'], 4)

        quote = services.quote_partner(partner, 400, Decimal('2500000'), False)
        self.assertEqual(quote['total_cost'], 10400)

    def test_insurance_added(self):
        partner = create_partner(insurance_included=True, insurance_rate_percent=Decimal('1'))
        quote = services.quote_partner(partner, 400, Decimal('500000'), False)
        self.assertEqual(quote['insurance_cost'], 5000)
        self.assertEqual(quote['total_cost'], 13000)
        self.assertIn('Insurance Included', quote['features'])

    def test_default_partners_without_configuration(self):
        result = services.get_quotes(self.mumbai, self.pune, Decimal('500000'))
        self.assertIsNone(result['distance_km'])
        self.assertEqual(result['quotes'][0]['partner_id'], 'swift_transport')
        self.assertEqual(len(result['quotes']), 3)

    def test_service_areas_filter_partners(self):
        create_partner(partner_name='Maharashtra Only', service_areas=['Maharashtra'])
        create_partner(partner_name='National', base_rate_per_km=Decimal('30'))
        result = services.get_quotes(self.mumbai, self.bengaluru, Decimal('500000'), rng=LowRandom())
        self.assertEqual([q['partner_name'] for q in result['quotes']], ['National'])
        self.assertTrue(result['is_interstate'])
        self.assertEqual(result['distance_km'], 400)

    def test_quotes_sorted_cheapest_first(self):
        create_partner(partner_name='Premium', base_rate_per_km=Decimal('50'))
        create_partner(partner_name='Budget', base_rate_per_km=Decimal('25'))
        result = services.get_quotes(self.mumbai, self.pune, Decimal('500000'), rng=LowRandom())
        self.assertEqual(result['quotes'][0]['partner_name'], 'Budget')

    def test_delivery_time_text(self):
        self.assertEqual(services.delivery_time_text(1), '1 day (Express)')
        self.assertEqual(services.delivery_time_text(6), '6 days (Economy)')

    def test_booking_id_format(self):
        booking_id = services.generate_booking_id(LowRandom())
        self.assertTrue(booking_id.startswith('TRK'))
        self.assertTrue(booking_id.endswith('AAAAA'))


class PartnerAdminTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.partner = create_partner()
        create_partner(partner_name='Retired Movers', is_active=False)

    def test_dealers_see_active_partners(self):
        self.client.authenticate_user(TestDataFactory.create_dealer().owner)
        response = self.client.get('/api/v1/logistics/partners/')
        self.assertEqual([p['partner_name'] for p in response.data], ['Highway Carriers'])

    def test_admin_adds_partner(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.post('/api/v1/logistics/partners/', {
            'partner_name': 'Coastal Auto Transport',
            'base_rate_per_km': '18.50',
            'pricing_multipliers': {'interstate': 1.4},
            'service_areas': ['Goa', 'Karnataka'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(self.client.get('/api/v1/logistics/partners/').data), 3)

    def test_invalid_multiplier(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.post('/api/v1/logistics/partners/', {
            'partner_name': 'Broken', 'base_rate_per_km': '10', 'pricing_multipliers': {'interstate': -1},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_dealer_cannot_add_partner(self):
        self.client.authenticate_user(TestDataFactory.create_dealer().owner)
        response = self.client.post('/api/v1/logistics/partners/', {'partner_name': 'X', 'base_rate_per_km': '10'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_deactivates(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.delete(f'/api/v1/logistics/partners/{self.partner.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.partner.refresh_from_db()
        self.assertFalse(self.partner.is_active)


class TransportFlowTests(TestCase):

    def setUp(self):
        TestDataFactory.clear_cache()
        self.seller = TestDataFactory.create_dealer(city='Pune', address='4 FC Road, Pune')
        self.buyer = TestDataFactory.create_dealer(address='9 Link Road, Mumbai')
        self.vehicle = TestDataFactory.create_vehicle(self.seller, status='in_transaction')
        self.deal = TestDataFactory.create_transaction(self.vehicle, self.buyer, status='accepted')
        self.seller_client = AuthenticatedAPIClient().authenticate_user(self.seller.owner)
        self.buyer_client = AuthenticatedAPIClient().authenticate_user(self.buyer.owner)
        self.tomorrow = timezone.localdate() + timedelta(days=1)

    def _book(self, partner='swift_transport', pickup_date=None, client=None):
        client = client or self.buyer_client
        return client.post(f'/api/v1/deals/{self.deal.id}/transport/book/', {
            'partner': partner, 'pickup_date': str(pickup_date or self.tomorrow),
        }, format='json')

    def _pay(self):
        self.deal.status = 'in_escrow'
        self.deal.escrow_status = 'paid'
        self.deal.save()

    def test_estimate_endpoint(self):
        response = self.buyer_client.get(f'/api/v1/logistics/estimate/?vehicle_id={self.vehicle.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Decimal('7000') <= response.data['estimated_cost'] < Decimal('12000'))

    def test_quotes_for_party_only(self):
        response = self.buyer_client.get(f'/api/v1/deals/{self.deal.id}/transport/quotes/')
        self.assertEqual(len(response.data['quotes']), 3)
        outsider = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_dealer().owner)
        response = outsider.get(f'/api/v1/deals/{self.deal.id}/transport/quotes/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_book_default_partner(self):
        response = self._book()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['transport_status'], 'pending')
        self.assertEqual(response.data['transport_cost'], '7200.00')
        self.assertEqual(response.data['pickup_address'], '4 FC Road, Pune')
        self.assertEqual(response.data['delivery_address'], '9 Link Road, Mumbai')
        self.assertEqual(response.data['estimated_delivery_date'], str(self.tomorrow + timedelta(days=4)))
        self.assertTrue(response.data['transport_booking_id'].startswith('TRK'))
        self.assertTrue(Notification.objects.filter(user=self.seller.owner, type='logistics').exists())

    def test_book_configured_partner(self):
        partner = create_partner()
        response = self._book(partner=str(partner.id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['logistics_partner'], str(partner.id))

    def test_book_unknown_partner(self):
        response = self._book(partner='teleporter')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_book_past_date(self):
        response = self._book(pickup_date=timezone.localdate() - timedelta(days=1))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_book_twice(self):
        self._book()
        response = self._book()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_book_before_acceptance(self):
        self.deal.status = 'negotiating'
        self.deal.save()
        response = self._book()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_pickup_requires_escrow(self):
        self._book()
        response = self.seller_client.post(f'/api/v1/deals/{self.deal.id}/transport/status/',
                                           {'status': 'picked_up'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_buyer_cannot_report_pickup(self):
        self._book()
        self._pay()
        response = self.buyer_client.post(f'/api/v1/deals/{self.deal.id}/transport/status/',
                                          {'status': 'picked_up'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_full_transport_flow(self):
        self._book()
        self._pay()

        response = self.seller_client.post(f'/api/v1/deals/{self.deal.id}/transport/status/',
                                           {'status': 'picked_up'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'in_transit')
        self.assertEqual(response.data['transport_status'], 'picked_up')
        self.assertIsNotNone(response.data['picked_up_at'])

        response = self.seller_client.post(f'/api/v1/deals/{self.deal.id}/transport/status/',
                                           {'status': 'picked_up'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.seller_client.post(f'/api/v1/deals/{self.deal.id}/transport/confirm-delivery/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.buyer_client.post(f'/api/v1/deals/{self.deal.id}/transport/confirm-delivery/',
                                          {'handover_code': 'WRONG'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.deal.refresh_from_db()
        response = self.buyer_client.post(f'/api/v1/deals/{self.deal.id}/transport/confirm-delivery/',
                                          {'handover_code': self.deal.handover_code().lower()}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['transport_status'], 'delivered')
        self.assertIsNotNone(response.data['delivery_confirmed_at'])

        response = self.buyer_client.post(f'/api/v1/deals/{self.deal.id}/release-funds/')
        self.assertEqual(response.data['status'], 'completed')

    def test_admin_updates_on_partner_behalf(self):
        partner = create_partner()
        self._book(partner=str(partner.id))
        self._pay()
        admin_client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = admin_client.post(f'/api/v1/deals/{self.deal.id}/transport/status/',
                                     {'status': 'in_transit'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['transport_status'], 'in_transit')

        self.buyer_client.post(f'/api/v1/deals/{self.deal.id}/transport/confirm-delivery/')
        partner.refresh_from_db()
        self.assertEqual(partner.total_deliveries, 1)

    def test_confirm_before_pickup(self):
        self._book()
        response = self.buyer_client.post(f'/api/v1/deals/{self.deal.id}/transport/confirm-delivery/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
