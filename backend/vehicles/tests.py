"""
Test suite for the vehicles module
Tests: inventory CRUD, listing lifecycle, marketplace search, views counter, price suggestion
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.vehicles.models import Vehicle

VEHICLE_DATA = {
    'make': 'Hyundai',
    'model': 'Creta',
    'variant': 'SX',
    'year': 2021,
    'price': '1250000',
    'cost_price': '1100000',
    'fuel_type': 'diesel',
    'transmission': 'automatic',
    'kilometers': 32000,
    'vin': 'ma3ewde1s00123456',
    'image_urls': ['https://images.test/creta-front.jpg'],
}


class VehicleModelTests(TestCase):

    def setUp(self):
        self.dealer = TestDataFactory.create_dealer()

    def test_display_name(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer, make='Honda', model='City', year=2019)
        self.assertEqual(str(vehicle), '2019 Honda City')

    def test_days_in_stock(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer, date_listed=timezone.now() - timedelta(days=10))
        self.assertEqual(vehicle.days_in_stock, 10)
        vehicle.date_sold = vehicle.date_listed + timedelta(days=4)
        self.assertEqual(vehicle.days_in_stock, 4)

    def test_profit_margin(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer, cost_price=Decimal('400000'))
        self.assertIsNone(vehicle.profit_margin)
        vehicle.final_sale_price = Decimal('500000')
        self.assertEqual(vehicle.profit_margin, Decimal('0.25'))

    def test_score_inspection(self):
        self.assertEqual(Vehicle.score_inspection({}), 0)
        checklist = {'body_condition': True, 'engine_condition': True, 'interior_condition': True,
                     'electrical_systems': False, 'tires_condition': True, 'brakes_condition': True}
        self.assertEqual(Vehicle.score_inspection(checklist), 83)


class VehicleInventoryTests(TestCase):

    def setUp(self):
        TestDataFactory.clear_cache()
        self.dealer = TestDataFactory.create_dealer()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.dealer.owner)

    def test_create_vehicle_defaults_to_draft(self):
        response = self.client.post('/api/v1/vehicles/', VEHICLE_DATA, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'draft')
        self.assertIsNone(response.data['date_listed'])
        self.assertEqual(response.data['vin'], 'MA3EWDE1S00123456')
        self.assertEqual(response.data['dealer']['id'], self.dealer.id)

    def test_create_live_vehicle_sets_listing_date(self):
        response = self.client.post('/api/v1/vehicles/', {**VEHICLE_DATA, 'status': 'live'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNotNone(response.data['date_listed'])

    def test_create_vehicle_validation(self):
        response = self.client.post('/api/v1/vehicles/', {**VEHICLE_DATA, 'price': '5000', 'year': 1985},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price', response.data)
        self.assertIn('year', response.data)

    def test_cannot_create_in_transaction(self):
        response = self.client.post('/api/v1/vehicles/', {**VEHICLE_DATA, 'status': 'sold'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data)

    def test_invalid_image_urls(self):
        response = self.client.post('/api/v1/vehicles/', {**VEHICLE_DATA, 'image_urls': ['not-a-url']},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inspection_checklist_scores(self):
        response = self.client.post('/api/v1/vehicles/', {
            **VEHICLE_DATA, 'inspection_checklist': {'body_condition': True, 'engine_condition': True,
                                                     'interior_condition': True},
        }, format='json')
        self.assertEqual(response.data['inspection_score'], 50)

    def test_list_only_own_inventory(self):
        TestDataFactory.create_vehicle(self.dealer)
        TestDataFactory.create_vehicle(self.dealer, status='draft')
        TestDataFactory.create_vehicle(TestDataFactory.create_dealer())
        response = self.client.get('/api/v1/vehicles/')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/vehicles/?status=draft')
        self.assertEqual(response.data['count'], 1)

    def test_publish_draft(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer, status='draft')
        response = self.client.post(f'/api/v1/vehicles/{vehicle.id}/publish/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'live')
        self.assertIsNotNone(response.data['date_listed'])

        response = self.client.post(f'/api/v1/vehicles/{vehicle.id}/publish/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_vehicle(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer)
        response = self.client.patch(f'/api/v1/vehicles/{vehicle.id}/', {'price': '480000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        vehicle.refresh_from_db()
        self.assertEqual(vehicle.price, Decimal('480000'))

    def test_empty_update(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer)
        response = self.client.patch(f'/api/v1/vehicles/{vehicle.id}/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sold_vehicle_cannot_be_edited(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer, status='sold')
        response = self.client.patch(f'/api/v1/vehicles/{vehicle.id}/', {'price': '480000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_in_transaction_status_is_locked(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer, status='in_transaction')
        response = self.client.patch(f'/api/v1/vehicles/{vehicle.id}/', {'status': 'live'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_dealer_cannot_modify(self):
        vehicle = TestDataFactory.create_vehicle(TestDataFactory.create_dealer())
        response = self.client.patch(f'/api/v1/vehicles/{vehicle.id}/', {'price': '480000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_dealer_sees_card_without_cost(self):
        vehicle = TestDataFactory.create_vehicle(TestDataFactory.create_dealer(), cost_price=Decimal('300000'))
        response = self.client.get(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('cost_price', response.data)

    def test_other_dealers_draft_is_hidden(self):
        vehicle = TestDataFactory.create_vehicle(TestDataFactory.create_dealer(), status='draft')
        response = self.client.get(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_vehicle(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer)
        response = self.client.delete(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Vehicle.objects.filter(pk=vehicle.pk).exists())

    def test_delete_vehicle_in_transaction(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer, status='in_transaction')
        response = self.client.delete(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_vehicle_with_deal_history(self):
        vehicle = TestDataFactory.create_vehicle(self.dealer)
        TestDataFactory.create_transaction(vehicle, TestDataFactory.create_dealer(), status='cancelled')
        response = self.client.delete(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Vehicle.objects.filter(pk=vehicle.pk).exists())

    def test_requires_dealer_profile(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/vehicles/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MarketplaceTests(TestCase):

    def setUp(self):
        TestDataFactory.clear_cache()
        self.dealer = TestDataFactory.create_dealer()
        self.seller = TestDataFactory.create_dealer(city='Pune')
        self.delhi_seller = TestDataFactory.create_dealer(city='New Delhi', state='Delhi')
        self.swift = TestDataFactory.create_vehicle(self.seller, make='Maruti', model='Swift', year=2019,
                                                    price=450000, fuel_type='petrol', kilometers=40000)
        self.creta = TestDataFactory.create_vehicle(self.delhi_seller, make='Hyundai', model='Creta', year=2022,
                                                    price=1400000, fuel_type='diesel', kilometers=15000)
        self.nexon = TestDataFactory.create_vehicle(self.seller, make='Tata', model='Nexon', year=2021,
                                                    price=900000, fuel_type='electric', transmission='automatic',
                                                    kilometers=20000)
        TestDataFactory.create_vehicle(self.seller, status='draft', make='Kia', model='Seltos')
        TestDataFactory.create_vehicle(self.dealer, make='Maruti', model='Baleno')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.dealer.owner)

    def _ids(self, response):
        return [vehicle['id'] for vehicle in response.data['results']]

    def test_excludes_own_and_draft_listings(self):
        response = self.client.get('/api/v1/marketplace/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(sorted(self._ids(response)), sorted([self.swift.id, self.creta.id, self.nexon.id]))

    def test_search_words(self):
        response = self.client.get('/api/v1/marketplace/?q=hyundai 2022')
        self.assertEqual(self._ids(response), [self.creta.id])
        response = self.client.get('/api/v1/marketplace/?q=swift 2022')
        self.assertEqual(self._ids(response), [])

    def test_price_and_year_filters(self):
        response = self.client.get('/api/v1/marketplace/?min_price=500000&max_price=1000000')
        self.assertEqual(self._ids(response), [self.nexon.id])
        response = self.client.get('/api/v1/marketplace/?min_year=2021')
        self.assertEqual(sorted(self._ids(response)), sorted([self.creta.id, self.nexon.id]))

    def test_multi_value_filters(self):
        response = self.client.get('/api/v1/marketplace/?fuel_types=petrol,diesel')
        self.assertEqual(sorted(self._ids(response)), sorted([self.swift.id, self.creta.id]))
        response = self.client.get('/api/v1/marketplace/?makes=tata,maruti')
        self.assertEqual(sorted(self._ids(response)), sorted([self.swift.id, self.nexon.id]))
        response = self.client.get('/api/v1/marketplace/?transmissions=automatic')
        self.assertEqual(self._ids(response), [self.nexon.id])

    def test_location_filters(self):
        response = self.client.get('/api/v1/marketplace/?state=delhi')
        self.assertEqual(self._ids(response), [self.creta.id])
        response = self.client.get('/api/v1/marketplace/?city=pune')
        self.assertEqual(sorted(self._ids(response)), sorted([self.swift.id, self.nexon.id]))

    def test_sorting(self):
        response = self.client.get('/api/v1/marketplace/?sort_by=price_low')
        self.assertEqual(self._ids(response), [self.swift.id, self.nexon.id, self.creta.id])
        response = self.client.get('/api/v1/marketplace/?sort_by=km_low')
        self.assertEqual(self._ids(response), [self.creta.id, self.nexon.id, self.swift.id])

    def test_listing_cache_invalidated_on_change(self):
        response = self.client.get('/api/v1/marketplace/')
        self.assertEqual(response.data['count'], 3)
        self.swift.status = 'sold'
        self.swift.save()
        response = self.client.get('/api/v1/marketplace/')
        self.assertEqual(response.data['count'], 2)

    def test_record_view(self):
        response = self.client.post(f'/api/v1/vehicles/{self.swift.id}/view/')
        self.assertEqual(response.data['views'], 1)

    def test_own_view_not_counted(self):
        own = Vehicle.objects.get(dealer=self.dealer)
        response = self.client.post(f'/api/v1/vehicles/{own.id}/view/')
        self.assertEqual(response.data['views'], 0)

    def test_vehicle_transactions_scoped_to_party(self):
        TestDataFactory.create_transaction(self.swift, self.dealer)
        TestDataFactory.create_transaction(self.swift, self.delhi_seller, status='cancelled')
        response = self.client.get(f'/api/v1/vehicles/{self.swift.id}/transactions/')
        self.assertEqual(len(response.data), 1)

        self.client.authenticate_user(self.seller.owner)
        response = self.client.get(f'/api/v1/vehicles/{self.swift.id}/transactions/')
        self.assertEqual(len(response.data), 2)


@override_settings(LLM_API_URL='')
class PriceSuggestionTests(TestCase):

    def setUp(self):
        self.dealer = TestDataFactory.create_dealer()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.dealer.owner)

    def test_median_of_comparables(self):
        other = TestDataFactory.create_dealer()
        for price in (400000, 500000, 650000):
            TestDataFactory.create_vehicle(other, make='Maruti', model='Swift', year=2020, price=price)
        TestDataFactory.create_vehicle(other, make='Maruti', model='Swift', year=2015, price=200000)

        response = self.client.post('/api/v1/vehicles/price-suggestion/',
                                    {'make': 'maruti', 'model': 'swift', 'year': 2021}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['suggested_price'], 500000)
        self.assertEqual(response.data['price_range_min'], 460000)
        self.assertEqual(response.data['price_range_max'], 540000)
        self.assertIn('Median of 3', response.data['justification'])

    def test_depreciation_estimate_without_comparables(self):
        year = timezone.now().year
        response = self.client.post('/api/v1/vehicles/price-suggestion/',
                                    {'make': 'Skoda', 'model': 'Slavia', 'year': year, 'kilometers': 10000},
                                    format='json')
        self.assertEqual(response.data['suggested_price'], 785000)
        self.assertIn('10,000 km', response.data['justification'])

    def test_estimate_has_floor(self):
        response = self.client.post('/api/v1/vehicles/price-suggestion/',
                                    {'make': 'Hindustan', 'model': 'Ambassador', 'year': 1990}, format='json')
        self.assertEqual(response.data['suggested_price'], 50000)

    @override_settings(LLM_API_URL='https://llm.test/invoke')
    def test_generated_values_override_estimate(self):
        with patch('backend.marketing.content_service.requests.post') as mock_post:
            mock_post.return_value.json.return_value = {
                'suggested_price': 610000, 'justification': 'Strong demand in western India',
            }
            mock_post.return_value.raise_for_status.return_value = None
            response = self.client.post('/api/v1/vehicles/price-suggestion/',
                                        {'make': 'Maruti', 'model': 'Swift', 'year': 2020}, format='json')
        self.assertEqual(response.data['suggested_price'], 610000)
        self.assertEqual(response.data['justification'], 'Strong demand in western India')
        self.assertIn('price_range_min', response.data)

    def test_missing_fields(self):
        response = self.client.post('/api/v1/vehicles/price-suggestion/', {'make': 'Maruti'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
