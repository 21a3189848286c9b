"""
Test suite for the deals module
Tests: margin brackets, logistics estimate, status machine, negotiation, escrow release,
ratings, archiving, Customer Mode and the private PIN
"""
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from rest_framework import status

from backend.core.models import SystemLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.dealers.models import Dealer
from backend.deals import services
from backend.deals.models import Transaction, DealMessage
from backend.deals.pricing import (
    calculate_customer_pricing, compute_margins, estimate_logistics_cost, get_dynamic_margins
)
from backend.deals.state import DealError, DealPermissionError, InvalidTransition, can_transition, transition
from backend.notifications.models import Notification
from backend.vehicles.models import Vehicle


class FixedRandom:
    """randrange always returns the lowest value"""

    def randrange(self, stop):
        return 0


class MarginBracketTests(TestCase):

    def setUp(self):
        TestDataFactory.clear_cache()

    def test_budget_bracket(self):
        margins = compute_margins(250000)
        self.assertEqual(margins['price_category'], 'Budget')
        self.assertEqual(margins['desired_amount'], Decimal('37500'))
        self.assertEqual(margins['minimum_amount'], Decimal('25000'))

    def test_bracket_upper_bound_is_inclusive(self):
        self.assertEqual(compute_margins(300000)['price_category'], 'Budget')
        self.assertEqual(compute_margins(300001)['price_category'], 'Mid-Range')
        self.assertEqual(compute_margins(800000)['price_category'], 'Mid-Range')

    def test_premium_bracket(self):
        margins = compute_margins(1500000)
        self.assertEqual(margins['price_category'], 'Premium')
        self.assertEqual(margins['desired_percent'], Decimal('10'))
        self.assertEqual(margins['minimum_amount'], Decimal('90000'))

    def test_non_numeric_price_is_zero(self):
        margins = compute_margins('abc')
        self.assertEqual(margins['price_category'], 'Budget')
        self.assertEqual(margins['desired_amount'], Decimal('0'))

    def test_configured_brackets(self):
        TestDataFactory.set_config('margin_brackets', '[{"max_price": null, "desired_percent": 20, '
                                   '"minimum_percent": 5, "category": "Flat"}]', data_type='json')
        margins = get_dynamic_margins(500000)
        self.assertEqual(margins['price_category'], 'Flat')
        self.assertEqual(margins['desired_amount'], Decimal('100000'))

    def test_broken_config_falls_back(self):
        TestDataFactory.set_config('margin_brackets', '[{"max_price": null}]', data_type='json')
        self.assertEqual(get_dynamic_margins(500000)['price_category'], 'Mid-Range')


class CustomerPricingTests(TestCase):

    def test_showroom_and_floor(self):
        pricing = calculate_customer_pricing(500000, 8000, 13000, 12, 8)
        self.assertEqual(pricing['landed_cost'], Decimal('521000'))
        self.assertEqual(pricing['desired_margin_amount'], Decimal('60000'))
        self.assertEqual(pricing['minimum_margin_amount'], Decimal('40000'))
        self.assertEqual(pricing['showroom_price'], Decimal('581000'))
        self.assertEqual(pricing['final_floor_price'], Decimal('561000'))

    def test_rounds_half_up(self):
        pricing = calculate_customer_pricing(333335, 0, 0, 15, 10)
        self.assertEqual(pricing['desired_margin_amount'], Decimal('50000'))
        self.assertEqual(pricing['minimum_margin_amount'], Decimal('33334'))

    def test_minimum_above_desired(self):
        with self.assertRaises(ValueError):
            calculate_customer_pricing(500000, 8000, 13000, 8, 12)

    def test_negative_percent(self):
        with self.assertRaises(ValueError):
            calculate_customer_pricing(500000, 8000, 13000, 10, -1)


class LogisticsEstimateTests(TestCase):

    def setUp(self):
        TestDataFactory.clear_cache()
        self.mumbai = TestDataFactory.create_dealer(city='Mumbai', state='Maharashtra')

    def test_same_city(self):
        other = TestDataFactory.create_dealer(city='mumbai ', state='Maharashtra')
        self.assertEqual(estimate_logistics_cost(self.mumbai, other, rng=FixedRandom()), Decimal('3000'))

    def test_intercity(self):
        other = TestDataFactory.create_dealer(city='Pune', state='Maharashtra')
        self.assertEqual(estimate_logistics_cost(self.mumbai, other, rng=FixedRandom()), Decimal('7000'))

    def test_interstate(self):
        other = TestDataFactory.create_dealer(city='Bengaluru', state='Karnataka')
        self.assertEqual(estimate_logistics_cost(self.mumbai, other, rng=FixedRandom()), Decimal('12000'))

    def test_interstate_range(self):
        other = TestDataFactory.create_dealer(city='Bengaluru', state='Karnataka')
        for _ in range(20):
            cost = estimate_logistics_cost(self.mumbai, other)
            self.assertTrue(Decimal('12000') <= cost < Decimal('20000'))

    def test_unknown_dealer_uses_default(self):
        self.assertEqual(estimate_logistics_cost(self.mumbai, None), Decimal('8000'))

    def test_blank_locations_never_match(self):
        no_state = TestDataFactory.create_dealer(state='')
        self.assertEqual(estimate_logistics_cost(self.mumbai, no_state, rng=FixedRandom()), Decimal('12000'))

        first = TestDataFactory.create_dealer(city='', state='Maharashtra')
        second = TestDataFactory.create_dealer(city='', state='Maharashtra')
        self.assertEqual(estimate_logistics_cost(first, second, rng=FixedRandom()), Decimal('7000'))


class DealStateTests(TestCase):

    def test_allowed_transitions(self):
        self.assertTrue(can_transition('offer_made', 'negotiating'))
        self.assertTrue(can_transition('negotiating', 'negotiating'))
        self.assertTrue(can_transition('accepted', 'in_escrow'))
        self.assertTrue(can_transition('in_escrow', 'completed'))
        self.assertTrue(can_transition('pending_customer_view', 'offer_made'))

    def test_terminal_statuses(self):
        for target in ('offer_made', 'negotiating', 'accepted', 'cancelled'):
            self.assertFalse(can_transition('completed', target))
            self.assertFalse(can_transition('cancelled', target))

    def test_no_cancel_after_escrow(self):
        self.assertFalse(can_transition('in_escrow', 'cancelled'))
        self.assertFalse(can_transition('in_transit', 'cancelled'))

    def test_transition_raises_conflict(self):
        deal = Transaction(status='offer_made')
        with self.assertRaises(InvalidTransition) as ctx:
            transition(deal, 'completed')
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(deal.status, 'offer_made')

    def test_error_status_codes(self):
        self.assertEqual(DealError('x').status_code, 400)
        self.assertEqual(DealError('x', status_code=404).status_code, 404)
        self.assertEqual(DealPermissionError('x').status_code, 403)


class DealTestMixin:

    def setUp(self):
        TestDataFactory.clear_cache()
        self.seller = TestDataFactory.create_dealer(business_name='Seller Motors', city='Pune')
        self.buyer = TestDataFactory.create_dealer(business_name='Buyer Cars', pin='1234')
        self.vehicle = TestDataFactory.create_vehicle(self.seller, price=500000, vin='MA3EWDE1S00129876')
        self.seller_client = AuthenticatedAPIClient().authenticate_user(self.seller.owner)
        self.buyer_client = AuthenticatedAPIClient().authenticate_user(self.buyer.owner)


class NegotiationTests(DealTestMixin, TestCase):

    def _offer(self, amount='450000', **extra):
        return self.buyer_client.post('/api/v1/deals/', {'vehicle_id': self.vehicle.id, 'offer_amount': amount,
                                                         **extra}, format='json')

    def test_make_offer(self):
        response = self._offer(message='Can pick up this week')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'offer_made')
        self.assertEqual(response.data['my_role'], 'buyer')
        self.assertTrue(response.data['advice']['is_valid'])
        self.assertEqual(response.data['messages'][0]['message'], 'Can pick up this week')

        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, 'in_transaction')
        self.assertEqual(self.vehicle.inquiries, 1)
        notification = Notification.objects.get(user=self.seller.owner)
        self.assertEqual(notification.type, 'offer')
        self.assertTrue(notification.action_required)
        self.assertTrue(SystemLog.objects.filter(action_type='offer_made').exists())

    def test_low_offer_returns_advice(self):
        response = self._offer('300000')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('may be rejected', response.data['advice']['warning'])

    def test_zero_offer(self):
        response = self._offer('0')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Transaction.objects.exists())

    def test_offer_on_own_vehicle(self):
        response = self.seller_client.post('/api/v1/deals/', {'vehicle_id': self.vehicle.id,
                                                              'offer_amount': '450000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_offer_on_reserved_vehicle(self):
        self._offer()
        other = TestDataFactory.create_dealer()
        client = AuthenticatedAPIClient().authenticate_user(other.owner)
        response = client.post('/api/v1/deals/', {'vehicle_id': self.vehicle.id, 'offer_amount': '480000'},
                               format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_unverified_dealer_cannot_offer(self):
        dealer = TestDataFactory.create_dealer(verified=False)
        client = AuthenticatedAPIClient().authenticate_user(dealer.owner)
        response = client.post('/api/v1/deals/', {'vehicle_id': self.vehicle.id, 'offer_amount': '450000'},
                               format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_offer_check(self):
        response = self.buyer_client.post('/api/v1/deals/offer-check/',
                                          {'vehicle_id': self.vehicle.id, 'offer_amount': '600000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('above asking price', response.data['warning'])

    def test_counter_and_accept(self):
        deal_id = self._offer().data['id']

        response = self.buyer_client.post(f'/api/v1/deals/{deal_id}/counter/', {'amount': '460000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.seller_client.post(f'/api/v1/deals/{deal_id}/counter/', {'amount': '480000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'negotiating')
        self.assertEqual(response.data['offer_amount'], '480000.00')

        response = self.seller_client.post(f'/api/v1/deals/{deal_id}/accept/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.buyer_client.post(f'/api/v1/deals/{deal_id}/accept/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'accepted')
        self.assertEqual(response.data['final_amount'], '480000.00')
        self.assertIsNotNone(response.data['accepted_at'])

        types = list(DealMessage.objects.filter(transaction_id=deal_id).values_list('message_type', flat=True))
        self.assertEqual(types, ['offer', 'counter_offer', 'system'])
        self.assertEqual(SystemLog.objects.filter(action_type='deal_status_change').count(), 2)

    def test_awaiting_my_response(self):
        deal_id = self._offer().data['id']
        response = self.seller_client.get(f'/api/v1/deals/{deal_id}/')
        self.assertTrue(response.data['awaiting_my_response'])
        response = self.buyer_client.get(f'/api/v1/deals/{deal_id}/')
        self.assertFalse(response.data['awaiting_my_response'])

    def test_cannot_accept_twice(self):
        deal_id = self._offer().data['id']
        self.seller_client.post(f'/api/v1/deals/{deal_id}/accept/')
        response = self.seller_client.post(f'/api/v1/deals/{deal_id}/accept/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_reject_releases_vehicle(self):
        deal_id = self._offer().data['id']
        response = self.seller_client.post(f'/api/v1/deals/{deal_id}/reject/', {'reason': 'Too low'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertEqual(response.data['cancellation_reason'], 'Too low')
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, 'live')
        self.assertTrue(Notification.objects.filter(user=self.buyer.owner, title='Offer rejected').exists())

    def test_buyer_cannot_reject_own_offer(self):
        deal_id = self._offer().data['id']
        response = self.buyer_client.post(f'/api/v1/deals/{deal_id}/reject/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_cancel_accepted_deal(self):
        deal_id = self._offer().data['id']
        self.seller_client.post(f'/api/v1/deals/{deal_id}/accept/')
        response = self.buyer_client.post(f'/api/v1/deals/{deal_id}/cancel/', {'reason': 'Changed mind'},
                                          format='json')
        self.assertEqual(response.data['status'], 'cancelled')
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, 'live')

        response = self.buyer_client.post(f'/api/v1/deals/{deal_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_cannot_cancel_with_funds_in_escrow(self):
        deal = TestDataFactory.create_transaction(self.vehicle, self.buyer, status='in_escrow', escrow_status='paid')
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_non_party_gets_404(self):
        deal_id = self._offer().data['id']
        outsider = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_dealer().owner)
        self.assertEqual(outsider.get(f'/api/v1/deals/{deal_id}/').status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(outsider.post(f'/api/v1/deals/{deal_id}/accept/').status_code, status.HTTP_404_NOT_FOUND)

    def test_messages(self):
        deal_id = self._offer().data['id']
        response = self.seller_client.post(f'/api/v1/deals/{deal_id}/messages/',
                                           {'message': 'Service records are available'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sender_name'], 'Seller Motors')

        response = self.buyer_client.get(f'/api/v1/deals/{deal_id}/messages/')
        self.assertEqual(len(response.data), 2)

        response = self.seller_client.post(f'/api/v1/deals/{deal_id}/messages/', {'message': '<b></b>'},
                                           format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_by_role_and_status(self):
        self._offer()
        other_vehicle = TestDataFactory.create_vehicle(self.buyer)
        TestDataFactory.create_transaction(other_vehicle, self.seller, status='cancelled')

        response = self.buyer_client.get('/api/v1/deals/?role=buying')
        self.assertEqual(response.data['count'], 1)
        response = self.buyer_client.get('/api/v1/deals/?role=selling')
        self.assertEqual(response.data['count'], 1)
        response = self.buyer_client.get('/api/v1/deals/?status=offer_made,negotiating')
        self.assertEqual(response.data['count'], 1)
        response = self.buyer_client.get('/api/v1/deals/')
        self.assertEqual(response.data['count'], 2)


class FulfilmentTests(DealTestMixin, TestCase):

    def _paid_deal(self, **kwargs):
        fields = {'status': 'in_transit', 'escrow_status': 'paid', 'transport_status': 'delivered'}
        fields.update(kwargs)
        self.vehicle.status = 'in_transaction'
        self.vehicle.save()
        return TestDataFactory.create_transaction(self.vehicle, self.buyer, offer_amount=480000, **fields)

    def test_release_funds_completes_deal(self):
        deal = self._paid_deal()
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/release-funds/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['escrow_status'], 'released')

        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, 'sold')
        self.assertEqual(self.vehicle.final_sale_price, Decimal('480000'))
        self.assertIsNotNone(self.vehicle.date_sold)

        self.seller.refresh_from_db()
        self.buyer.refresh_from_db()
        self.assertEqual(self.seller.completed_deals, 1)
        self.assertEqual(self.seller.total_sales_value, Decimal('480000'))
        self.assertEqual(self.buyer.completed_deals, 1)
        self.assertTrue(SystemLog.objects.filter(action_type='payment', module='deals').exists())

    def test_only_buyer_releases(self):
        deal = self._paid_deal()
        response = self.seller_client.post(f'/api/v1/deals/{deal.id}/release-funds/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_release_requires_delivery(self):
        deal = self._paid_deal(transport_status='in_transit')
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/release-funds/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_release_requires_escrow(self):
        deal = self._paid_deal(status='accepted', escrow_status='none')
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/release-funds/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_handover_code_visible_once_booked(self):
        deal = self._paid_deal()
        response = self.buyer_client.get(f'/api/v1/deals/{deal.id}/')
        self.assertEqual(response.data['handover_code'], f'{deal.id:06d}9876')

    def test_rating_after_completion(self):
        deal = self._paid_deal(status='completed', escrow_status='released')
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/rate/', {'rating': 5, 'review': 'Smooth'},
                                          format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['seller_rating']['rating'], 5)
        self.seller.refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('5.00'))
        self.assertEqual(self.seller.rating_count, 1)

        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/rate/', {'rating': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.seller_client.post(f'/api/v1/deals/{deal.id}/rate/', {'rating': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Dealer.objects.get(pk=self.buyer.pk).rating, Decimal('3.00'))

    def test_rating_before_completion(self):
        deal = self._paid_deal()
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/rate/', {'rating': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_rating_out_of_range(self):
        deal = self._paid_deal(status='completed', escrow_status='released')
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/rate/', {'rating': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_archive(self):
        deal = self._paid_deal(status='completed', escrow_status='released')
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/archive/', {'archived': True}, format='json')
        self.assertTrue(response.data['deal_archived'])

        self.assertEqual(self.buyer_client.get('/api/v1/deals/').data['count'], 0)
        self.assertEqual(self.buyer_client.get('/api/v1/deals/?archived=true').data['count'], 1)

    def test_archive_open_deal(self):
        deal = self._paid_deal()
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/archive/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class CustomerModeTests(DealTestMixin, TestCase):

    def _enter(self, client=None, **extra):
        client = client or self.buyer_client
        return client.post('/api/v1/deals/customer-mode/', {'vehicle_id': self.vehicle.id, **extra}, format='json')

    def test_margin_preview(self):
        response = self.buyer_client.get('/api/v1/deals/margins/?price=500000')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['price_category'], 'Mid-Range')
        self.assertEqual(response.data['platform_fee'], Decimal('13000'))
        self.assertFalse(response.data['can_customize'])
        self.assertEqual(self.buyer_client.get('/api/v1/deals/margins/').status_code, status.HTTP_400_BAD_REQUEST)

    def test_enter_customer_mode_prices_vehicle(self):
        deal = services.enter_customer_mode(self.buyer, self.vehicle.id, rng=FixedRandom())
        self.assertEqual(deal.status, 'pending_customer_view')
        self.assertEqual(deal.estimated_logistics_cost, Decimal('7000'))
        self.assertEqual(deal.platform_fee, Decimal('13000'))
        self.assertEqual(deal.landed_cost, Decimal('520000'))
        self.assertEqual(deal.showroom_price, Decimal('580000'))
        self.assertEqual(deal.final_floor_price, Decimal('560000'))
        self.assertEqual(deal.pricing_tier_notes, 'Mid-Range bracket')

        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, 'live')

    def test_customer_view_hides_dealers_and_costs(self):
        response = self._enter()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(set(response.data), {'id', 'vehicle', 'price', 'customer_mode_active'})
        self.assertNotIn('dealer', response.data['vehicle'])

        response = self.buyer_client.get(f"/api/v1/deals/{response.data['id']}/customer-view/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['price'])

    def test_entering_again_reuses_deal(self):
        first = self._enter().data['id']
        second = self._enter().data['id']
        self.assertEqual(first, second)
        self.assertEqual(Transaction.objects.count(), 1)

    def test_seller_does_not_see_customer_mode_deal(self):
        self._enter()
        response = self.seller_client.get('/api/v1/deals/')
        self.assertEqual(response.data['count'], 0)

    def test_custom_margins_need_permission(self):
        response = self._enter(desired_margin_percent='20', minimum_margin_percent='10')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.buyer.owner.custom_margin_enabled = True
        self.buyer.owner.save()
        response = self._enter(desired_margin_percent='20', minimum_margin_percent='10')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        deal = Transaction.objects.get(pk=response.data['id'])
        self.assertEqual(deal.desired_margin_amount, Decimal('100000'))
        self.assertIn('custom margins', deal.pricing_tier_notes)

    def test_minimum_above_desired_rejected(self):
        self.buyer.owner.custom_margin_enabled = True
        self.buyer.owner.save()
        response = self._enter(desired_margin_percent='5', minimum_margin_percent='10')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_not_for_own_vehicle(self):
        response = self._enter(client=self.seller_client)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_exit_customer_mode(self):
        deal_id = self._enter().data['id']
        response = self.buyer_client.post(f'/api/v1/deals/{deal_id}/customer-mode/exit/')
        self.assertFalse(response.data['customer_mode_active'])
        response = self.seller_client.post(f'/api/v1/deals/{deal_id}/customer-mode/exit/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_private_pricing_with_pin(self):
        deal_id = self._enter().data['id']
        response = self.buyer_client.post(f'/api/v1/deals/{deal_id}/private-pricing/', {'pin': '1234'},
                                          format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['platform_fee'], Decimal('13000'))
        self.assertEqual(response.data['landed_cost'],
                         Decimal('513000') + response.data['estimated_logistics_cost'])

    def test_private_pricing_wrong_pin_and_lockout(self):
        deal_id = self._enter().data['id']
        for _ in range(services.PIN_MAX_ATTEMPTS):
            response = self.buyer_client.post(f'/api/v1/deals/{deal_id}/private-pricing/', {'pin': '9999'},
                                              format='json')
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.buyer_client.post(f'/api/v1/deals/{deal_id}/private-pricing/', {'pin': '1234'},
                                          format='json')
        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)

    def test_private_pricing_needs_pin_set(self):
        buyer = TestDataFactory.create_dealer()
        deal = services.enter_customer_mode(buyer, self.vehicle.id)
        client = AuthenticatedAPIClient().authenticate_user(buyer.owner)
        response = client.post(f'/api/v1/deals/{deal.id}/private-pricing/', {'pin': '1234'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_private_pricing_hidden_from_seller(self):
        deal_id = self._enter().data['id']
        self.seller.set_private_pin('1234')
        self.seller.save()
        response = self.seller_client.post(f'/api/v1/deals/{deal_id}/private-pricing/', {'pin': '1234'},
                                           format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_finalize_below_floor(self):
        deal = services.enter_customer_mode(self.buyer, self.vehicle.id, rng=FixedRandom())
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/finalize/', {'customer_price': '559999'},
                                          format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('floor', response.data['error'])

    def test_finalize_at_floor(self):
        deal = services.enter_customer_mode(self.buyer, self.vehicle.id, rng=FixedRandom())
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/finalize/', {'customer_price': '560000'},
                                          format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'accepted')
        self.assertEqual(response.data['final_amount'], '500000.00')
        self.assertEqual(response.data['customer_final_price'], '560000.00')

        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, 'in_transaction')
        self.assertTrue(Notification.objects.filter(user=self.seller.owner,
                                                    title='Vehicle sold at listing price').exists())

        response = self.seller_client.get(f'/api/v1/deals/{deal.id}/')
        self.assertNotIn('customer_final_price', response.data)
        self.assertNotIn('showroom_price', response.data)

    def test_offer_converts_customer_mode_deal(self):
        deal_id = self._enter().data['id']
        response = self.buyer_client.post('/api/v1/deals/', {'vehicle_id': self.vehicle.id,
                                                             'offer_amount': '470000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['id'], deal_id)
        self.assertEqual(response.data['status'], 'offer_made')
        self.assertFalse(response.data['customer_mode_active'])

    def test_cancel_customer_mode_deal_is_silent(self):
        deal_id = self._enter().data['id']
        response = self.buyer_client.post(f'/api/v1/deals/{deal_id}/cancel/')
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertFalse(Notification.objects.filter(user=self.seller.owner).exists())
        self.assertEqual(Vehicle.objects.get(pk=self.vehicle.pk).status, 'live')

    def test_finalize_after_price_change_needs_reprice(self):
        deal = services.enter_customer_mode(self.buyer, self.vehicle.id, rng=FixedRandom())
        response = self.seller_client.patch(f'/api/v1/vehicles/{self.vehicle.id}/', {'price': '1000000'},
                                            format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/finalize/', {'customer_price': '560000'},
                                          format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('Re-enter Customer Mode', response.data['error'])
        deal.refresh_from_db()
        self.assertEqual(deal.status, 'pending_customer_view')
        self.assertEqual(Vehicle.objects.get(pk=self.vehicle.pk).status, 'live')

        deal = services.enter_customer_mode(self.buyer, self.vehicle.id, rng=FixedRandom())
        self.assertEqual(deal.offer_amount, Decimal('1000000'))
        self.assertGreater(deal.final_floor_price, Decimal('1000000'))
        response = self.buyer_client.post(f'/api/v1/deals/{deal.id}/finalize/',
                                          {'customer_price': str(deal.final_floor_price)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['final_amount'], '1000000.00')

    def test_accepting_an_offer_closes_other_previews(self):
        preview_id = self._enter().data['id']
        other = TestDataFactory.create_dealer()
        deal, _ = services.create_offer(other, self.vehicle.id, 480000)
        response = self.seller_client.post(f'/api/v1/deals/{deal.id}/accept/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        preview = Transaction.objects.get(pk=preview_id)
        self.assertEqual(preview.status, 'cancelled')
        self.assertFalse(preview.customer_mode_active)
        response = self.buyer_client.post(f'/api/v1/deals/{preview_id}/finalize/', {'customer_price': '600000'},
                                          format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_finalizing_closes_other_previews(self):
        other = TestDataFactory.create_dealer()
        other_preview = services.enter_customer_mode(other, self.vehicle.id, rng=FixedRandom())
        deal = services.enter_customer_mode(self.buyer, self.vehicle.id, rng=FixedRandom())
        services.finalize_for_customer(self.buyer, deal.id, deal.final_floor_price)

        other_preview.refresh_from_db()
        self.assertEqual(other_preview.status, 'cancelled')
        deal.refresh_from_db()
        self.assertEqual(deal.status, 'accepted')

    def test_seller_can_delete_vehicle_with_only_previews(self):
        open_preview = self._enter().data['id']
        other = TestDataFactory.create_dealer()
        closed_preview = services.enter_customer_mode(other, self.vehicle.id)
        services.cancel_deal(other, closed_preview.id)

        response = self.seller_client.delete(f'/api/v1/vehicles/{self.vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Vehicle.objects.filter(pk=self.vehicle.pk).exists())
        self.assertFalse(Transaction.objects.filter(pk__in=[open_preview, closed_preview.id]).exists())

    def test_offer_history_still_blocks_delete(self):
        self._enter()
        deal, _ = services.create_offer(self.buyer, self.vehicle.id, 470000)
        services.cancel_deal(self.buyer, deal.id)

        response = self.seller_client.delete(f'/api/v1/vehicles/{self.vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Transaction.objects.filter(pk=deal.id).exists())

    def test_pin_attempts_are_counted_atomically(self):
        deal = services.enter_customer_mode(self.buyer, self.vehicle.id, rng=FixedRandom())
        key = f'private_pin_attempts:{self.buyer.id}'
        with patch('backend.deals.services.cache') as mocked_cache:
            mocked_cache.incr.return_value = services.PIN_MAX_ATTEMPTS + 1
            with self.assertRaises(DealError) as ctx:
                services.get_private_pricing(self.buyer, deal.id, '1234')
        self.assertEqual(ctx.exception.status_code, 429)
        mocked_cache.add.assert_called_once_with(key, 0, services.PIN_LOCKOUT_SECONDS)
        mocked_cache.incr.assert_called_once_with(key)
        mocked_cache.set.assert_not_called()

    def test_correct_pin_on_last_attempt(self):
        deal = services.enter_customer_mode(self.buyer, self.vehicle.id, rng=FixedRandom())
        for _ in range(services.PIN_MAX_ATTEMPTS - 1):
            with self.assertRaises(DealPermissionError):
                services.get_private_pricing(self.buyer, deal.id, '0000')
        pricing = services.get_private_pricing(self.buyer, deal.id, '1234')
        self.assertEqual(pricing['deal_id'], deal.id)

        # A successful unlock resets the window
        for _ in range(services.PIN_MAX_ATTEMPTS - 1):
            with self.assertRaises(DealPermissionError):
                services.get_private_pricing(self.buyer, deal.id, '0000')
        self.assertEqual(services.get_private_pricing(self.buyer, deal.id, '1234')['deal_id'], deal.id)
