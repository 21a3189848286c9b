"""
Transport quotes, booking and tracking.

Distances are simulated from how far apart the two dealers are; there is
no routing provider behind this.
"""
import logging
import random
import string
import time
from datetime import timedelta
from decimal import Decimal

from django.db import transaction as db_transaction
from django.db.models import F
from django.utils import timezone

from backend.core.validators import format_price, sanitize_input
from backend.deals import services as deal_services
from backend.deals.pricing import to_rupees
from backend.deals.state import DealError, DealPermissionError
from backend.notifications.services import notify_dealer
from .models import LogisticsPartner

logger = logging.getLogger(__name__)

LUXURY_THRESHOLD = Decimal('2000000')
DEFAULT_INTERSTATE_MULTIPLIER = Decimal('1.5')
DEFAULT_LUXURY_MULTIPLIER = Decimal('1.3')
DEFAULT_INSURANCE_RATE = Decimal('0.5')

# Used when no LogisticsPartner rows are configured
DEFAULT_PARTNERS = {
    'aura_logistics': {
        'name': 'Aura Express Logistics', 'price': Decimal('8500'), 'rating': Decimal('4.8'),
        'eta': '2-3 days', 'eta_days': 3, 'contact': 'Rajesh Kumar', 'phone': '+91-8800-AURA-01',
    },
    'swift_transport': {
        'name': 'Swift Vehicle Transport', 'price': Decimal('7200'), 'rating': Decimal('4.6'),
        'eta': '3-4 days', 'eta_days': 4, 'contact': 'Amit Sharma', 'phone': '+91-9900-SWIFT-2',
    },
    'secure_movers': {
        'name': 'Secure Auto Movers', 'price': Decimal('9200'), 'rating': Decimal('4.9'),
        'eta': '1-2 days', 'eta_days': 2, 'contact': 'Priya Singh', 'phone': '+91-7700-SECURE',
    },
}

TRANSPORT_ORDER = ['not_booked', 'pending', 'picked_up', 'in_transit', 'delivered']


def _norm(value):
    return (value or '').strip().lower()


def simulate_distance(origin, destination, rng=None):
    """Kilometres between two dealers: same city, same state or interstate band"""
    rng = rng or random
    if _norm(origin.state) != _norm(destination.state):
        return 400 + rng.random() * 800
    if _norm(origin.city) == _norm(destination.city):
        return 15 + rng.random() * 25
    return 150 + rng.random() * 200


def delivery_time_text(days):
    if days <= 2:
        return f"{days} day{'s' if days > 1 else ''} (Express)"
    if days <= 4:
        return f"{days} days (Standard)"
    return f"{days} days (Economy)"


def quote_partner(partner, distance, vehicle_value, is_interstate):
    multipliers = partner.pricing_multipliers or {}
    base_cost = partner.base_rate_per_km * Decimal(str(distance))
    total = max(base_cost, partner.minimum_charge)
    if is_interstate:
        total *= Decimal(str(multipliers.get('interstate', DEFAULT_INTERSTATE_MULTIPLIER)))
    if vehicle_value > LUXURY_THRESHOLD:
        total *= Decimal(str(multipliers.get('luxury_vehicle', DEFAULT_LUXURY_MULTIPLIER)))

    insurance_cost = Decimal('0')
    if partner.insurance_included:
        rate = partner.insurance_rate_percent or DEFAULT_INSURANCE_RATE
        insurance_cost = vehicle_value * rate / 100
        total += insurance_cost

    rating = partner.rating or Decimal('4.0')
    days = partner.average_delivery_days + (1 if is_interstate else 0)
    return {
        'partner_id': str(partner.id),
        'partner_name': partner.partner_name,
        'total_cost': int(to_rupees(total)),
        'base_cost': int(to_rupees(base_cost)),
        'insurance_cost': int(to_rupees(insurance_cost)),
        'distance_km': round(distance),
        'estimated_days': days,
        'delivery_time': delivery_time_text(days),
        'rating': rating,
        'total_deliveries': partner.total_deliveries,
        'insurance_included': partner.insurance_included,
        'contact_person': partner.contact_person,
        'phone': partner.phone,
        'features': [
            'Insurance Included' if partner.insurance_included else 'Insurance Optional',
            'Top Rated' if rating >= Decimal('4.5') else 'Good Rating',
            'Experienced' if partner.total_deliveries > 1000 else 'Reliable',
        ],
    }


def default_quotes():
    return [
        {
            'partner_id': key,
            'partner_name': info['name'],
            'total_cost': int(info['price']),
            'estimated_days': info['eta_days'],
            'delivery_time': info['eta'],
            'rating': info['rating'],
            'contact_person': info['contact'],
            'phone': info['phone'],
        }
        for key, info in sorted(DEFAULT_PARTNERS.items(), key=lambda item: item[1]['price'])
    ]


def get_quotes(origin, destination, vehicle_value, rng=None):
    """
    Quotes from every active partner serving the route, cheapest first.
    Falls back to the built-in partner list when none are configured.
    """
    partners = [p for p in LogisticsPartner.objects.filter(is_active=True)
                if p.serves(origin.state) and p.serves(destination.state)]
    if not partners:
        return {'distance_km': None, 'is_interstate': _norm(origin.state) != _norm(destination.state),
                'quotes': default_quotes()}

    distance = simulate_distance(origin, destination, rng)
    is_interstate = _norm(origin.state) != _norm(destination.state)
    value = Decimal(str(vehicle_value or 0))
    quotes = [quote_partner(p, distance, value, is_interstate) for p in partners]
    quotes.sort(key=lambda q: q['total_cost'])
    return {'distance_km': round(distance), 'is_interstate': is_interstate, 'quotes': quotes}


def generate_booking_id(rng=None):
    rng = rng or random
    suffix = ''.join(rng.choice(string.ascii_uppercase + string.digits) for _ in range(5))
    return f"TRK{int(time.time() * 1000)}{suffix}"


def _resolve_partner(partner_key, deal, rng=None):
    """(name, cost, eta_days) for a built-in key or a LogisticsPartner id"""
    if partner_key in DEFAULT_PARTNERS:
        info = DEFAULT_PARTNERS[partner_key]
        return info['name'], info['price'], info['eta_days']
    try:
        partner = LogisticsPartner.objects.get(pk=int(partner_key), is_active=True)
    except (ValueError, LogisticsPartner.DoesNotExist):
        raise DealError('Unknown transport partner')
    is_interstate = _norm(deal.seller.state) != _norm(deal.buyer.state)
    distance = simulate_distance(deal.seller, deal.buyer, rng)
    quote = quote_partner(partner, distance, deal.agreed_amount, is_interstate)
    return partner.partner_name, Decimal(quote['total_cost']), quote['estimated_days']


def book_transport(dealer, deal_id, partner_key, pickup_date, pickup_address='', delivery_address='',
                   special_instructions='', rng=None):
    if not partner_key or not pickup_date:
        raise DealError('Please select pickup date and transport partner')
    if pickup_date < timezone.localdate():
        raise DealError('Pickup date cannot be in the past')

    with db_transaction.atomic():
        deal = deal_services.lock_deal(deal_id)
        deal_services.require_party(deal, dealer)
        if deal.status not in ('accepted', 'in_escrow'):
            raise DealError(f'Transport cannot be booked for a deal that is {deal.status}', status_code=409)
        if deal.transport_status != 'not_booked':
            raise DealError('Transport is already booked for this deal', status_code=409)

        name, cost, eta_days = _resolve_partner(partner_key, deal, rng)
        delivery_date = pickup_date + timedelta(days=eta_days)

        deal.transport_status = 'pending'
        deal.logistics_partner = str(partner_key)
        deal.transport_cost = cost
        deal.pickup_date = pickup_date
        deal.estimated_delivery_date = delivery_date
        deal.pickup_address = sanitize_input(pickup_address) or deal.seller.address
        deal.delivery_address = sanitize_input(delivery_address) or deal.buyer.address
        deal.special_instructions = sanitize_input(special_instructions)
        deal.transport_booking_id = generate_booking_id(rng)
        deal.save()

        deal_services.system_message(
            deal,
            f"Transport booked with {name}. Pickup scheduled for {pickup_date:%d %b %Y} "
            f"and delivery expected by {delivery_date:%d %b %Y}.",
        )
        notify_dealer(
            deal.counterparty(dealer), 'logistics', 'Transport booked',
            f'{name} will pick up the vehicle for {deal.reference} on {pickup_date:%d %b %Y} ({format_price(cost)})',
            link=deal_services.deal_link(deal), related_object_id=deal.id,
        )
    logger.info(f"Transport {deal.transport_booking_id} booked for deal {deal.id} with {name}")
    return deal


def update_transport_status(dealer, deal_id, new_status, request=None, is_admin=False):
    """
    Move the shipment forward. Pickup needs funds in escrow and takes the
    deal to in_transit.
    """
    if new_status not in ('picked_up', 'in_transit'):
        raise DealError('Status must be picked_up or in_transit')

    with db_transaction.atomic():
        deal = deal_services.lock_deal(deal_id)
        role = None if is_admin else deal_services.require_party(deal, dealer)
        if role == 'buyer':
            raise DealPermissionError('Only the seller or the transport partner can update pickup status')
        current = deal.transport_status
        if current == 'not_booked':
            raise DealError('Transport has not been booked', status_code=409)
        if TRANSPORT_ORDER.index(new_status) <= TRANSPORT_ORDER.index(current):
            raise DealError(f'Transport is already {current}', status_code=409)
        if deal.escrow_status != 'paid':
            raise DealError('Payment must be in escrow before pickup', status_code=409)

        now = timezone.now()
        deal.transport_status = new_status
        if deal.picked_up_at is None:
            deal.picked_up_at = now
        deal_services.mark_in_transit(deal, dealer, request)
        deal.save()

        deal_services.system_message(deal, f"Vehicle {'picked up' if new_status == 'picked_up' else 'in transit'}.")
        notify_dealer(
            deal.buyer, 'logistics', 'Vehicle on the way',
            f'Your vehicle for {deal.reference} has been {new_status.replace("_", " ")}',
            link=deal_services.deal_link(deal), related_object_id=deal.id,
        )
    return deal


def confirm_delivery(dealer, deal_id, handover_code=''):
    """Buyer confirms the vehicle arrived; the handover code must match when given"""
    with db_transaction.atomic():
        deal = deal_services.lock_deal(deal_id)
        role = deal_services.require_party(deal, dealer)
        if role != 'buyer':
            raise DealPermissionError('Only the buyer can confirm delivery')
        if deal.transport_status not in ('picked_up', 'in_transit'):
            raise DealError('The vehicle is not in transit', status_code=409)
        if handover_code and handover_code.strip().upper() != deal.handover_code():
            raise DealError('Handover code does not match')

        now = timezone.now()
        deal.transport_status = 'delivered'
        deal.delivered_at = now
        deal.delivery_confirmed_at = now
        deal.save()

        deal_services.system_message(deal, 'Vehicle delivery confirmed by buyer. Transport completed successfully.')
        notify_dealer(
            deal.seller, 'logistics', 'Delivery confirmed',
            f'The buyer confirmed delivery for {deal.reference}. Funds can now be released.',
            link=deal_services.deal_link(deal), related_object_id=deal.id,
        )
        if deal.logistics_partner.isdigit():
            LogisticsPartner.objects.filter(pk=int(deal.logistics_partner)).update(
                total_deliveries=F('total_deliveries') + 1
            )
    return deal
