"""
Deal lifecycle operations.

Each operation locks the deal row (and the vehicle row where the listing
status changes) inside ``transaction.atomic`` before reading its state, so
two dealers acting on the same deal at once are serialised by the database.
Errors are raised as DealError subclasses and mapped to HTTP responses by
the views.
"""
import logging
from decimal import Decimal

from django.core.cache import cache
from django.db import transaction as db_transaction
from django.db.models import F
from django.utils import timezone

from backend.core.utils import create_system_log
from backend.core.validators import format_price, sanitize_input, validate_offer, validate_rating
from backend.dealers.models import Dealer
from backend.notifications.services import notify_dealer
from backend.vehicles.models import Vehicle
from . import state
from .models import Transaction, DealMessage
from .pricing import (
    calculate_customer_pricing, estimate_logistics_cost, get_dynamic_margins, get_platform_fee
)
from .state import DealError, DealPermissionError

logger = logging.getLogger(__name__)

PIN_MAX_ATTEMPTS = 5
PIN_LOCKOUT_SECONDS = 15 * 60


def deal_link(deal):
    return f'/deals/{deal.id}'


def lock_deal(deal_id):
    try:
        return Transaction.objects.select_for_update().get(pk=deal_id)
    except Transaction.DoesNotExist:
        raise DealError('Deal not found', status_code=404)


def _lock_vehicle(vehicle_id):
    try:
        return Vehicle.objects.select_for_update().get(pk=vehicle_id)
    except Vehicle.DoesNotExist:
        raise DealError('Vehicle not found', status_code=404)


def require_party(deal, dealer):
    role = deal.party_role(dealer)
    if role is None:
        # Non-parties should not learn the deal exists
        raise DealError('Deal not found', status_code=404)
    return role


def _change_status(deal, target, actor, request=None):
    previous = deal.status
    state.transition(deal, target)
    create_system_log(
        request=request, user=actor.owner if actor else None,
        action_type='deal_status_change', module='deals',
        target_id=deal.id, target_name=deal.reference,
        details={'from': previous, 'to': target},
    )
    logger.info(f"Deal {deal.id}: {previous} -> {target}")


def system_message(deal, text, amount=None):
    return DealMessage.objects.create(transaction=deal, sender=None, message_type='system',
                                      message=text, amount=amount)


def _release_vehicle_if_idle(vehicle_id, exclude_deal_id):
    """Put a reserved vehicle back on the marketplace when no other deal holds it"""
    vehicle = _lock_vehicle(vehicle_id)
    if vehicle.status != 'in_transaction':
        return vehicle
    still_held = Transaction.objects.filter(
        vehicle_id=vehicle_id, status__in=state.OPEN_STATUSES
    ).exclude(pk=exclude_deal_id).exclude(status='pending_customer_view').exists()
    if not still_held:
        vehicle.status = 'live'
        vehicle.save(update_fields=['status', 'updated_at'])
    return vehicle


def customer_previews(vehicle_id):
    """Customer Mode deals on a vehicle that never carried an offer"""
    return Transaction.objects.filter(vehicle_id=vehicle_id, last_offer_by__isnull=True)


def _close_customer_previews(vehicle_id, exclude_deal_id):
    """Other buyers' open previews end once the vehicle is committed to a deal"""
    previews = customer_previews(vehicle_id).select_for_update().filter(
        status='pending_customer_view'
    ).exclude(pk=exclude_deal_id)
    closed = 0
    for preview in previews:
        state.transition(preview, 'cancelled')
        preview.customer_mode_active = False
        preview.cancellation_reason = 'Vehicle committed to another deal'
        preview.save(update_fields=['status', 'customer_mode_active', 'cancellation_reason', 'updated_at'])
        closed += 1
    if closed:
        logger.info(f"Closed {closed} Customer Mode preview(s) on vehicle {vehicle_id}")
    return closed


# --- Negotiation ---

def create_offer(buyer, vehicle_id, offer_amount, message='', request=None):
    """
    Open a deal on a live listing, or turn the buyer's Customer Mode
    presentation of it into a real offer.

    Returns ``(deal, advice)`` where advice is the validate_offer result.
    """
    advice = None
    with db_transaction.atomic():
        vehicle = _lock_vehicle(vehicle_id)
        if vehicle.dealer_id == buyer.id:
            raise DealError('You cannot make an offer on your own vehicle')
        if vehicle.status != 'live':
            raise DealError('This vehicle is not available for offers', status_code=409)

        advice = validate_offer(offer_amount, vehicle.price)
        if not advice['is_valid']:
            raise DealError(advice['error'])
        amount = Decimal(str(offer_amount))

        deal = Transaction.objects.select_for_update().filter(
            vehicle=vehicle, buyer=buyer, status='pending_customer_view'
        ).first()
        if deal is not None:
            _change_status(deal, 'offer_made', buyer, request)
            deal.customer_mode_active = False
        else:
            deal = Transaction(vehicle=vehicle, seller=vehicle.dealer, buyer=buyer, status='offer_made')
            create_system_log(request=request, user=buyer.owner, action_type='offer_made', module='deals',
                              target_id=vehicle.id, target_name=vehicle.display_name,
                              details={'amount': str(amount)})
        deal.offer_amount = amount
        deal.last_offer_by = buyer
        deal.save()

        vehicle.status = 'in_transaction'
        vehicle.inquiries += 1
        vehicle.save(update_fields=['status', 'inquiries', 'updated_at'])

        text = sanitize_input(message) or f'Offer of {format_price(amount)}'
        DealMessage.objects.create(transaction=deal, sender=buyer, message_type='offer',
                                   message=text, amount=amount)
        notify_dealer(
            deal.seller, 'offer', 'New offer received',
            f'{buyer.business_name} offered {format_price(amount)} for your {vehicle.display_name}',
            link=deal_link(deal), priority='high', action_required=True, related_object_id=deal.id,
        )
    return deal, advice


def counter_offer(dealer, deal_id, amount, message='', request=None):
    with db_transaction.atomic():
        deal = lock_deal(deal_id)
        require_party(deal, dealer)
        if deal.status not in state.NEGOTIABLE_STATUSES:
            raise state.InvalidTransition(f'Cannot counter a deal that is {deal.status}')
        if deal.last_offer_by_id == dealer.id:
            raise DealError('Wait for the other party to respond to your offer', status_code=409)
        amount = Decimal(str(amount))
        if amount <= 0:
            raise DealError('Offer amount must be greater than 0')

        _change_status(deal, 'negotiating', dealer, request)
        deal.offer_amount = amount
        deal.last_offer_by = dealer
        deal.save()

        text = sanitize_input(message) or f'Counter offer of {format_price(amount)}'
        DealMessage.objects.create(transaction=deal, sender=dealer, message_type='counter_offer',
                                   message=text, amount=amount)
        notify_dealer(
            deal.counterparty(dealer), 'offer', 'Counter offer received',
            f'{dealer.business_name} countered with {format_price(amount)} on {deal.reference}',
            link=deal_link(deal), priority='high', action_required=True, related_object_id=deal.id,
        )
    return deal


def accept_offer(dealer, deal_id, request=None):
    """The party that did not make the standing offer accepts it"""
    with db_transaction.atomic():
        deal = lock_deal(deal_id)
        require_party(deal, dealer)
        if deal.status not in state.NEGOTIABLE_STATUSES:
            raise state.InvalidTransition(f'Cannot accept a deal that is {deal.status}')
        if deal.last_offer_by_id == dealer.id:
            raise DealError('You cannot accept your own offer', status_code=409)

        _change_status(deal, 'accepted', dealer, request)
        deal.final_amount = deal.offer_amount
        deal.accepted_at = timezone.now()
        deal.save()
        _close_customer_previews(deal.vehicle_id, deal.id)

        system_message(deal, f'{dealer.business_name} accepted the offer of {format_price(deal.final_amount)}',
                       amount=deal.final_amount)
        notify_dealer(
            deal.counterparty(dealer), 'deal_update', 'Offer accepted',
            f'Your offer of {format_price(deal.final_amount)} on {deal.reference} was accepted',
            link=deal_link(deal), priority='high', action_required=deal.party_role(dealer) == 'seller',
            related_object_id=deal.id,
        )
    return deal


def _cancel(deal, dealer, reason, request):
    _change_status(deal, 'cancelled', dealer, request)
    deal.cancellation_reason = sanitize_input(reason)
    deal.customer_mode_active = False
    deal.save()
    _release_vehicle_if_idle(deal.vehicle_id, deal.id)


def reject_offer(dealer, deal_id, reason='', request=None):
    with db_transaction.atomic():
        deal = lock_deal(deal_id)
        require_party(deal, dealer)
        if deal.status not in state.NEGOTIABLE_STATUSES:
            raise state.InvalidTransition(f'Cannot reject a deal that is {deal.status}')
        if deal.last_offer_by_id == dealer.id:
            raise DealError('Cancel the deal to withdraw your own offer', status_code=409)

        _cancel(deal, dealer, reason, request)
        system_message(deal, f'{dealer.business_name} rejected the offer')
        notify_dealer(
            deal.counterparty(dealer), 'deal_update', 'Offer rejected',
            f'Your offer on {deal.reference} was rejected. {deal.cancellation_reason}'.strip(),
            link=deal_link(deal), related_object_id=deal.id,
        )
    return deal


def cancel_deal(dealer, deal_id, reason='', request=None):
    """Either party may walk away until money is in escrow"""
    with db_transaction.atomic():
        deal = lock_deal(deal_id)
        require_party(deal, dealer)
        if deal.escrow_status != 'none':
            raise state.InvalidTransition('Deals with funds in escrow cannot be cancelled')

        was_offer = deal.status != 'pending_customer_view'
        _cancel(deal, dealer, reason, request)
        system_message(deal, f'{dealer.business_name} cancelled the deal')
        if was_offer:
            notify_dealer(
                deal.counterparty(dealer), 'deal_update', 'Deal cancelled',
                f'{deal.reference} was cancelled by {dealer.business_name}',
                link=deal_link(deal), related_object_id=deal.id,
            )
    return deal


def post_message(dealer, deal_id, text):
    deal = Transaction.objects.filter(pk=deal_id).first()
    if deal is None:
        raise DealError('Deal not found', status_code=404)
    require_party(deal, dealer)
    text = sanitize_input(text)
    if not text:
        raise DealError('Message cannot be empty')
    if len(text) > 2000:
        raise DealError('Message must be less than 2000 characters')

    message = DealMessage.objects.create(transaction=deal, sender=dealer, message_type='text', message=text)
    notify_dealer(
        deal.counterparty(dealer), 'deal_update', f'New message on {deal.reference}',
        f'{dealer.business_name}: {text[:120]}', link=deal_link(deal), related_object_id=deal.id,
    )
    return message


# --- Escrow and fulfilment ---

def mark_paid(deal, payment_method, actor, request=None):
    """
    Mark the agreed amount as held in escrow.

    ``deal`` must already be locked by the caller's atomic block.
    """
    if deal.escrow_status != 'none':
        raise DealError('Payment has already been made for this deal', status_code=409)
    _change_status(deal, 'in_escrow', actor, request)
    deal.escrow_status = 'paid'
    deal.payment_method = payment_method
    deal.payment_confirmed_at = timezone.now()
    deal.save()

    system_message(deal, f'Payment of {format_price(deal.agreed_amount)} received and held in escrow',
                   amount=deal.agreed_amount)
    notify_dealer(
        deal.seller, 'payment', 'Payment received in escrow',
        f'{format_price(deal.agreed_amount)} for {deal.reference} is held in escrow. Arrange pickup.',
        link=deal_link(deal), priority='high', action_required=True, related_object_id=deal.id,
    )
    return deal


def mark_in_transit(deal, actor, request=None):
    """Locked deal leaves escrow waiting once the vehicle is picked up"""
    if deal.status == 'in_escrow':
        _change_status(deal, 'in_transit', actor, request)
    return deal


def release_funds(dealer, deal_id, request=None):
    """
    Buyer confirms receipt: the deal completes, the seller is paid out and
    the vehicle is marked sold.
    """
    with db_transaction.atomic():
        deal = lock_deal(deal_id)
        role = require_party(deal, dealer)
        if role != 'buyer':
            raise DealPermissionError('Only the buyer can release escrow funds')
        if deal.escrow_status != 'paid':
            raise state.InvalidTransition('No funds are held in escrow for this deal')
        if deal.transport_status != 'delivered':
            raise DealError('Confirm delivery before releasing funds', status_code=409)

        now = timezone.now()
        amount = deal.agreed_amount
        _change_status(deal, 'completed', dealer, request)
        deal.escrow_status = 'released'
        deal.funds_released_at = now
        deal.completed_at = now
        deal.save()

        vehicle = _lock_vehicle(deal.vehicle_id)
        vehicle.status = 'sold'
        vehicle.date_sold = now
        vehicle.final_sale_price = amount
        vehicle.save(update_fields=['status', 'date_sold', 'final_sale_price', 'updated_at'])
        _close_customer_previews(vehicle.id, deal.id)

        Dealer.objects.filter(pk=deal.seller_id).update(
            completed_deals=F('completed_deals') + 1,
            total_sales_value=F('total_sales_value') + amount,
            last_activity=now,
        )
        Dealer.objects.filter(pk=deal.buyer_id).update(
            completed_deals=F('completed_deals') + 1, last_activity=now,
        )

        system_message(deal, f'Funds of {format_price(amount)} released to the seller. Deal completed.',
                       amount=amount)
        notify_dealer(
            deal.seller, 'payment', 'Funds released',
            f'{format_price(amount)} for {deal.reference} has been released to your account',
            link=deal_link(deal), priority='high', related_object_id=deal.id,
        )
    create_system_log(request=request, user=dealer.owner, action_type='payment', module='deals',
                      target_id=deal.id, target_name=deal.reference,
                      details={'event': 'funds_released', 'amount': str(amount)})
    return deal


def complete_with_rating(dealer, deal_id, rating, review=''):
    """Each party rates the other once after completion"""
    if not validate_rating(rating):
        raise DealError('Rating must be between 1 and 5')

    with db_transaction.atomic():
        deal = lock_deal(deal_id)
        role = require_party(deal, dealer)
        if deal.status != 'completed':
            raise state.InvalidTransition('Deals can only be rated after completion')

        field = 'seller_rating' if role == 'buyer' else 'buyer_rating'
        if getattr(deal, field):
            raise DealError('You have already rated this deal', status_code=409)

        setattr(deal, field, {
            'rating': int(rating),
            'review': sanitize_input(review),
            'rated_by': dealer.id,
            'rated_at': timezone.now().isoformat(),
        })
        deal.save(update_fields=[field, 'updated_at'])

        other = Dealer.objects.select_for_update().get(pk=deal.counterparty(dealer).pk)
        other.record_rating(int(rating))
        other.save(update_fields=['rating', 'rating_count', 'updated_at'])

        notify_dealer(
            other, 'deal_update', 'You received a rating',
            f'{dealer.business_name} rated you {int(rating)}/5 for {deal.reference}',
            link=deal_link(deal), priority='low', related_object_id=deal.id,
        )
    return deal


def set_archived(dealer, deal_id, archived=True):
    with db_transaction.atomic():
        deal = lock_deal(deal_id)
        require_party(deal, dealer)
        if deal.status not in ('completed', 'cancelled'):
            raise DealError('Only completed or cancelled deals can be archived')
        deal.deal_archived = archived
        deal.archived_at = timezone.now() if archived else None
        deal.save(update_fields=['deal_archived', 'archived_at', 'updated_at'])
    return deal


# --- Customer Mode ---

def can_use_custom_margins(user):
    return bool(user and (user.custom_margin_enabled or user.is_platform_admin))


def enter_customer_mode(buyer, vehicle_id, desired_percent=None, minimum_percent=None, rng=None, request=None):
    """
    Price a marketplace vehicle for presentation to a retail customer.

    One Customer Mode deal is kept per vehicle and buyer; entering again
    refreshes its pricing. Percentages other than the bracket defaults need
    the custom margin permission.
    """
    with db_transaction.atomic():
        vehicle = _lock_vehicle(vehicle_id)
        if vehicle.dealer_id == buyer.id:
            raise DealError('Customer Mode is for vehicles from other dealers')
        if vehicle.status != 'live':
            raise DealError('This vehicle is not available', status_code=409)

        margins = get_dynamic_margins(vehicle.price)
        desired = margins['desired_percent'] if desired_percent is None else Decimal(str(desired_percent))
        minimum = margins['minimum_percent'] if minimum_percent is None else Decimal(str(minimum_percent))
        is_custom = desired != margins['desired_percent'] or minimum != margins['minimum_percent']
        if is_custom and not can_use_custom_margins(buyer.owner):
            raise DealPermissionError('Custom margins are not enabled for your account')

        logistics_cost = estimate_logistics_cost(vehicle.dealer, buyer, rng=rng)
        platform_fee = get_platform_fee()
        try:
            pricing = calculate_customer_pricing(vehicle.price, logistics_cost, platform_fee, desired, minimum)
        except ValueError as e:
            raise DealError(str(e))

        deal = Transaction.objects.select_for_update().filter(
            vehicle=vehicle, buyer=buyer, status='pending_customer_view'
        ).first()
        if deal is None:
            deal = Transaction(vehicle=vehicle, seller=vehicle.dealer, buyer=buyer,
                               status='pending_customer_view')

        deal.offer_amount = vehicle.price
        deal.customer_mode_active = True
        deal.customer_mode_activated_at = timezone.now()
        deal.estimated_logistics_cost = logistics_cost
        deal.platform_fee = platform_fee
        deal.desired_margin_percent = desired
        deal.minimum_margin_percent = minimum
        deal.landed_cost = pricing['landed_cost']
        deal.desired_margin_amount = pricing['desired_margin_amount']
        deal.minimum_margin_amount = pricing['minimum_margin_amount']
        deal.showroom_price = pricing['showroom_price']
        deal.final_floor_price = pricing['final_floor_price']
        deal.pricing_tier_notes = (
            f"{margins['price_category']} bracket"
            + (' with custom margins' if is_custom else '')
        )
        deal.save()

    if is_custom:
        create_system_log(request=request, user=buyer.owner, action_type='update', module='deals',
                          target_id=deal.id, target_name=deal.reference,
                          details={'custom_margins': {'desired': str(desired), 'minimum': str(minimum)}})
    logger.info(f"Dealer {buyer.id} entered Customer Mode for vehicle {vehicle.id} (deal {deal.id})")
    return deal


def exit_customer_mode(dealer, deal_id):
    with db_transaction.atomic():
        deal = lock_deal(deal_id)
        if deal.party_role(dealer) != 'buyer':
            raise DealError('Deal not found', status_code=404)
        deal.customer_mode_active = False
        deal.save(update_fields=['customer_mode_active', 'updated_at'])
    return deal


def _pin_attempts_key(dealer_id):
    return f'private_pin_attempts:{dealer_id}'


def get_private_pricing(dealer, deal_id, pin):
    """Buyer-only cost breakdown, unlocked with the dealer's private PIN"""
    deal = Transaction.objects.filter(pk=deal_id).first()
    if deal is None or deal.party_role(dealer) != 'buyer':
        raise DealError('Deal not found', status_code=404)
    if deal.landed_cost is None:
        raise DealError('This deal has no Customer Mode pricing')
    if not dealer.private_view_pin_hash:
        raise DealError('Private view PIN not set. Set one in your dealer settings.')

    # Counted before the check: at most PIN_MAX_ATTEMPTS guesses per window, parallel or not
    attempts_key = _pin_attempts_key(dealer.id)
    cache.add(attempts_key, 0, PIN_LOCKOUT_SECONDS)
    try:
        attempts = cache.incr(attempts_key)
    except ValueError:
        # Expired between add and incr
        cache.add(attempts_key, 1, PIN_LOCKOUT_SECONDS)
        attempts = 1
    if attempts > PIN_MAX_ATTEMPTS:
        raise DealError('Too many incorrect PIN attempts. Try again later.', status_code=429)
    if not dealer.check_private_pin(str(pin or '')):
        logger.warning(f"Incorrect private PIN for dealer {dealer.id} on deal {deal.id}")
        raise DealPermissionError('Incorrect PIN')
    cache.delete(attempts_key)

    return {
        'deal_id': deal.id,
        'vehicle_price': deal.offer_amount,
        'estimated_logistics_cost': deal.estimated_logistics_cost,
        'platform_fee': deal.platform_fee,
        'landed_cost': deal.landed_cost,
        'desired_margin_percent': deal.desired_margin_percent,
        'minimum_margin_percent': deal.minimum_margin_percent,
        'desired_margin_amount': deal.desired_margin_amount,
        'minimum_margin_amount': deal.minimum_margin_amount,
        'showroom_price': deal.showroom_price,
        'final_floor_price': deal.final_floor_price,
        'pricing_tier_notes': deal.pricing_tier_notes,
    }


def finalize_for_customer(dealer, deal_id, customer_price, request=None):
    """
    Close the retail sale: the buyer commits to the dealer-to-dealer deal at
    the listing price and records what the customer pays. Prices under the
    floor are refused.
    """
    customer_price = Decimal(str(customer_price))
    with db_transaction.atomic():
        deal = lock_deal(deal_id)
        if deal.party_role(dealer) != 'buyer':
            raise DealError('Deal not found', status_code=404)
        if deal.status != 'pending_customer_view':
            raise state.InvalidTransition(f'Cannot finalize a deal that is {deal.status}')
        if deal.final_floor_price is None:
            raise DealError('This deal has no Customer Mode pricing')

        vehicle = _lock_vehicle(deal.vehicle_id)
        if vehicle.status != 'live':
            raise DealError('This vehicle is no longer available', status_code=409)
        # The floor was priced from the listing price at entry
        if vehicle.price != deal.offer_amount:
            raise state.InvalidTransition('The listing price changed. Re-enter Customer Mode to reprice.')
        if customer_price < deal.final_floor_price:
            raise DealError('Price is below your minimum floor price')

        _change_status(deal, 'accepted', dealer, request)
        deal.offer_amount = vehicle.price
        deal.final_amount = vehicle.price
        deal.customer_final_price = customer_price
        deal.last_offer_by = deal.seller
        deal.customer_mode_active = False
        deal.accepted_at = timezone.now()
        deal.save()

        vehicle.status = 'in_transaction'
        vehicle.save(update_fields=['status', 'updated_at'])
        _close_customer_previews(vehicle.id, deal.id)

        system_message(deal, f'{dealer.business_name} bought at the listing price of {format_price(vehicle.price)}',
                       amount=vehicle.price)
        notify_dealer(
            dealer, 'deal_update', 'Customer deal finalized',
            f'Customer deal on {vehicle.display_name} finalized at {format_price(customer_price)}. Complete payment to proceed.',
            link=deal_link(deal), priority='high', action_required=True, related_object_id=deal.id,
        )
        notify_dealer(
            deal.seller, 'deal_update', 'Vehicle sold at listing price',
            f'{dealer.business_name} is buying your {vehicle.display_name} for {format_price(vehicle.price)}',
            link=deal_link(deal), priority='high', related_object_id=deal.id,
        )
    return deal
