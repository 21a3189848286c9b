"""
Simulated payment gateways feeding the deal escrow.

A payment record is committed before the gateway is "called", so failed
attempts stay on file. Escrow is only credited under the deal row lock,
which makes a second concurrent payment for the same deal fail instead of
paying twice.
"""
import logging
import random
import string
import time
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction as db_transaction
from django.utils import timezone

from backend.core.config import get_config_value
from backend.core.utils import create_system_log
from backend.deals import services as deal_services
from backend.deals.state import DealError, DealPermissionError
from .models import PaymentGateway

logger = logging.getLogger(__name__)

GATEWAYS = {
    'razorpay': {
        'name': 'Razorpay', 'description': "India's leading payment gateway",
        'methods': ['card', 'upi', 'netbanking', 'wallet'], 'processing_fee_percent': Decimal('2.0'),
    },
    'payu': {
        'name': 'PayU India', 'description': 'Trusted payment solution',
        'methods': ['card', 'upi', 'netbanking', 'emi'], 'processing_fee_percent': Decimal('1.9'),
    },
    'mock': {
        'name': 'Mock Gateway (Demo)', 'description': 'For testing and demo purposes',
        'methods': ['card', 'upi', 'netbanking'], 'processing_fee_percent': Decimal('0'),
    },
}

DEFAULT_SUCCESS_RATE = Decimal('0.9')
DECLINE_REASON = 'Payment failed due to insufficient funds or bank decline'


def list_gateways():
    return [{'id': key, **info} for key, info in GATEWAYS.items()]


def _gateway(gateway_id, method=None):
    info = GATEWAYS.get(gateway_id)
    if info is None:
        raise DealError(f'Unknown payment gateway: {gateway_id}')
    if method is not None and method not in info['methods']:
        raise DealError(f"{info['name']} does not support {method}")
    return info


def processing_fee(amount, gateway_id):
    percent = _gateway(gateway_id)['processing_fee_percent']
    return (Decimal(amount) * percent / 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP)


def quote(amount, gateway_id):
    amount = Decimal(amount)
    fee = processing_fee(amount, gateway_id)
    return {'gateway': gateway_id, 'deal_amount': amount, 'processing_fee': fee, 'total_amount': amount + fee}


def _random_token(rng, length=9):
    return ''.join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(length))


def _success_rate():
    try:
        rate = Decimal(str(get_config_value('payment_success_rate', DEFAULT_SUCCESS_RATE)))
    except ArithmeticError:
        return DEFAULT_SUCCESS_RATE
    return min(max(rate, Decimal('0')), Decimal('1'))


def initiate_payment(dealer, deal_id, gateway_id, method):
    """Validate the deal and commit a 'created' payment record"""
    info = _gateway(gateway_id, method)
    with db_transaction.atomic():
        deal = deal_services.lock_deal(deal_id)
        role = deal_services.require_party(deal, dealer)
        if role != 'buyer':
            raise DealPermissionError('Only the buyer can pay for a deal')
        if deal.status != 'accepted' or deal.escrow_status != 'none':
            raise DealError('This deal is not awaiting payment', status_code=409)

        figures = quote(deal.agreed_amount, gateway_id)
        payment = PaymentGateway.objects.create(
            transaction=deal,
            payer=dealer,
            payment_gateway=gateway_id,
            gateway_order_id=f"order_{int(time.time() * 1000)}_{_random_token(random)}",
            payment_method=method,
            deal_amount=figures['deal_amount'],
            processing_fee=figures['processing_fee'],
            amount=figures['total_amount'],
            status='created',
            buyer_details={'name': dealer.business_name, 'email': dealer.email, 'phone': dealer.phone},
        )
    logger.info(f"Payment {payment.gateway_order_id} created via {info['name']} for deal {deal.id}")
    return payment


def _fail(payment, reason):
    payment.status = 'failed'
    payment.failure_reason = reason
    payment.save(update_fields=['status', 'failure_reason', 'updated_at'])
    logger.warning(f"Payment {payment.gateway_order_id} failed: {reason}")
    return payment


def process_payment(payment, rng=None, request=None):
    """Run the simulated gateway and, on success, put the deal in escrow"""
    rng = rng or random
    payment.status = 'processing'
    payment.save(update_fields=['status', 'updated_at'])

    if Decimal(str(rng.random())) >= _success_rate():
        return _fail(payment, DECLINE_REASON)

    payment_id = f"pay_{int(time.time() * 1000)}_{_random_token(rng)}"
    with db_transaction.atomic():
        deal = deal_services.lock_deal(payment.transaction_id)
        if deal.status != 'accepted' or deal.escrow_status != 'none':
            return _fail(payment, 'Deal is no longer awaiting payment')

        deal_services.mark_paid(deal, payment.payment_method, payment.payer, request)
        payment.status = 'completed'
        payment.gateway_payment_id = payment_id
        payment.escrow_reference = f"escrow_{payment_id}"
        payment.webhook_verified = True
        payment.payment_completed_at = timezone.now()
        payment.gateway_response = {
            'payment_id': payment_id,
            'status': 'captured',
            'method': payment.payment_method,
            'amount': str(payment.amount),
            'fee': str(payment.processing_fee),
        }
        payment.save()

    create_system_log(request=request, user=payment.payer.owner, action_type='payment', module='payments',
                      target_id=payment.transaction_id, target_name=payment.gateway_order_id,
                      details={'gateway': payment.payment_gateway, 'amount': str(payment.amount),
                               'escrow_reference': payment.escrow_reference})
    return payment


def pay(dealer, deal_id, gateway_id, method, rng=None, request=None):
    payment = initiate_payment(dealer, deal_id, gateway_id, method)
    return process_payment(payment, rng=rng, request=request)
