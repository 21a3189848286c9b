"""
Margin brackets, platform fee, logistics estimate and Customer Mode pricing.

All money is Decimal in INR; amounts are rounded half-up to whole rupees.
"""
import logging
import random
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from backend.core.config import DEFAULT_MARGIN_BRACKETS, get_config_value

logger = logging.getLogger(__name__)

DEFAULT_PLATFORM_FEE = Decimal('13000')
DEFAULT_LOGISTICS_COST = Decimal('8000')

# (base, spread): cost is base + randint(0, spread - 1)
INTERSTATE_LOGISTICS = (12000, 8000)
INTERCITY_LOGISTICS = (7000, 5000)
SAME_CITY_LOGISTICS = (3000, 2000)


def to_rupees(value):
    return Decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP)


def _as_decimal(value):
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal('0')
    return number if number.is_finite() else Decimal('0')


def compute_margins(price, brackets=None):
    """
    Desired and minimum margin for a vehicle price.

    Brackets are ordered by ``max_price``; the last one (``max_price`` None)
    catches everything above. A non-numeric price is treated as 0.
    """
    brackets = brackets or DEFAULT_MARGIN_BRACKETS
    amount = _as_decimal(price)

    chosen = brackets[-1]
    for bracket in brackets:
        max_price = bracket.get('max_price')
        if max_price is None or amount <= Decimal(str(max_price)):
            chosen = bracket
            break

    desired_percent = Decimal(str(chosen['desired_percent']))
    minimum_percent = Decimal(str(chosen['minimum_percent']))
    return {
        'desired_percent': desired_percent,
        'minimum_percent': minimum_percent,
        'desired_amount': to_rupees(amount * desired_percent / 100),
        'minimum_amount': to_rupees(amount * minimum_percent / 100),
        'price_category': chosen['category'],
    }


def get_dynamic_margins(price):
    """Margins using the brackets configured in SystemConfig"""
    brackets = get_config_value('margin_brackets')
    if not isinstance(brackets, list) or not brackets:
        brackets = DEFAULT_MARGIN_BRACKETS
    try:
        return compute_margins(price, brackets)
    except (KeyError, TypeError, InvalidOperation) as e:
        logger.error(f"Invalid margin_brackets config, using defaults: {e}")
        return compute_margins(price)


def get_platform_fee():
    return get_config_value('platform_fee', DEFAULT_PLATFORM_FEE)


def get_default_logistics_cost():
    return get_config_value('default_logistics_cost', DEFAULT_LOGISTICS_COST)


def estimate_logistics_cost(origin, destination, rng=None):
    """
    Rough transport cost between two dealers, by how far apart they are.

    Falls back to the configured default when either dealer is unknown. A
    blank city or state never matches, so it is priced as a longer route.
    """
    rng = rng or random
    if origin is None or destination is None:
        return get_default_logistics_cost()

    origin_state = (origin.state or '').strip().lower()
    destination_state = (destination.state or '').strip().lower()
    origin_city = (origin.city or '').strip().lower()
    destination_city = (destination.city or '').strip().lower()
    if not origin_state or not destination_state or origin_state != destination_state:
        base, spread = INTERSTATE_LOGISTICS
    elif not origin_city or not destination_city or origin_city != destination_city:
        base, spread = INTERCITY_LOGISTICS
    else:
        base, spread = SAME_CITY_LOGISTICS
    return Decimal(base + rng.randrange(spread))


def calculate_customer_pricing(vehicle_price, logistics_cost, platform_fee, desired_percent, minimum_percent):
    """
    Showroom and floor prices for presenting a trade vehicle to a retail customer.

    landed = price + logistics + platform fee; margins are a percentage of the
    vehicle price. Raises ValueError when the minimum exceeds the desired margin
    or a percentage is negative.
    """
    price = _as_decimal(vehicle_price)
    desired_percent = _as_decimal(desired_percent)
    minimum_percent = _as_decimal(minimum_percent)
    if desired_percent < 0 or minimum_percent < 0:
        raise ValueError('Margin percentages cannot be negative.')
    if minimum_percent > desired_percent:
        raise ValueError('Minimum margin cannot be higher than desired margin.')

    landed_cost = price + _as_decimal(logistics_cost) + _as_decimal(platform_fee)
    desired_amount = to_rupees(price * desired_percent / 100)
    minimum_amount = to_rupees(price * minimum_percent / 100)
    return {
        'landed_cost': landed_cost,
        'desired_margin_amount': desired_amount,
        'minimum_margin_amount': minimum_amount,
        'showroom_price': landed_cost + desired_amount,
        'final_floor_price': landed_cost + minimum_amount,
    }
