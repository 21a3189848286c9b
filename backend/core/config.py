"""
Typed access to SystemConfig rows with a cache in front.

Defaults apply when a key has not been seeded or is inactive, so the
marketplace works on an empty database.
"""
import json
import logging
from decimal import Decimal, InvalidOperation

from django.core.cache import cache

from .models import SystemConfig

logger = logging.getLogger(__name__)

CONFIG_CACHE_TTL = 300  # 5 minutes
CONFIG_CACHE_PREFIX = 'system_config'

DEFAULT_MARGIN_BRACKETS = [
    {'max_price': 300000, 'desired_percent': 15, 'minimum_percent': 10, 'category': 'Budget'},
    {'max_price': 800000, 'desired_percent': 12, 'minimum_percent': 8, 'category': 'Mid-Range'},
    {'max_price': None, 'desired_percent': 10, 'minimum_percent': 6, 'category': 'Premium'},
]

DEFAULT_CONFIGS = {
    'platform_fee': {
        'value': '13000', 'data_type': 'number', 'category': 'pricing',
        'description': 'Flat platform fee added to every landed cost (INR)',
    },
    'default_logistics_cost': {
        'value': '8000', 'data_type': 'number', 'category': 'logistics',
        'description': 'Logistics cost used when dealer locations are unknown (INR)',
    },
    'margin_brackets': {
        'value': json.dumps(DEFAULT_MARGIN_BRACKETS), 'data_type': 'json', 'category': 'pricing',
        'description': 'Price brackets with desired and minimum margin percentages',
    },
    'payment_success_rate': {
        'value': '0.9', 'data_type': 'number', 'category': 'payments',
        'description': 'Probability that a simulated payment succeeds',
    },
}


def _cache_key(key):
    return f'{CONFIG_CACHE_PREFIX}:{key}'


def coerce_value(raw, data_type):
    """Convert a stored string to its declared type"""
    if data_type == 'number':
        try:
            return Decimal(str(raw))
        except (InvalidOperation, ValueError):
            logger.warning(f"Config value {raw!r} is not a number")
            return None
    if data_type == 'boolean':
        return str(raw).strip().lower() in ('1', 'true', 'yes', 'on')
    if data_type == 'json':
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Config value {raw!r} is not valid JSON")
            return None
    return raw


def get_config_value(key, default=None):
    cached = cache.get(_cache_key(key))
    if cached is not None:
        return cached

    value = None
    config = SystemConfig.objects.filter(config_key=key, is_active=True).first()
    if config is not None:
        value = coerce_value(config.config_value, config.data_type)
    elif key in DEFAULT_CONFIGS:
        spec = DEFAULT_CONFIGS[key]
        value = coerce_value(spec['value'], spec['data_type'])

    if value is None:
        return default
    cache.set(_cache_key(key), value, CONFIG_CACHE_TTL)
    return value


def invalidate_config(key):
    cache.delete(_cache_key(key))


def seed_default_configs(user=None):
    """Create missing default SystemConfig rows. Returns the keys created."""
    created_keys = []
    for key, spec in DEFAULT_CONFIGS.items():
        _, created = SystemConfig.objects.get_or_create(
            config_key=key,
            defaults={
                'config_value': spec['value'],
                'data_type': spec['data_type'],
                'category': spec['category'],
                'description': spec['description'],
                'last_modified_by': user,
            },
        )
        if created:
            created_keys.append(key)
        invalidate_config(key)
    return created_keys
