"""
Cache invalidation signals
Automatically invalidate cache when listings or deals change
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .cache_utils import invalidate_marketplace_cache, invalidate_dashboard_cache

logger = logging.getLogger(__name__)


def _invalidate_now_and_on_commit(func, *args):
    # Immediately, and again after commit so a concurrent read inside the
    # transaction window cannot leave stale data behind
    func(*args)
    transaction.on_commit(lambda: func(*args))


# --- Signal Handlers ---

@receiver([post_save, post_delete])
def invalidate_vehicle_cache(sender, instance, **kwargs):
    """Drop marketplace listings and the owner's dashboard when a vehicle changes"""
    if sender.__name__ != 'Vehicle':
        return
    try:
        from backend.vehicles.models import Vehicle
        if isinstance(instance, Vehicle):
            _invalidate_now_and_on_commit(invalidate_marketplace_cache)
            _invalidate_now_and_on_commit(invalidate_dashboard_cache, instance.dealer_id)
    except Exception as e:
        logger.warning(f"Error in invalidate_vehicle_cache signal: {e}")


@receiver([post_save, post_delete])
def invalidate_transaction_cache(sender, instance, **kwargs):
    """Drop both parties' dashboards when a deal changes"""
    if sender.__name__ != 'Transaction':
        return
    try:
        from backend.deals.models import Transaction
        if isinstance(instance, Transaction):
            _invalidate_now_and_on_commit(invalidate_dashboard_cache, instance.buyer_id, instance.seller_id)
    except Exception as e:
        logger.warning(f"Error in invalidate_transaction_cache signal: {e}")
