"""Dealer dashboard aggregation"""
from django.core.cache import cache
from django.db.models import Q
from django.utils import timezone

from backend.core.cache_utils import DASHBOARD_CACHE_TTL, make_cache_key


def dashboard_cache_key(dealer_id):
    return make_cache_key('dealer_dashboard', dealer_id)


def get_dashboard_data(dealer):
    """Stats plus the most recent vehicles and deals for a dealer"""
    from backend.vehicles.models import Vehicle
    from backend.vehicles.serializers import VehicleListSerializer
    from backend.deals.models import Transaction
    from backend.deals.serializers import TransactionListSerializer

    cache_key = dashboard_cache_key(dealer.id)
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    vehicles = Vehicle.objects.filter(dealer=dealer)
    transactions = Transaction.objects.filter(Q(buyer=dealer) | Q(seller=dealer))
    month_start = timezone.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    stats = {
        'totalInventory': vehicles.count(),
        'liveListings': vehicles.filter(status='live').count(),
        'inTransaction': vehicles.filter(status='in_transaction').count(),
        'soldThisMonth': vehicles.filter(status='sold', date_sold__gte=month_start).count(),
        'pendingOffers': transactions.filter(seller=dealer, status='offer_made').count(),
        'pendingPayments': transactions.filter(seller=dealer, escrow_status='paid', status='in_escrow').count(),
    }

    data = {
        'stats': stats,
        'recent_vehicles': VehicleListSerializer(vehicles.order_by('-created_at')[:5], many=True).data,
        'recent_transactions': TransactionListSerializer(
            transactions.select_related('vehicle', 'buyer', 'seller').order_by('-created_at')[:5],
            many=True, context={'dealer': dealer}
        ).data,
    }
    cache.set(cache_key, data, DASHBOARD_CACHE_TTL)
    return data
