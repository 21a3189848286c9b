"""
Dealer and platform analytics.

Figures are computed over vehicles created inside the requested date range.
Money is returned as floats, like the rest of the reports API.
"""
import csv
import io
import logging
from collections import Counter, defaultdict
from datetime import date, timedelta
from decimal import Decimal

from django.db.models import Avg, Count, Q, Sum
from django.utils import timezone

from backend.core.cache_utils import REPORTS_CACHE_TTL, cached_query
from backend.core.models import SystemConfig, SystemLog, User
from backend.dealers.models import Dealer
from backend.deals.models import Transaction
from backend.deals.state import ACTIVE_STATUSES
from backend.vehicles.models import Vehicle

logger = logging.getLogger(__name__)

TOP_MAKES = 8
MONTHS_SHOWN = 6
REPORT_TYPES = ['user_activity', 'transaction_summary', 'system_health']


def _mean(values):
    values = list(values)
    return sum(values) / len(values) if values else 0


def _sale_value(vehicle):
    return vehicle.final_sale_price or vehicle.price or Decimal('0')


def _margin_percent(vehicle):
    margin = vehicle.profit_margin
    return float(margin * 100) if margin is not None else None


def _sold(vehicles):
    return [vehicle for vehicle in vehicles if vehicle.status == 'sold']


def _avg_days_in_stock(sold):
    return float(_mean(vehicle.days_in_stock for vehicle in sold))


def _avg_profit_margin(sold):
    margins = [m for m in (_margin_percent(vehicle) for vehicle in sold) if m is not None]
    return float(_mean(margins))


def market_comparison(dealer, sold, avg_days, avg_margin):
    """How the dealer's sold stock compares with everyone else's; None without data on both sides"""
    market_sold = list(Vehicle.objects.filter(status='sold').exclude(dealer=dealer))
    if not market_sold or not sold:
        return None

    market_days = _avg_days_in_stock(market_sold)
    market_margin = _avg_profit_margin(market_sold)
    return {
        'marketAvgDaysInStock': round(market_days, 1),
        'marketAvgProfitMargin': round(market_margin, 1),
        'avgDaysComparison': round((avg_days - market_days) / market_days * 100, 1) if market_days else 0,
        'profitComparison': round((avg_margin - market_margin) / market_margin * 100, 1) if market_margin else 0,
        'marketSampleSize': len(market_sold),
    }


def dealer_analytics(dealer, date_from, date_to):
    vehicles = list(Vehicle.objects.filter(
        dealer=dealer, created_at__date__gte=date_from, created_at__date__lte=date_to,
    ))
    sold = _sold(vehicles)
    transactions = Transaction.objects.filter(
        Q(buyer=dealer) | Q(seller=dealer), created_at__date__gte=date_from, created_at__date__lte=date_to,
    ).exclude(status='pending_customer_view')

    avg_days = _avg_days_in_stock(sold)
    avg_margin = _avg_profit_margin(sold)

    # Annualised: sales over the period relative to the average listing value
    avg_inventory_value = _mean(vehicle.price for vehicle in vehicles)
    total_sales_value = sum((_sale_value(vehicle) for vehicle in sold), Decimal('0'))
    days_covered = max((date_to - date_from).days, 1)
    turnover = float(total_sales_value / avg_inventory_value * 365 / days_covered) if avg_inventory_value else 0

    by_make = Counter(vehicle.make or 'Unknown' for vehicle in vehicles)
    total = len(vehicles)
    inventory_by_make = [
        {'name': make, 'value': count, 'percentage': round(count * 100 / total, 1)}
        for make, count in by_make.most_common(TOP_MAKES)
    ]

    days_by_make = defaultdict(list)
    for vehicle in sold:
        days_by_make[vehicle.make or 'Unknown'].append(vehicle.days_in_stock)
    days_in_stock_by_make = sorted(
        ({'name': make, 'value': round(_mean(days))} for make, days in days_by_make.items()),
        key=lambda item: item['value'],
    )[:TOP_MAKES]

    monthly = defaultdict(lambda: {'sales': 0, 'revenue': Decimal('0'), 'profit': Decimal('0'), 'margins': []})
    for vehicle in sold:
        sold_at = vehicle.date_sold or vehicle.updated_at
        bucket = monthly[(sold_at.year, sold_at.month)]
        bucket['sales'] += 1
        bucket['revenue'] += _sale_value(vehicle)
        margin = _margin_percent(vehicle)
        if margin is not None:
            bucket['profit'] += vehicle.final_sale_price - vehicle.cost_price
            bucket['margins'].append(margin)

    monthly_sales = []
    for (year, month) in sorted(monthly)[-MONTHS_SHOWN:]:
        bucket = monthly[(year, month)]
        monthly_sales.append({
            'name': date(year, month, 1).strftime('%b %Y'),
            'sales': bucket['sales'],
            'revenue': float(bucket['revenue']),
            'profit': float(bucket['profit']),
            'margin': round(_mean(bucket['margins']), 1),
        })

    return {
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'metrics': {
            'avgDaysInStockSold': round(avg_days, 1),
            'avgProfitMargin': round(avg_margin, 1),
            'inventoryTurnover': round(turnover, 2),
            'totalSales': len(sold),
            'totalRevenue': float(total_sales_value),
            'activeInventory': sum(1 for vehicle in vehicles if vehicle.status == 'live'),
            'totalVehicles': total,
            'totalTransactions': transactions.count(),
            'completedTransactions': transactions.filter(status='completed').count(),
        },
        'inventoryByMake': inventory_by_make,
        'daysInStockByMake': days_in_stock_by_make,
        'monthlySales': monthly_sales,
        'marketComparison': market_comparison(dealer, sold, avg_days, avg_margin),
    }


def _lakhs(amount):
    return f"{amount / 100000:.1f}"


def analytics_csv(dealer, analytics):
    """Sectioned CSV of a dealer_analytics() result"""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    metrics = analytics['metrics']
    period = analytics['period']

    writer.writerow([f"{dealer.business_name} - Business Analytics Report"])
    writer.writerow([f"Generated: {timezone.now():%Y-%m-%d %H:%M}"])
    writer.writerow([f"Period: {period['from']} to {period['to']}"])
    writer.writerow([])

    writer.writerow(['EXECUTIVE SUMMARY'])
    writer.writerow(['Metric', 'Value'])
    writer.writerow(['Total Sales', metrics['totalSales']])
    writer.writerow(['Total Revenue (Rs L)', _lakhs(metrics['totalRevenue'])])
    writer.writerow(['Active Inventory', metrics['activeInventory']])
    writer.writerow(['Avg Days in Stock (Sold)', f"{metrics['avgDaysInStockSold']:.1f}"])
    writer.writerow(['Avg Profit Margin (%)', f"{metrics['avgProfitMargin']:.1f}"])
    writer.writerow(['Inventory Turnover (annualised)', f"{metrics['inventoryTurnover']:.2f}"])
    writer.writerow([])

    writer.writerow(['INVENTORY BY MAKE'])
    writer.writerow(['Make', 'Count', 'Percentage'])
    for item in analytics['inventoryByMake']:
        writer.writerow([item['name'], item['value'], f"{item['percentage']}%"])
    writer.writerow([])

    writer.writerow(['MONTHLY SALES PERFORMANCE'])
    writer.writerow(['Month', 'Sales Count', 'Revenue (Rs L)', 'Profit (Rs L)', 'Margin (%)'])
    for item in analytics['monthlySales']:
        writer.writerow([item['name'], item['sales'], _lakhs(item['revenue']), _lakhs(item['profit']),
                         f"{item['margin']:.1f}"])
    return buffer.getvalue()


def _gmv_and_average():
    completed = Transaction.objects.filter(status='completed', final_amount__isnull=False)
    gmv = completed.aggregate(total=Sum('final_amount'))['total'] or Decimal('0')
    offers = Transaction.objects.exclude(status='pending_customer_view')
    values = [deal.final_amount or deal.offer_amount or Decimal('0')
              for deal in offers.only('final_amount', 'offer_amount')]
    return gmv, _mean(values)


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='platform_analytics')
def platform_analytics():
    gmv, avg_value = _gmv_and_average()
    deals = Transaction.objects.exclude(status='pending_customer_view')
    return {
        'totalUsers': User.objects.count(),
        'totalDealers': Dealer.objects.count(),
        'verifiedDealers': Dealer.objects.filter(verification_status='verified').count(),
        'customMarginUsers': User.objects.filter(custom_margin_enabled=True).count(),
        'totalVehicles': Vehicle.objects.count(),
        'liveVehicles': Vehicle.objects.filter(status='live').count(),
        'totalTransactions': deals.count(),
        'activeTransactions': deals.filter(status__in=ACTIVE_STATUSES).count(),
        'completedDeals': deals.filter(status='completed').count(),
        'totalGMV': float(gmv),
        'avgTransactionValue': float(avg_value),
        'avgDealerRating': float(Dealer.objects.filter(rating_count__gt=0).aggregate(avg=Avg('rating'))['avg'] or 0),
        'generatedAt': timezone.now().isoformat(),
    }


def _user_activity():
    week_ago = timezone.now() - timedelta(days=7)
    return {
        'total_users': User.objects.count(),
        'custom_margin_users': User.objects.filter(custom_margin_enabled=True).count(),
        'recent_logins': User.objects.filter(last_login__gt=week_ago).count(),
        'new_users_last_7_days': User.objects.filter(date_joined__gt=week_ago).count(),
    }


def _transaction_summary():
    gmv, avg_value = _gmv_and_average()
    deals = Transaction.objects.all()
    by_status = dict(deals.values_list('status').annotate(count=Count('id')).order_by())
    return {
        'total_transactions': deals.exclude(status='pending_customer_view').count(),
        'completed_transactions': by_status.get('completed', 0),
        'total_gmv': float(gmv),
        'avg_transaction_value': float(avg_value),
        'customer_mode_transactions': deals.filter(customer_mode_active=True).count(),
        'by_status': by_status,
    }


def _system_health():
    return {
        'total_logs': SystemLog.objects.count(),
        'error_logs': SystemLog.objects.filter(severity__in=['error', 'critical']).count(),
        'warning_logs': SystemLog.objects.filter(severity='warning').count(),
        'system_configs': SystemConfig.objects.count(),
        'active_configs': SystemConfig.objects.filter(is_active=True).count(),
    }


REPORT_BUILDERS = {
    'user_activity': ('User Activity Report', _user_activity),
    'transaction_summary': ('Transaction Summary Report', _transaction_summary),
    'system_health': ('System Health Report', _system_health),
}


def generate_report(report_type):
    title, builder = REPORT_BUILDERS[report_type]
    logger.info(f"Generating {report_type} report")
    return {'type': title, 'report_type': report_type, 'generated_at': timezone.now().isoformat(),
            'data': builder()}
