"""
Test suite for the reports module
Tests: dealer analytics, market comparison, CSV export, platform analytics and admin reports
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.models import SystemLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.reports import analytics


def create_sold_vehicle(dealer, make, cost, sale, listed_days_ago, sold_days_ago, now):
    return TestDataFactory.create_vehicle(
        dealer, status='sold', make=make, price=sale, cost_price=Decimal(cost), final_sale_price=Decimal(sale),
        date_listed=now - timedelta(days=listed_days_ago), date_sold=now - timedelta(days=sold_days_ago),
    )


class DealerAnalyticsTests(TestCase):

    def setUp(self):
        TestDataFactory.clear_cache()
        self.now = timezone.now()
        self.dealer = TestDataFactory.create_dealer(business_name='Sharma Motors')
        create_sold_vehicle(self.dealer, 'Maruti', 400000, 460000, 30, 10, self.now)
        create_sold_vehicle(self.dealer, 'Maruti', 500000, 550000, 20, 0, self.now)
        self.live = TestDataFactory.create_vehicle(self.dealer, make='Hyundai', model='i20')
        self.client = AuthenticatedAPIClient().authenticate_user(self.dealer.owner)
        self.today = timezone.localdate()

    def test_metrics(self):
        data = analytics.dealer_analytics(self.dealer, self.today - timedelta(days=30), self.today)
        metrics = data['metrics']
        self.assertEqual(metrics['totalSales'], 2)
        self.assertEqual(metrics['totalRevenue'], 1010000.0)
        self.assertEqual(metrics['avgDaysInStockSold'], 20.0)
        self.assertEqual(metrics['avgProfitMargin'], 12.5)
        self.assertEqual(metrics['activeInventory'], 1)
        self.assertEqual(metrics['totalVehicles'], 3)

    def test_inventory_by_make(self):
        data = analytics.dealer_analytics(self.dealer, self.today - timedelta(days=30), self.today)
        self.assertEqual(data['inventoryByMake'][0], {'name': 'Maruti', 'value': 2, 'percentage': 66.7})
        self.assertEqual(data['daysInStockByMake'], [{'name': 'Maruti', 'value': 20}])
        self.assertEqual(sum(month['sales'] for month in data['monthlySales']), 2)

    def test_turnover_is_annualised(self):
        data = analytics.dealer_analytics(self.dealer, self.today - timedelta(days=365), self.today)
        average_value = (460000 + 550000 + 500000) / 3
        self.assertAlmostEqual(data['metrics']['inventoryTurnover'], round(1010000 / average_value, 2), places=2)

    def test_no_market_comparison_without_other_sales(self):
        data = analytics.dealer_analytics(self.dealer, self.today - timedelta(days=30), self.today)
        self.assertIsNone(data['marketComparison'])

    def test_market_comparison(self):
        other = TestDataFactory.create_dealer()
        create_sold_vehicle(other, 'Honda', 400000, 420000, 40, 0, self.now)
        data = analytics.dealer_analytics(self.dealer, self.today - timedelta(days=30), self.today)
        comparison = data['marketComparison']
        self.assertEqual(comparison['marketAvgDaysInStock'], 40.0)
        self.assertEqual(comparison['marketAvgProfitMargin'], 5.0)
        self.assertEqual(comparison['avgDaysComparison'], -50.0)
        self.assertEqual(comparison['profitComparison'], 150.0)
        self.assertEqual(comparison['marketSampleSize'], 1)

    def test_transactions_counted_for_both_sides(self):
        seller = TestDataFactory.create_dealer()
        bought = TestDataFactory.create_vehicle(seller)
        TestDataFactory.create_transaction(bought, self.dealer, status='completed')
        TestDataFactory.create_transaction(self.live, seller)
        TestDataFactory.create_transaction(TestDataFactory.create_vehicle(seller), self.dealer,
                                           status='pending_customer_view')
        data = analytics.dealer_analytics(self.dealer, self.today - timedelta(days=30), self.today)
        self.assertEqual(data['metrics']['totalTransactions'], 2)
        self.assertEqual(data['metrics']['completedTransactions'], 1)

    def test_endpoint(self):
        response = self.client.get('/api/v1/reports/analytics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Cache-Control'], 'private, max-age=60')
        self.assertEqual(response.data['period']['to'], self.today.isoformat())

    def test_empty_range(self):
        response = self.client.get('/api/v1/reports/analytics/?date_from=2020-01-01&date_to=2020-12-31')
        self.assertEqual(response.data['metrics']['totalVehicles'], 0)
        self.assertEqual(response.data['metrics']['inventoryTurnover'], 0)
        self.assertEqual(response.data['inventoryByMake'], [])

    def test_invalid_range(self):
        response = self.client.get('/api/v1/reports/analytics/?date_from=2024-12-31&date_to=2024-01-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/reports/analytics/?date_from=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_csv_export(self):
        response = self.client.get('/api/v1/reports/analytics/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'text/csv')
        self.assertIn('Sharma_Motors_Analytics_Report_', response['Content-Disposition'])
        content = response.content.decode()
        self.assertIn('Sharma Motors - Business Analytics Report', content)
        self.assertIn('EXECUTIVE SUMMARY', content)
        self.assertIn('Total Sales,2', content)
        self.assertIn('Total Revenue (Rs L),10.1', content)
        self.assertIn('Maruti,2,66.7%', content)

    def test_requires_dealer_profile(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/reports/analytics/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class PlatformReportTests(TestCase):

    def setUp(self):
        TestDataFactory.clear_cache()
        self.seller = TestDataFactory.create_dealer()
        self.buyer = TestDataFactory.create_dealer(verified=False)
        vehicle = TestDataFactory.create_vehicle(self.seller, status='sold')
        TestDataFactory.create_transaction(vehicle, self.buyer, offer_amount=400000, status='completed')
        TestDataFactory.create_transaction(TestDataFactory.create_vehicle(self.seller), self.buyer,
                                           offer_amount=200000)
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_platform_analytics(self):
        response = self.client.get('/api/v1/admin/analytics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totalDealers'], 2)
        self.assertEqual(response.data['verifiedDealers'], 1)
        self.assertEqual(response.data['totalUsers'], 3)
        self.assertEqual(response.data['totalTransactions'], 2)
        self.assertEqual(response.data['activeTransactions'], 1)
        self.assertEqual(response.data['completedDeals'], 1)
        self.assertEqual(response.data['totalGMV'], 400000.0)
        self.assertEqual(response.data['avgTransactionValue'], 300000.0)

    def test_platform_analytics_admin_only(self):
        self.client.authenticate_user(self.seller.owner)
        response = self.client.get('/api/v1/admin/analytics/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_transaction_summary_report(self):
        response = self.client.post('/api/v1/admin/reports/transaction_summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['type'], 'Transaction Summary Report')
        self.assertEqual(response.data['data']['by_status'], {'completed': 1, 'offer_made': 1})
        self.assertEqual(response.data['data']['total_gmv'], 400000.0)

        log = SystemLog.objects.get(action_type='report_generation')
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.target_id, 'transaction_summary')

    def test_system_health_report(self):
        TestDataFactory.set_config('platform_fee', 15000)
        response = self.client.post('/api/v1/admin/reports/system_health/')
        self.assertEqual(response.data['data']['active_configs'], 1)

    def test_user_activity_report(self):
        response = self.client.post('/api/v1/admin/reports/user_activity/')
        self.assertEqual(response.data['data']['new_users_last_7_days'], 3)

    def test_unknown_report(self):
        response = self.client.post('/api/v1/admin/reports/churn/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(SystemLog.objects.filter(action_type='report_generation').exists())
