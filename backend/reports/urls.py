from django.urls import path
from . import views

urlpatterns = [
    path('reports/analytics/', views.dealer_analytics, name='dealer-analytics'),
    path('reports/analytics/export/', views.dealer_analytics_export, name='dealer-analytics-export'),
    path('admin/analytics/', views.platform_analytics, name='platform-analytics'),
    path('admin/reports/<str:report_type>/', views.generate_admin_report, name='admin-report'),
]
