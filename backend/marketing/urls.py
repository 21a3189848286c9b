from django.urls import path
from . import views

urlpatterns = [
    path('marketing/assets/', views.asset_list, name='marketing-asset-list'),
    path('marketing/assets/summary/', views.assets_summary, name='marketing-assets-summary'),
    path('marketing/assets/<int:pk>/', views.asset_detail, name='marketing-asset-detail'),
    path('marketing/assets/<int:pk>/feedback/', views.asset_feedback, name='marketing-asset-feedback'),
    path('marketing/assets/<int:pk>/performance/', views.asset_performance, name='marketing-asset-performance'),
    path('marketing/assets/<int:pk>/publish/', views.asset_publish, name='marketing-asset-publish'),
    path('marketing/generate/', views.generate_content, name='marketing-generate'),
    path('marketing/insights/', views.marketing_insights, name='marketing-insights'),
    path('marketing/recommendations/', views.marketing_recommendations, name='marketing-recommendations'),
    path('marketing/queue/', views.processing_queue, name='marketing-processing-queue'),
    path('marketing/batch/', views.batch_processing, name='marketing-batch'),
    path('marketing/social-accounts/', views.social_account_list_connect, name='social-account-list-connect'),
    path('marketing/social-accounts/<int:pk>/disconnect/', views.social_account_disconnect,
         name='social-account-disconnect'),
    path('vehicles/<int:pk>/processing/', views.vehicle_processing_status, name='vehicle-processing-status'),
    path('vehicles/<int:pk>/processing/reset/', views.vehicle_reset_processing, name='vehicle-processing-reset'),
    path('vehicles/<int:pk>/processing/<str:kind>/', views.vehicle_process, name='vehicle-process'),
]
