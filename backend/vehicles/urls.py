from django.urls import path
from . import views

urlpatterns = [
    path('vehicles/', views.vehicle_list_create, name='vehicle-list-create'),
    path('vehicles/price-suggestion/', views.vehicle_price_suggestion, name='vehicle-price-suggestion'),
    path('vehicles/<int:pk>/', views.vehicle_detail, name='vehicle-detail'),
    path('vehicles/<int:pk>/publish/', views.vehicle_publish, name='vehicle-publish'),
    path('vehicles/<int:pk>/view/', views.vehicle_record_view, name='vehicle-record-view'),
    path('vehicles/<int:pk>/transactions/', views.vehicle_transactions, name='vehicle-transactions'),
    path('marketplace/', views.marketplace, name='marketplace'),
]
