from django.urls import path
from . import views

urlpatterns = [
    path('payments/gateways/', views.gateway_list, name='payment-gateway-list'),
    path('deals/<int:pk>/payments/', views.deal_payments, name='deal-payments'),
    path('deals/<int:pk>/payments/quote/', views.payment_quote, name='deal-payment-quote'),
]
