from django.urls import path
from . import views

urlpatterns = [
    path('logistics/partners/', views.partner_list_create, name='logistics-partner-list'),
    path('logistics/partners/<int:pk>/', views.partner_detail, name='logistics-partner-detail'),
    path('logistics/estimate/', views.logistics_estimate, name='logistics-estimate'),
    path('deals/<int:pk>/transport/quotes/', views.deal_quotes, name='deal-transport-quotes'),
    path('deals/<int:pk>/transport/book/', views.deal_book_transport, name='deal-transport-book'),
    path('deals/<int:pk>/transport/status/', views.deal_transport_status, name='deal-transport-status'),
    path('deals/<int:pk>/transport/confirm-delivery/', views.deal_confirm_delivery, name='deal-confirm-delivery'),
]
