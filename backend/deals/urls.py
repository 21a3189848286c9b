from django.urls import path
from . import views

urlpatterns = [
    path('deals/', views.deal_list_create, name='deal-list-create'),
    path('deals/offer-check/', views.offer_check, name='deal-offer-check'),
    path('deals/margins/', views.margin_preview, name='deal-margin-preview'),
    path('deals/customer-mode/', views.customer_mode_enter, name='deal-customer-mode'),
    path('deals/<int:pk>/', views.deal_detail, name='deal-detail'),
    path('deals/<int:pk>/counter/', views.deal_counter, name='deal-counter'),
    path('deals/<int:pk>/accept/', views.deal_accept, name='deal-accept'),
    path('deals/<int:pk>/reject/', views.deal_reject, name='deal-reject'),
    path('deals/<int:pk>/cancel/', views.deal_cancel, name='deal-cancel'),
    path('deals/<int:pk>/messages/', views.deal_messages, name='deal-messages'),
    path('deals/<int:pk>/release-funds/', views.deal_release_funds, name='deal-release-funds'),
    path('deals/<int:pk>/rate/', views.deal_rate, name='deal-rate'),
    path('deals/<int:pk>/archive/', views.deal_archive, name='deal-archive'),
    path('deals/<int:pk>/customer-view/', views.customer_view, name='deal-customer-view'),
    path('deals/<int:pk>/customer-mode/exit/', views.customer_mode_exit, name='deal-customer-mode-exit'),
    path('deals/<int:pk>/private-pricing/', views.private_pricing, name='deal-private-pricing'),
    path('deals/<int:pk>/finalize/', views.customer_finalize, name='deal-customer-finalize'),
]
