from django.urls import path
from . import views

urlpatterns = [
    path('dealers/', views.dealer_list, name='dealer-list'),
    path('dealers/me/', views.dealer_me, name='dealer-me'),
    path('dealers/me/dashboard/', views.dealer_dashboard, name='dealer-dashboard'),
    path('dealers/me/verification/', views.dealer_submit_verification, name='dealer-submit-verification'),
    path('dealers/me/private-pin/', views.dealer_set_private_pin, name='dealer-private-pin'),
    path('dealers/<int:pk>/', views.dealer_detail, name='dealer-detail'),
    path('admin/dealers/<int:pk>/verification/', views.dealer_verification_decision, name='dealer-verification-decision'),
]
