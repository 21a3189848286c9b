from django.urls import path
from . import views

urlpatterns = [
    path('deals/<int:pk>/documents/', views.deal_documents, name='deal-documents'),
    path('deals/<int:pk>/rto/', views.deal_rto, name='deal-rto'),
    path('documents/<int:pk>/sign/', views.document_sign, name='document-sign'),
    path('documents/<int:pk>/verify/', views.document_verify, name='document-verify'),
    path('admin/rto/', views.rto_admin_list, name='rto-admin-list'),
    path('admin/rto/<int:pk>/status/', views.rto_admin_update_status, name='rto-admin-update-status'),
]
