"""
URL configuration for the marketplace backend.

Every app's API is mounted under ``/api/v1/``.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Dealer Marketplace Admin Panel"
admin.site.site_title = "Dealer Marketplace Admin Portal"
admin.site.index_title = "Welcome to the Dealer Marketplace Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.dealers.urls')),
    path('api/v1/', include('backend.vehicles.urls')),
    path('api/v1/', include('backend.deals.urls')),
    path('api/v1/', include('backend.logistics.urls')),
    path('api/v1/', include('backend.payments.urls')),
    path('api/v1/', include('backend.documents.urls')),
    path('api/v1/', include('backend.notifications.urls')),
    path('api/v1/', include('backend.marketing.urls')),
    path('api/v1/', include('backend.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
