from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, register, user_me,
    user_list, user_detail, user_margin_permission,
    system_config_list_create, system_config_detail,
    system_log_list, global_search
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # Platform admin endpoints
    path('admin/users/', user_list, name='admin-user-list'),
    path('admin/users/<int:pk>/', user_detail, name='admin-user-detail'),
    path('admin/users/<int:pk>/margin-permission/', user_margin_permission, name='admin-user-margin-permission'),
    path('admin/config/', system_config_list_create, name='system-config-list-create'),
    path('admin/config/<str:key>/', system_config_detail, name='system-config-detail'),
    path('admin/logs/', system_log_list, name='system-log-list'),

    # Global search endpoint
    path('search/', global_search, name='global-search'),
]
