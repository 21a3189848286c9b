from django.urls import path
from . import views

urlpatterns = [
    path('notifications/', views.notification_list, name='notification-list'),
    path('notifications/unread-count/', views.notification_unread_count, name='notification-unread-count'),
    path('notifications/read-all/', views.notification_mark_all_read, name='notification-read-all'),
    path('notifications/<int:pk>/read/', views.notification_mark_read, name='notification-read'),
    path('feedback/', views.feedback_create, name='feedback-create'),
    path('admin/feedback/', views.feedback_list, name='feedback-list'),
    path('admin/feedback/<int:pk>/', views.feedback_detail, name='feedback-detail'),
]
