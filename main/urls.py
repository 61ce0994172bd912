from django.urls import path
from main.views import notification_views, role_views


app_name = 'main'


urlpatterns = [
    path('auth-me', role_views.me, name='me'),

    path('roles', role_views.list_roles, name='role-list'),
    path('roles/<str:role_code>', role_views.get_role, name='role-detail'),

    path('notifications', notification_views.list_notifications, name='notification-list'),
    path('notifications/<int:notification_id>/read', notification_views.mark_notification_read, name='notification-read'),
]
