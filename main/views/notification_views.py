from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from main.helpers.response import APIResponse
from ..services.notification_service import NotificationService


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def list_notifications(request):
    unread_only = request.query_params.get('unread', '').lower() == 'true'
    result = NotificationService.list_for_user(request.user.id, unread_only=unread_only)
    return APIResponse.success(data=result)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def mark_notification_read(request, notification_id):
    result = NotificationService.mark_as_read(notification_id, request.user.id)

    if result['success']:
        return APIResponse.success(message=result['message'])

    return APIResponse.not_found(message=result['message'])
