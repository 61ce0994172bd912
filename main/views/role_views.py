from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from main.helpers.response import APIResponse
from ..services.role_service import RoleService


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def me(request):
    user = request.user
    return APIResponse.success(data={
        'id': user.id,
        'username': user.username,
        'full_name': user.get_full_name(),
        'email': user.email,
        'role': user.role,
    })


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def list_roles(request):
    result = RoleService.get_all_roles()
    return APIResponse.success(data=result)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def get_role(request, role_code):
    result = RoleService.get_role(role_code)

    if result['success']:
        return APIResponse.success(data=result['role'])

    return APIResponse.not_found(message=result['message'])
