from rest_framework import status
from rest_framework.response import Response


class APIResponse:

    @staticmethod
    def success(data=None, message="Success", status_code=status.HTTP_200_OK):
        body = {"success": True, "message": message}
        if data is not None:
            body["data"] = data
        return Response(body, status=status_code)

    @staticmethod
    def not_found(message="Not found"):
        return Response(
            {"success": False, "error": {"code": "not_found", "message": message}},
            status=status.HTTP_404_NOT_FOUND,
        )
