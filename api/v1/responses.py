"""
Response helpers shared by the v1 views.
"""
from typing import Optional

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response


def validation_error(errors) -> Response:
    """
    Build a 400 response in the API error envelope.

    Args:
        errors: Serializer errors

    Returns:
        Response
    """
    return Response(
        {"error": {"code": "VALIDATION_ERROR", "message": "Invalid request", "details": errors}},
        status=status.HTTP_400_BAD_REQUEST,
    )


def client_ip(request: Request) -> Optional[str]:
    """
    Client IP resolved by RateLimitMiddleware, falling back to REMOTE_ADDR.

    Args:
        request: DRF request

    Returns:
        Client IP or None
    """
    return getattr(request, "client_ip", None) or request.META.get("REMOTE_ADDR")
