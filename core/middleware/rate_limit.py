"""
Rate limiting middleware.

Applies the sliding-window rate limiter to every API request, keyed by
client IP and the action of the resolved URL.
"""

import ipaddress
import logging
from typing import Callable, Iterable, Optional

from asgiref.sync import async_to_sync
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.urls import Resolver404, resolve

from core import engine
from core.config import get_engine_config
from core.domain.exceptions import RateLimitExceededError
from core.metrics import errors_total

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/"


def get_client_ip(request: HttpRequest, trusted_headers: Iterable[str] = ()) -> Optional[str]:
    """
    Resolve the client IP of a request.

    Only headers listed in ``trusted_headers`` are consulted, in order; the
    first syntactically valid address wins. REMOTE_ADDR is the fallback.

    Args:
        request: HTTP request
        trusted_headers: META keys set by trusted proxies (e.g. HTTP_X_FORWARDED_FOR)

    Returns:
        Client IP address or None
    """
    for header in trusted_headers:
        value = request.META.get(header)
        if not value:
            continue
        candidate = value.split(",")[0].strip()
        try:
            return str(ipaddress.ip_address(candidate))
        except ValueError:
            logger.debug("Ignoring malformed %s header", header)
    return request.META.get("REMOTE_ADDR")


def get_action(request: HttpRequest) -> Optional[str]:
    """
    Map a request to its rate-limit action.

    Args:
        request: HTTP request

    Returns:
        URL name of an API endpoint, "default" for unknown API paths,
        or None for requests outside the API
    """
    if not request.path.startswith(API_PREFIX):
        return None
    try:
        return resolve(request.path_info).url_name or "default"
    except Resolver404:
        return "default"


class RateLimitMiddleware:
    """
    Rate limiting middleware per client IP and action.

    Denied requests get a 429 with Retry-After. The limiter fails open when
    the cache is unavailable.
    """

    def __init__(self, get_response: Callable):
        """Initialize middleware."""
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        """
        Process request with rate limiting.

        Args:
            request: HTTP request

        Returns:
            HTTP response, or 429 when the client is over its limit
        """
        config = get_engine_config()
        client_ip = get_client_ip(request, config.trusted_proxy_headers)
        request.client_ip = client_ip  # type: ignore

        action = get_action(request)
        if action is None or client_ip is None:
            return self.get_response(request)

        limiter = engine.rate_limiter(config=config)
        try:
            async_to_sync(limiter.enforce)(client_ip, action)
        except RateLimitExceededError as exc:
            errors_total.labels(error_type=exc.code, endpoint=request.path).inc()
            logger.warning(
                "Rate limit exceeded",
                extra={
                    "action": action,
                    "retry_after": exc.retry_after,
                    "correlation_id": getattr(request, "correlation_id", None),
                },
            )
            response = JsonResponse(
                {"error": {"code": exc.code, "message": exc.message}}, status=429
            )
            response["Retry-After"] = str(exc.retry_after)
            return response

        return self.get_response(request)
