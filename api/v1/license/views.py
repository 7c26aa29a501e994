"""
License API views.

These endpoints are called by client installations to:
- Activate a license on their domain
- Send periodic heartbeats
- Release their activation

Business denials are returned with HTTP 200 and ``success: false``.
"""

from asgiref.sync import async_to_sync
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from activations.application.commands.activate_domain import ActivateDomainCommand
from activations.application.commands.deactivate_domain import DeactivateDomainCommand
from activations.application.commands.validate_heartbeat import ValidateHeartbeatCommand
from activations.application.handlers.activate_domain_handler import ActivateDomainHandler
from activations.application.handlers.deactivate_domain_handler import DeactivateDomainHandler
from activations.application.handlers.validate_heartbeat_handler import (
    ValidateHeartbeatHandler,
)
from activations.infrastructure.repositories.django_activation_repository import (
    DjangoActivationRepository,
)
from api.v1.license.serializers import (
    ActivateRequestSerializer,
    ActivateResponseSerializer,
    DeactivateRequestSerializer,
    DeactivateResponseSerializer,
    ValidateRequestSerializer,
    ValidateResponseSerializer,
)
from api.v1.responses import client_ip, validation_error
from core import engine
from core.config import get_engine_config
from core.instrumentation import Status, StatusCode, get_tracer
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository

tracer = get_tracer(__name__)

_ERROR_RESPONSES = {
    400: {"description": "Malformed license key or domain"},
    429: {"description": "Too many requests"},
    503: {"description": "Storage temporarily unavailable"},
}


def _repositories():
    timeout = get_engine_config().storage_timeout
    return DjangoLicenseRepository(timeout=timeout), DjangoActivationRepository(timeout=timeout)


class ActivateView(APIView):
    """View for activating a license on a domain."""

    @extend_schema(
        operation_id="activate_license",
        summary="Activate License",
        description=(
            "Bind a domain to the license. Re-activating an active domain is "
            "idempotent and does not consume capacity."
        ),
        tags=["License API"],
        request=ActivateRequestSerializer,
        responses={200: ActivateResponseSerializer, **_ERROR_RESPONSES},
    )
    def post(self, request: Request) -> Response:
        """Activate a license on a domain."""
        return async_to_sync(self._handle_activate)(request)

    async def _handle_activate(self, request: Request) -> Response:
        """Async handler for activate."""
        with tracer.start_as_current_span("activate_license") as span:
            span.set_attribute("operation", "activate_license")

            serializer = ActivateRequestSerializer(data=request.data)
            if not serializer.is_valid():
                span.set_status(Status(StatusCode.ERROR, "Validation failed"))
                return validation_error(serializer.errors)

            license_repo, activation_repo = _repositories()
            handler = ActivateDomainHandler(
                resolver=engine.license_resolver(license_repo),
                ledger=engine.activation_ledger(activation_repo),
            )
            result = await handler.handle(
                ActivateDomainCommand(
                    license_key=serializer.validated_data["license_key"],
                    domain=serializer.validated_data["domain"],
                    client_ip=client_ip(request),
                    user_agent=request.META.get("HTTP_USER_AGENT"),
                )
            )

            span.set_attribute("result.success", result.success)
            if result.reason:
                span.set_attribute("result.reason", result.reason)
            span.set_status(Status(StatusCode.OK))
            return Response(ActivateResponseSerializer(result).data, status=status.HTTP_200_OK)


class ValidateView(APIView):
    """View for heartbeat validation."""

    @extend_schema(
        operation_id="validate_license",
        summary="Validate License",
        description=(
            "Heartbeat from an activated domain. Returns the effective status "
            "of the license (active, grace, expired or inactive)."
        ),
        tags=["License API"],
        request=ValidateRequestSerializer,
        responses={200: ValidateResponseSerializer, **_ERROR_RESPONSES},
    )
    def post(self, request: Request) -> Response:
        """Validate a license from an activated domain."""
        return async_to_sync(self._handle_validate)(request)

    async def _handle_validate(self, request: Request) -> Response:
        """Async handler for validate."""
        with tracer.start_as_current_span("validate_license") as span:
            span.set_attribute("operation", "validate_license")

            serializer = ValidateRequestSerializer(data=request.data)
            if not serializer.is_valid():
                span.set_status(Status(StatusCode.ERROR, "Validation failed"))
                return validation_error(serializer.errors)

            license_repo, activation_repo = _repositories()
            handler = ValidateHeartbeatHandler(
                resolver=engine.license_resolver(license_repo),
                ledger=engine.activation_ledger(activation_repo),
            )
            result = await handler.handle(
                ValidateHeartbeatCommand(
                    license_key=serializer.validated_data["license_key"],
                    domain=serializer.validated_data["domain"],
                    client_ip=client_ip(request),
                )
            )

            span.set_attribute("result.success", result.success)
            if result.status:
                span.set_attribute("license.status", result.status)
            span.set_status(Status(StatusCode.OK))
            return Response(ValidateResponseSerializer(result).data, status=status.HTTP_200_OK)


class DeactivateView(APIView):
    """View for releasing a domain's activation."""

    @extend_schema(
        operation_id="deactivate_license",
        summary="Deactivate License",
        description="Release the domain's activation so its slot can be reused.",
        tags=["License API"],
        request=DeactivateRequestSerializer,
        responses={200: DeactivateResponseSerializer, **_ERROR_RESPONSES},
    )
    def post(self, request: Request) -> Response:
        """Deactivate a license on a domain."""
        return async_to_sync(self._handle_deactivate)(request)

    async def _handle_deactivate(self, request: Request) -> Response:
        """Async handler for deactivate."""
        with tracer.start_as_current_span("deactivate_license") as span:
            span.set_attribute("operation", "deactivate_license")

            serializer = DeactivateRequestSerializer(data=request.data)
            if not serializer.is_valid():
                span.set_status(Status(StatusCode.ERROR, "Validation failed"))
                return validation_error(serializer.errors)

            license_repo, activation_repo = _repositories()
            handler = DeactivateDomainHandler(
                resolver=engine.license_resolver(license_repo),
                ledger=engine.activation_ledger(activation_repo),
            )
            result = await handler.handle(
                DeactivateDomainCommand(
                    license_key=serializer.validated_data["license_key"],
                    domain=serializer.validated_data["domain"],
                    reason=serializer.validated_data.get("reason") or "client_request",
                )
            )

            span.set_attribute("result.success", result.success)
            span.set_status(Status(StatusCode.OK))
            return Response(DeactivateResponseSerializer(result).data, status=status.HTTP_200_OK)
