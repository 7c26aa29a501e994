"""
Updates API views.

These endpoints let activated installations:
- Check whether a newer release exists and get a signed link to it
- Obtain a short-lived signed link for a named release
- Download the release through that link
"""

from asgiref.sync import async_to_sync
from django.http import FileResponse
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from activations.infrastructure.repositories.django_activation_repository import (
    DjangoActivationRepository,
)
from api.v1.responses import client_ip, validation_error
from api.v1.updates.serializers import (
    DownloadQuerySerializer,
    DownloadTokenRequestSerializer,
    DownloadTokenResponseSerializer,
    UpdateCheckRequestSerializer,
    UpdateCheckResponseSerializer,
)
from core import engine
from core.config import get_engine_config
from core.domain.exceptions import SignatureInvalidError
from core.instrumentation import Status, StatusCode, get_tracer
from downloads.application.commands.check_for_update import CheckForUpdateCommand
from downloads.application.commands.issue_download_token import IssueDownloadTokenCommand
from downloads.application.commands.verify_download_token import VerifyDownloadTokenCommand
from downloads.application.handlers.check_for_update_handler import CheckForUpdateHandler
from downloads.application.handlers.issue_download_token_handler import (
    IssueDownloadTokenHandler,
)
from downloads.application.handlers.verify_download_token_handler import (
    VerifyDownloadTokenHandler,
)
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository

tracer = get_tracer(__name__)


class UpdateCheckView(APIView):
    """View comparing an installed version with the latest release."""

    @extend_schema(
        operation_id="check_for_update",
        summary="Check For Update",
        description=(
            "Compare the installed version with the latest release of the "
            "license's product. When a newer release exists the response "
            "carries a signed download URL and the file size. The domain must "
            "be activated; the check counts as a heartbeat."
        ),
        tags=["Updates API"],
        request=UpdateCheckRequestSerializer,
        responses={
            200: UpdateCheckResponseSerializer,
            400: {"description": "Malformed license key, domain or version"},
            429: {"description": "Too many requests"},
        },
    )
    def post(self, request: Request) -> Response:
        """Check for a newer release."""
        return async_to_sync(self._handle_check)(request)

    async def _handle_check(self, request: Request) -> Response:
        """Async handler for update check."""
        with tracer.start_as_current_span("check_for_update") as span:
            span.set_attribute("operation", "check_for_update")

            serializer = UpdateCheckRequestSerializer(data=request.data)
            if not serializer.is_valid():
                span.set_status(Status(StatusCode.ERROR, "Validation failed"))
                return validation_error(serializer.errors)

            config = get_engine_config()
            license_repo = DjangoLicenseRepository(timeout=config.storage_timeout)
            activation_repo = DjangoActivationRepository(timeout=config.storage_timeout)
            handler = CheckForUpdateHandler(
                resolver=engine.license_resolver(license_repo, config),
                ledger=engine.activation_ledger(activation_repo, config),
                release_storage=engine.release_storage(config),
                signed_urls=engine.signed_url_service(config),
            )
            result = await handler.handle(
                CheckForUpdateCommand(
                    license_key=serializer.validated_data["license_key"],
                    domain=serializer.validated_data["domain"],
                    slug=serializer.validated_data["slug"],
                    version=serializer.validated_data["version"],
                    client_ip=client_ip(request),
                )
            )

            span.set_attribute("result.success", result.success)
            if result.reason:
                span.set_attribute("result.reason", result.reason)
            span.set_status(Status(StatusCode.OK))
            return Response(
                UpdateCheckResponseSerializer(result).data, status=status.HTTP_200_OK
            )


class DownloadTokenView(APIView):
    """View for issuing signed download links."""

    @extend_schema(
        operation_id="issue_download_token",
        summary="Issue Download Token",
        description=(
            "Mint a signed, time-boxed download URL for a release of the "
            "license's product. The domain must be activated."
        ),
        tags=["Updates API"],
        request=DownloadTokenRequestSerializer,
        responses={
            200: DownloadTokenResponseSerializer,
            400: {"description": "Malformed license key or domain"},
            429: {"description": "Too many requests"},
        },
    )
    def post(self, request: Request) -> Response:
        """Issue a signed download link."""
        return async_to_sync(self._handle_issue)(request)

    async def _handle_issue(self, request: Request) -> Response:
        """Async handler for download token."""
        with tracer.start_as_current_span("issue_download_token") as span:
            span.set_attribute("operation", "issue_download_token")

            serializer = DownloadTokenRequestSerializer(data=request.data)
            if not serializer.is_valid():
                span.set_status(Status(StatusCode.ERROR, "Validation failed"))
                return validation_error(serializer.errors)

            config = get_engine_config()
            license_repo = DjangoLicenseRepository(timeout=config.storage_timeout)
            activation_repo = DjangoActivationRepository(timeout=config.storage_timeout)
            handler = IssueDownloadTokenHandler(
                resolver=engine.license_resolver(license_repo, config),
                ledger=engine.activation_ledger(activation_repo, config),
                release_storage=engine.release_storage(config),
                signed_urls=engine.signed_url_service(config),
            )
            result = await handler.handle(
                IssueDownloadTokenCommand(
                    license_key=serializer.validated_data["license_key"],
                    domain=serializer.validated_data["domain"],
                    release_id=serializer.validated_data["release_id"],
                    client_ip=client_ip(request),
                )
            )

            span.set_attribute("result.success", result.success)
            span.set_status(Status(StatusCode.OK))
            return Response(
                DownloadTokenResponseSerializer(result).data, status=status.HTTP_200_OK
            )


class DownloadView(APIView):
    """View streaming a release through a signed link."""

    @extend_schema(
        operation_id="download_release",
        summary="Download Release",
        description="Verify the signed link and stream the release file.",
        tags=["Updates API"],
        parameters=[
            OpenApiParameter("license_id", str, OpenApiParameter.QUERY, required=True),
            OpenApiParameter("release_id", str, OpenApiParameter.QUERY, required=True),
            OpenApiParameter("expires", int, OpenApiParameter.QUERY, required=True),
            OpenApiParameter("sig", str, OpenApiParameter.QUERY, required=True),
        ],
        responses={
            (200, "application/octet-stream"): bytes,
            403: {"description": "Invalid or expired link, or license no longer usable"},
            404: {"description": "Release not found"},
            429: {"description": "Too many requests"},
        },
    )
    def get(self, request: Request):
        """Stream a release file."""
        return async_to_sync(self._handle_download)(request)

    async def _handle_download(self, request: Request):
        """Async handler for download."""
        with tracer.start_as_current_span("download_release") as span:
            span.set_attribute("operation", "download_release")

            serializer = DownloadQuerySerializer(data=request.query_params)
            if not serializer.is_valid():
                span.set_status(Status(StatusCode.ERROR, "Missing link parameters"))
                raise SignatureInvalidError()

            config = get_engine_config()
            storage = engine.release_storage(config)
            handler = VerifyDownloadTokenHandler(
                license_repository=DjangoLicenseRepository(timeout=config.storage_timeout),
                release_storage=storage,
                signed_urls=engine.signed_url_service(config),
            )
            release = await handler.handle(
                VerifyDownloadTokenCommand(
                    license_id=serializer.validated_data["license_id"],
                    release_id=serializer.validated_data["release_id"],
                    expires=serializer.validated_data["expires"],
                    signature=serializer.validated_data["sig"],
                )
            )

            span.set_attribute("release.id", release.release_id)
            span.set_status(Status(StatusCode.OK))
            return FileResponse(
                storage.open(release),
                as_attachment=True,
                filename=release.filename,
                content_type="application/octet-stream",
            )
