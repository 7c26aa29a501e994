"""
VerifyDownloadTokenHandler.

Handler for verifying a signed download link before streaming.
"""
import logging
import uuid

from core.domain.exceptions import (
    LicenseExpiredError,
    LicenseInactiveError,
    ReleaseNotFoundError,
    SignatureInvalidError,
)
from core.domain.value_objects import EffectiveStatus
from core.metrics import download_token_verifications_total
from downloads.application.commands.verify_download_token import VerifyDownloadTokenCommand
from downloads.domain.release import Release
from downloads.domain.signed_url import SignedUrlService
from downloads.ports.release_storage import ReleaseStorage
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)


class VerifyDownloadTokenHandler:
    """Handler for VerifyDownloadTokenCommand."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        release_storage: ReleaseStorage,
        signed_urls: SignedUrlService,
    ):
        """Initialize handler with its collaborators."""
        self.license_repository = license_repository
        self.release_storage = release_storage
        self.signed_urls = signed_urls

    async def handle(self, command: VerifyDownloadTokenCommand) -> Release:
        """
        Handle verify download token command.

        Args:
            command: VerifyDownloadTokenCommand

        Returns:
            Release to stream

        Raises:
            SignatureInvalidError: If the link is expired, tampered or dangling
            LicenseExpiredError: If the license expired after the link was issued
            LicenseInactiveError: If the license was disabled after the link was issued
            ReleaseNotFoundError: If the release is no longer available
        """
        if not self.signed_urls.verify(
            command.license_id, command.release_id, command.expires, command.signature
        ):
            download_token_verifications_total.labels(result="invalid_signature").inc()
            logger.warning(
                "Download signature rejected",
                extra={"license_id": command.license_id, "release_id": command.release_id},
            )
            raise SignatureInvalidError()

        try:
            license_id = uuid.UUID(command.license_id)
        except ValueError as e:
            download_token_verifications_total.labels(result="invalid_signature").inc()
            raise SignatureInvalidError() from e

        license = await self.license_repository.find_by_id(license_id)
        if license is None:
            download_token_verifications_total.labels(result="not_found").inc()
            raise SignatureInvalidError()

        status = license.effective_status()
        if not status.is_usable:
            download_token_verifications_total.labels(result=status.value).inc()
            if status == EffectiveStatus.EXPIRED:
                raise LicenseExpiredError()
            raise LicenseInactiveError()

        release = await self.release_storage.find(license.product_id, command.release_id)
        if release is None:
            download_token_verifications_total.labels(result="release_not_found").inc()
            raise ReleaseNotFoundError()

        download_token_verifications_total.labels(result="success").inc()
        logger.info(
            "Download authorized",
            extra={"license_id": str(license.id), "release_id": release.release_id},
        )
        return release
