"""
CheckForUpdateHandler.

Handler comparing an installed version with the latest release and handing
out a signed link when an update is available.
"""
import logging
from datetime import datetime, timezone

from activations.domain.domain_name import normalize_domain
from activations.domain.services import ActivationLedger
from core.domain.value_objects import DenialReason
from core.metrics import download_tokens_issued_total, update_checks_total
from downloads.application.commands.check_for_update import CheckForUpdateCommand
from downloads.application.dto.download_dto import UpdateCheckResponseDTO
from downloads.domain.release import is_newer_version
from downloads.domain.signed_url import SignedUrlService
from downloads.ports.release_storage import ReleaseStorage
from licenses.domain.services import LicenseResolver

logger = logging.getLogger(__name__)


class CheckForUpdateHandler:
    """Handler for CheckForUpdateCommand."""

    def __init__(
        self,
        resolver: LicenseResolver,
        ledger: ActivationLedger,
        release_storage: ReleaseStorage,
        signed_urls: SignedUrlService,
    ):
        """Initialize handler with its collaborators."""
        self.resolver = resolver
        self.ledger = ledger
        self.release_storage = release_storage
        self.signed_urls = signed_urls

    def _denied(self, reason: DenialReason, **fields) -> UpdateCheckResponseDTO:
        update_checks_total.labels(result=reason.value).inc()
        return UpdateCheckResponseDTO(success=False, reason=reason.value, **fields)

    async def handle(self, command: CheckForUpdateCommand) -> UpdateCheckResponseDTO:
        """
        Handle check for update command.

        The check counts as a heartbeat of the calling domain. The slug sent
        by the client must name the license's product; the latest release is
        the product's file with the highest version.

        Args:
            command: CheckForUpdateCommand

        Returns:
            UpdateCheckResponseDTO with a signed link when a newer release exists
        """
        domain = normalize_domain(command.domain)

        license = await self.resolver.resolve(command.license_key)
        if license is None:
            return self._denied(DenialReason.NOT_FOUND)

        result = await self.ledger.validate(license, domain, command.client_ip)
        if not result.success:
            return self._denied(result.reason, status=result.status.value)
        status = result.status.value

        if command.slug != license.product_id:
            logger.info(
                "Update check slug mismatch",
                extra={"license_id": str(license.id), "slug": command.slug},
            )
            return self._denied(DenialReason.SLUG_MISMATCH, status=status)

        release = await self.release_storage.latest(license.product_id)
        if release is None:
            return self._denied(DenialReason.NO_RELEASE, status=status)

        if not is_newer_version(release.version, command.version):
            return self._denied(
                DenialReason.UP_TO_DATE, status=status, latest_version=release.version
            )

        signed = self.signed_urls.issue(license.id, release.release_id)
        download_tokens_issued_total.inc()
        update_checks_total.labels(result="update_available").inc()
        logger.info(
            "Update offered",
            extra={
                "license_id": str(license.id),
                "old_version": command.version,
                "new_version": release.version,
                "release_id": release.release_id,
            },
        )

        return UpdateCheckResponseDTO(
            success=True,
            status=status,
            latest_version=release.version,
            new_version=release.version,
            url=signed.url,
            expires_at=datetime.fromtimestamp(signed.expires, tz=timezone.utc),
            release_id=release.release_id,
            size=release.size,
        )
