"""
IssueDownloadTokenHandler.

Handler for minting signed download links.
"""
import logging
from datetime import datetime, timezone

from activations.domain.domain_name import normalize_domain
from activations.domain.services import ActivationLedger
from core.domain.value_objects import DenialReason
from core.metrics import download_tokens_issued_total
from downloads.application.commands.issue_download_token import IssueDownloadTokenCommand
from downloads.application.dto.download_dto import DownloadTokenResponseDTO
from downloads.domain.signed_url import SignedUrlService
from downloads.ports.release_storage import ReleaseStorage
from licenses.domain.services import LicenseResolver

logger = logging.getLogger(__name__)


class IssueDownloadTokenHandler:
    """Handler for IssueDownloadTokenCommand."""

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

    async def handle(self, command: IssueDownloadTokenCommand) -> DownloadTokenResponseDTO:
        """
        Handle issue download token command.

        The request counts as a heartbeat of the calling domain, so the
        domain must hold an active activation on a usable license.

        Args:
            command: IssueDownloadTokenCommand

        Returns:
            DownloadTokenResponseDTO with the signed URL on success
        """
        domain = normalize_domain(command.domain)

        license = await self.resolver.resolve(command.license_key)
        if license is None:
            return DownloadTokenResponseDTO(success=False, reason=DenialReason.NOT_FOUND.value)

        result = await self.ledger.validate(license, domain, command.client_ip)
        if not result.success:
            return DownloadTokenResponseDTO(
                success=False, reason=result.reason.value, status=result.status.value
            )

        release = await self.release_storage.find(license.product_id, command.release_id)
        if release is None:
            return DownloadTokenResponseDTO(
                success=False,
                reason=DenialReason.RELEASE_NOT_FOUND.value,
                status=result.status.value,
            )

        signed = self.signed_urls.issue(license.id, release.release_id)
        download_tokens_issued_total.inc()
        logger.info(
            "Download token issued",
            extra={
                "license_id": str(license.id),
                "release_id": release.release_id,
                "expires": signed.expires,
            },
        )

        return DownloadTokenResponseDTO(
            success=True,
            status=result.status.value,
            url=signed.url,
            expires_at=datetime.fromtimestamp(signed.expires, tz=timezone.utc),
            release_id=release.release_id,
            size=release.size,
        )
