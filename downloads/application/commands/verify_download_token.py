"""
VerifyDownloadTokenCommand.

Command carrying the query parameters of a signed download link.
"""

from dataclasses import dataclass


@dataclass
class VerifyDownloadTokenCommand:
    """Command to verify a download link before streaming."""

    license_id: str
    release_id: str
    expires: str
    signature: str
