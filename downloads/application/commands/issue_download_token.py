"""
IssueDownloadTokenCommand.

Command to mint a signed download link for a release.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class IssueDownloadTokenCommand:
    """Command to issue a download link to an activated installation."""

    license_key: str
    domain: str
    release_id: str
    client_ip: Optional[str] = None
