"""
Download DTOs for API responses.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class DownloadTokenResponseDTO:
    """DTO for an issued download link."""

    success: bool
    reason: Optional[str] = None
    status: Optional[str] = None
    url: Optional[str] = None
    expires_at: Optional[datetime] = None
    release_id: Optional[str] = None
    size: Optional[int] = None


@dataclass
class UpdateCheckResponseDTO:
    """DTO for the outcome of an update check."""

    success: bool
    reason: Optional[str] = None
    status: Optional[str] = None
    latest_version: Optional[str] = None
    new_version: Optional[str] = None
    url: Optional[str] = None
    expires_at: Optional[datetime] = None
    release_id: Optional[str] = None
    size: Optional[int] = None
