"""
License DTOs for API and command responses.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class CreateLicenseResponseDTO:
    """
    DTO for a created license.

    ``license_key`` is the only place the plaintext key ever appears.
    """

    license_id: uuid.UUID
    license_key: str
    key_mask: str
    status: str
    expires_at: Optional[datetime]
    grace_until: Optional[datetime]
    max_activations: Optional[int]


@dataclass
class LicenseDTO:
    """DTO for license information."""

    id: uuid.UUID
    product_id: str
    key_mask: str
    status: str
    effective_status: str
    expires_at: Optional[datetime]
    grace_until: Optional[datetime]
    max_activations: Optional[int]
    active_activations: int
    remaining_activations: Optional[int]
    created_at: datetime
