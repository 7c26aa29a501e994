"""
Activation DTOs for API responses.

Unsuccessful results carry a machine-readable ``reason``.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class ActivateDomainResponseDTO:
    """DTO for activate response."""

    success: bool
    status: Optional[str] = None
    reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    remaining_activations: Optional[int] = None
    activation_id: Optional[uuid.UUID] = None


@dataclass
class HeartbeatResponseDTO:
    """DTO for heartbeat validation response."""

    success: bool
    status: Optional[str] = None
    reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    grace_until: Optional[datetime] = None


@dataclass
class DeactivateDomainResponseDTO:
    """DTO for deactivate response."""

    success: bool
    reason: Optional[str] = None
    remaining_activations: Optional[int] = None
