"""
Administrative license status commands.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class StatusAction(Enum):
    """Administrative status transitions."""

    SUSPEND = "suspend"
    REVOKE = "revoke"
    DEACTIVATE = "deactivate"
    REACTIVATE = "reactivate"


@dataclass
class ChangeLicenseStatusCommand:
    """Command to apply an administrative status transition."""

    license_id: uuid.UUID
    action: StatusAction


@dataclass
class RenewLicenseCommand:
    """Command to move a license's expiration date."""

    license_id: uuid.UUID
    expires_at: Optional[datetime]
    grace_days: Optional[int] = None
