"""
CreateLicenseCommand.

Command issued by order fulfillment to create a license.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class CreateLicenseCommand:
    """Command to create a license for an owner and product."""

    owner_id: str
    product_id: str
    order_ref: Optional[str] = None
    max_activations: Optional[int] = None
    expires_at: Optional[datetime] = None
    grace_days: Optional[int] = None
