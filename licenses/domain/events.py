"""
License domain events.

Domain events represent something that happened in the license domain.
"""

from dataclasses import dataclass
from typing import Optional

from core.domain.events import DomainEvent


@dataclass(frozen=True)
class LicenseCreated(DomainEvent):
    """Event raised when a license is created."""

    owner_id: str
    product_id: str
    key_hash_prefix: str
    max_activations: Optional[int] = None


@dataclass(frozen=True)
class LicenseStatusChanged(DomainEvent):
    """Event raised when an administrative status change is applied."""

    old_status: str
    new_status: str
