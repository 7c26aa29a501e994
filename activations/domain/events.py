"""
Activation domain events.

Domain events represent something that happened in the activation domain.
The aggregate is the license the domain is bound to.
"""
from dataclasses import dataclass
from typing import Optional

from core.domain.events import DomainEvent


@dataclass(frozen=True)
class DomainActivated(DomainEvent):
    """Event raised when a domain is bound to a license for the first time."""

    activation_id: str
    domain: str
    remaining_activations: Optional[int] = None


@dataclass(frozen=True)
class DomainDeactivated(DomainEvent):
    """Event raised when a domain's activation is released."""

    domain: str
    reason: Optional[str] = None
