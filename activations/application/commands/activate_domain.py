"""
ActivateDomainCommand.

Command to bind a domain to the license identified by a plaintext key.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ActivateDomainCommand:
    """Command to activate a license on a domain."""

    license_key: str
    domain: str
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
