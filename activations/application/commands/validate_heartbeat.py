"""
ValidateHeartbeatCommand.

Command sent periodically by activated installations.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ValidateHeartbeatCommand:
    """Command to validate a license from an activated domain."""

    license_key: str
    domain: str
    client_ip: Optional[str] = None
