"""
CheckForUpdateCommand.

Command asking whether a newer release exists for an installation.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class CheckForUpdateCommand:
    """Command to check an installed version against the latest release."""

    license_key: str
    domain: str
    slug: str
    version: str
    client_ip: Optional[str] = None
