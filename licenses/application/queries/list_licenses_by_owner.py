"""
ListLicensesByOwnerQuery.

Query to list an owner's licenses for account views.
"""
from dataclasses import dataclass


@dataclass
class ListLicensesByOwnerQuery:
    """Query to list all licenses of an owner."""

    owner_id: str
