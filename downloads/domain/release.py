"""
Release value object.

Release files are named ``<slug>-<version>.<ext>`` (e.g.
``my-plugin-2.1.0.zip``). Files that do not follow the pattern can still be
downloaded by name but are never offered by an update check.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

RELEASE_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")
RELEASE_NAME_PATTERN = re.compile(
    r"^(?P<slug>[A-Za-z0-9][A-Za-z0-9_-]*?)"
    r"-(?P<version>\d+(?:\.\d+)*(?:[-+.]?[A-Za-z][0-9A-Za-z.]*)?)"
    r"\.(?P<ext>[A-Za-z0-9]+)$"
)

# Pre-release labels, lowest first. Unknown labels sort below "dev".
_LABEL_RANKS = {"dev": 1, "alpha": 2, "a": 2, "beta": 3, "b": 3, "rc": 4}


def is_valid_release_id(release_id: str) -> bool:
    """
    Check that a release id is a plain file name.

    Args:
        release_id: Release identifier from a request

    Returns:
        True if it cannot escape the product directory
    """
    return bool(release_id) and bool(RELEASE_ID_PATTERN.match(release_id)) and ".." not in release_id


def parse_release_id(release_id: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Split a release file name into slug and version.

    Args:
        release_id: Release file name

    Returns:
        (slug, version), or (None, None) if the name carries no version
    """
    match = RELEASE_NAME_PATTERN.match(release_id or "")
    if not match:
        return None, None
    return match.group("slug"), match.group("version")


def version_key(version: str) -> Tuple[Tuple[int, int], ...]:
    """
    Build a sort key for a version string.

    Numeric parts compare as integers and pre-release labels sort before
    the release they precede, so ``1.0-beta < 1.0 < 1.0.1 < 1.10``.

    Args:
        version: Version string such as "2.1.0" or "3.0.0-rc1"

    Returns:
        Tuple usable with the comparison operators
    """
    key = []
    for part in re.findall(r"\d+|[A-Za-z]+", version or ""):
        if part.isdigit():
            key.append((2, int(part)))
        else:
            key.append((0, _LABEL_RANKS.get(part.lower(), 0)))
    key.append((1, 0))
    return tuple(key)


def is_newer_version(candidate: str, current: str) -> bool:
    """
    Check whether candidate is a later version than current.

    Args:
        candidate: Version offered by the server
        current: Version installed on the client

    Returns:
        True if candidate sorts strictly after current
    """
    return version_key(candidate) > version_key(current)


@dataclass(frozen=True)
class Release:
    """A downloadable release file of a product."""

    product_id: str
    release_id: str
    path: Path
    size: int

    @property
    def filename(self) -> str:
        """File name offered to the client."""
        return self.path.name

    @property
    def version(self) -> Optional[str]:
        """Version parsed from the file name, if it has one."""
        return parse_release_id(self.release_id)[1]
