"""
Domain name normalization and the exempt-domain allow-list.

Two domains are the same activation target iff their normalized forms
are equal.
"""

import re
from typing import Iterable, Tuple, Union
from urllib.parse import urlsplit

from core.domain.exceptions import InvalidDomainError

BUILTIN_EXEMPT_PATTERNS = ("localhost", "*.local", "*.test")

_LABEL_PATTERN = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_PATTERN_SEPARATORS = re.compile(r"[\r\n,]+")
MAX_DOMAIN_LENGTH = 253


def normalize_domain(value: str) -> str:
    """
    Reduce a hostname or URL to its canonical hostname.

    Strips scheme, credentials, port, path and query, a leading ``www.``
    and trailing dots, and lowercases the result. Internationalized names
    are converted to their ASCII form.

    Args:
        value: Hostname or URL

    Returns:
        Normalized hostname

    Raises:
        InvalidDomainError: If no valid hostname can be extracted
    """
    raw = (value or "").strip()
    if not raw:
        raise InvalidDomainError("Domain cannot be empty")

    if "://" not in raw:
        raw = f"//{raw}"
    try:
        host = urlsplit(raw).hostname
    except ValueError as e:
        raise InvalidDomainError(f"Invalid domain: {value}") from e
    if not host:
        raise InvalidDomainError(f"Invalid domain: {value}")

    host = host.rstrip(".")
    try:
        host = host.encode("idna").decode("ascii")
    except UnicodeError as e:
        raise InvalidDomainError(f"Invalid domain: {value}") from e
    host = host.lower()

    if host.startswith("www."):
        host = host[4:]

    if not host or len(host) > MAX_DOMAIN_LENGTH:
        raise InvalidDomainError(f"Invalid domain: {value}")
    if not all(_LABEL_PATTERN.match(label) for label in host.split(".")):
        raise InvalidDomainError(f"Invalid domain: {value}")
    return host


def parse_patterns(patterns: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    """
    Split and canonicalize allow-list patterns.

    Args:
        patterns: Newline/comma separated string, or an iterable of such strings

    Returns:
        Tuple of lowercase patterns without empty entries
    """
    if not patterns:
        return ()
    if isinstance(patterns, str):
        patterns = [patterns]

    parsed = []
    for chunk in patterns:
        for pattern in _PATTERN_SEPARATORS.split(chunk or ""):
            pattern = pattern.strip().lower().rstrip(".")
            if pattern and pattern not in parsed:
                parsed.append(pattern)
    return tuple(parsed)


def is_exempt(domain: str, patterns: Union[str, Iterable[str], None]) -> bool:
    """
    Check a normalized domain against allow-list patterns.

    A plain pattern matches the domain itself and any subdomain of it.
    A ``*.`` pattern matches subdomains only.

    Args:
        domain: Normalized domain
        patterns: Allow-list patterns

    Returns:
        True if any pattern matches
    """
    for pattern in parse_patterns(patterns):
        if pattern.startswith("*."):
            if domain.endswith(pattern[1:]):
                return True
        elif domain == pattern or domain.endswith("." + pattern):
            return True
    return False


class DomainAllowList:
    """
    Exempt (developer/staging) domains that do not consume activations.

    The built-in patterns always apply in addition to configured ones.
    """

    def __init__(self, patterns: Union[str, Iterable[str], None] = None):
        """
        Initialize allow-list.

        Args:
            patterns: Configured patterns (newline/comma separated)
        """
        self.patterns = parse_patterns(BUILTIN_EXEMPT_PATTERNS) + tuple(
            p for p in parse_patterns(patterns) if p not in BUILTIN_EXEMPT_PATTERNS
        )

    def is_exempt(self, domain: str) -> bool:
        """
        Check whether a normalized domain is exempt.

        Args:
            domain: Normalized domain

        Returns:
            True if the domain matches a pattern
        """
        return is_exempt(domain, self.patterns)

    def __repr__(self) -> str:
        return f"DomainAllowList({list(self.patterns)!r})"
