"""
Server secret provisioning.

Secrets come from settings (usually populated from the environment) or from
a JSON secrets file. Missing secrets are generated once and written to that
file. Provisioning runs at startup and fails fast. Workers starting together
serialize on a lock file so they all end up with the secrets that were
written first.
"""

import fcntl
import json
import logging
import os
import secrets
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

SECRET_NAMES = ("server_secret", "key_salt", "ip_salt")
SECRET_BYTES = 32


@dataclass(frozen=True)
class ServerSecrets:
    """Secrets used for key hashing, IP hashing and URL signing."""

    server_secret: str
    key_salt: str
    ip_salt: str

    def __post_init__(self):
        """Reject empty or short secrets."""
        for name in SECRET_NAMES:
            value = getattr(self, name)
            if not value or len(value) < SECRET_BYTES:
                raise ImproperlyConfigured(
                    f"Secret '{name}' must be at least {SECRET_BYTES} characters"
                )

    def __repr__(self) -> str:
        return "ServerSecrets(<redacted>)"


def _read_secrets_file(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ImproperlyConfigured(f"Cannot read secrets file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ImproperlyConfigured(f"Secrets file {path} must contain a JSON object")
    return {name: data[name] for name in SECRET_NAMES if data.get(name)}


def _write_secrets_file(path: Path, values: Dict[str, str]) -> None:
    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(values, handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise ImproperlyConfigured(f"Cannot persist generated secrets to {path}: {e}") from e


@contextmanager
def _secrets_file_lock(path: Path):
    """Hold an exclusive lock on the sidecar lock file of a secrets file."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(path.with_name(path.name + ".lock"), "a+")
    except OSError as e:
        raise ImproperlyConfigured(f"Cannot lock secrets file {path}: {e}") from e
    with handle:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def provision_secrets(
    configured: Dict[str, Optional[str]],
    secrets_file: Optional[str] = None,
) -> ServerSecrets:
    """
    Load server secrets, generating and persisting any that are missing.

    Args:
        configured: Secrets given explicitly (settings or environment)
        secrets_file: Path of the JSON file holding generated secrets

    Returns:
        ServerSecrets instance

    Raises:
        ImproperlyConfigured: If secrets are missing and cannot be persisted
    """
    values = {name: configured.get(name) for name in SECRET_NAMES if configured.get(name)}
    if len(values) == len(SECRET_NAMES):
        return ServerSecrets(**values)

    if not secrets_file:
        missing = sorted(set(SECRET_NAMES) - set(values))
        raise ImproperlyConfigured(
            f"Missing secrets {missing} and no SECRETS_FILE configured to persist them"
        )

    path = Path(secrets_file)
    generated = []
    with _secrets_file_lock(path):
        # Read under the lock so a file written by another worker is seen.
        stored = _read_secrets_file(path)
        for name in SECRET_NAMES:
            if name in values:
                continue
            if name not in stored:
                stored[name] = secrets.token_hex(SECRET_BYTES)
                generated.append(name)
            values[name] = stored[name]

        if generated:
            _write_secrets_file(path, stored)

    if generated:
        logger.warning(
            "Generated new server secrets",
            extra={"secrets": generated, "secrets_file": str(path)},
        )

    return ServerSecrets(**values)
