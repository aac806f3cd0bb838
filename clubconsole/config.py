"""Console configuration.

Settings come from an optional YAML file and are overridden by environment
variables:

- ``CLUBCONSOLE_HOME`` -- data directory (default ``~/.clubconsole``)
- ``CLUBCONSOLE_ADMIN_EMAILS`` -- comma-separated administrator allowlist
- ``CLUBCONSOLE_LOG_LEVEL`` / ``CLUBCONSOLE_LOG_FORMAT``
- ``GOOGLE_CLIENT_ID`` / ``GOOGLE_CLIENT_SECRET`` -- OAuth credentials
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

# Addresses that are always resolved to the admin role.
DEFAULT_ADMIN_EMAILS: tuple[str, ...] = (
    "admin@gaganvedhi.com",
    "president@gaganvedhi.com",
    "secretary@gaganvedhi.com",
)


@dataclass
class ConsoleConfig:
    """Resolved console settings."""

    home: Path = field(default_factory=lambda: Path.home() / ".clubconsole")
    admin_emails: tuple[str, ...] = DEFAULT_ADMIN_EMAILS
    log_level: str = "INFO"
    log_format: str = "text"
    google_client_id: str = ""
    google_client_secret: str = ""

    def __post_init__(self) -> None:
        self.home = Path(self.home).expanduser()
        self.admin_emails = tuple(e.strip().lower() for e in self.admin_emails if e.strip())

    @property
    def store_dir(self) -> Path:
        return self.home / "store"

    @property
    def accounts_dir(self) -> Path:
        return self.home / "accounts"


def _split_emails(raw: str) -> tuple[str, ...]:
    return tuple(part for part in raw.split(",") if part.strip())


def load_config(path: Optional[str | Path] = None) -> ConsoleConfig:
    """Load settings from *path* (YAML) and the environment."""
    data: dict = {}
    if path is not None:
        with open(path) as f:
            data = yaml.safe_load(f) or {}

    emails = data.get("admin_emails", DEFAULT_ADMIN_EMAILS)
    if isinstance(emails, str):
        emails = _split_emails(emails)

    env_emails = os.environ.get("CLUBCONSOLE_ADMIN_EMAILS", "")
    if env_emails:
        emails = _split_emails(env_emails)

    return ConsoleConfig(
        home=os.environ.get("CLUBCONSOLE_HOME") or data.get("home") or Path.home() / ".clubconsole",
        admin_emails=tuple(emails),
        log_level=os.environ.get("CLUBCONSOLE_LOG_LEVEL") or data.get("log_level", "INFO"),
        log_format=os.environ.get("CLUBCONSOLE_LOG_FORMAT") or data.get("log_format", "text"),
        google_client_id=os.environ.get("GOOGLE_CLIENT_ID") or data.get("google_client_id", ""),
        google_client_secret=os.environ.get("GOOGLE_CLIENT_SECRET") or data.get("google_client_secret", ""),
    )
