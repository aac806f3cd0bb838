"""Auth domain models for identities, roles, capabilities, and sessions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    """Authorization level. Roles are not ordered; only ``admin`` is privileged."""

    user = "user"
    member = "member"
    admin = "admin"

    @classmethod
    def parse(cls, value: Any, default: "Role | None" = None) -> "Role":
        """Return the role named by *value*, or *default* (``user``) if unknown."""
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return default or cls.user


class Capability(str, Enum):
    """Named permissions checked by the authorization gate."""

    view_admin_console = "view_admin_console"
    mutate_moderation_record = "mutate_moderation_record"
    change_user_role = "change_user_role"
    delete_user = "delete_user"
    view_profile = "view_profile"


@dataclass(frozen=True)
class Identity:
    """An authenticated principal as reported by the identity provider."""

    uid: str
    email: str
    display_name: str = ""
    photo_url: str = ""
    provider: str = "password"
    # True only on the event emitted for a freshly created account.
    is_new: bool = False


@dataclass(frozen=True)
class Session:
    """Snapshot of the signed-in identity and its resolved role."""

    identity: Optional[Identity] = None
    role: Role = Role.user
    ready: bool = False

    @property
    def uid(self) -> Optional[str]:
        return self.identity.uid if self.identity is not None else None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


def role_document(identity: Identity, role: Role, created_at: str) -> dict:
    """Build the stored role document for *identity*."""
    return {
        "displayName": identity.display_name,
        "email": identity.email,
        "photoURL": identity.photo_url,
        "role": role.value,
        "createdAt": created_at,
    }
