"""User-visible notification values handed to the rendering boundary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class NotificationKind(str, Enum):
    success = "success"
    error = "error"
    info = "info"


@dataclass(frozen=True)
class Notification:
    """A ``{text, kind}`` message for the boundary to display."""

    text: str
    kind: NotificationKind = NotificationKind.info

    @classmethod
    def success(cls, text: str) -> "Notification":
        return cls(text=text, kind=NotificationKind.success)

    @classmethod
    def error(cls, text: str) -> "Notification":
        return cls(text=text, kind=NotificationKind.error)

    def to_dict(self) -> dict:
        return {"text": self.text, "kind": self.kind.value}
