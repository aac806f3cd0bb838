"""Error taxonomy for the console core.

``Unauthorized`` and ``InvalidTransition`` signal a boundary that is out of
sync with the core; the operation fails without side effects.
``StoreFailure`` wraps any I/O error raised by a store collaborator and is
converted into a user-visible notification by the moderation engine.
"""

from __future__ import annotations

from clubconsole.notifications import Notification


class ConsoleError(Exception):
    """Base exception for all console errors."""

    code = "console_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_notification(self) -> Notification:
        return Notification.error(self.message)


class Unauthorized(ConsoleError):
    """A capability check failed."""

    code = "unauthorized"


class InvalidTransition(ConsoleError):
    """The record's current status has no outgoing edge for the action."""

    code = "invalid_transition"


class Busy(ConsoleError):
    """Another mutation on the same record is still in flight."""

    code = "busy"


class StoreFailure(ConsoleError):
    """An I/O error from a store collaborator."""

    code = "store_failure"


class NotFound(ConsoleError):
    """The record disappeared between the list and the detail view."""

    code = "not_found"


class ProviderError(ConsoleError):
    """An identity-provider operation failed; the message is user-facing."""

    code = "provider_error"
