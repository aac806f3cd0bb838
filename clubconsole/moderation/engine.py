"""Generic moderation controller over one record kind.

The engine owns the in-memory record list for its kind. Mutations follow
apply-after-confirm: the store write happens first and the identical change
is echoed into the list only once the write returned. At most one mutation
per record id is in flight; a second one is rejected with ``Busy``.

Store failures never escape: they become a :class:`Notification` in
``engine.notification`` and leave the list as it was.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from clubconsole.auth.models import Capability, Session
from clubconsole.auth.permissions import require_capability
from clubconsole.errors import Busy, NotFound, StoreFailure
from clubconsole.moderation.filtering import apply_filter_sort
from clubconsole.moderation.kinds import RecordKind
from clubconsole.moderation.models import FilterSortSpec, ModerationRecord
from clubconsole.notifications import Notification
from clubconsole.store import DocumentStore, utcnow_iso

logger = logging.getLogger(__name__)

DetailListener = Callable[[str], None]


class ModerationEngine:
    """Load, project, transition and delete records of one kind."""

    def __init__(
        self,
        kind: RecordKind,
        store: DocumentStore,
        session: Callable[[], Session],
        in_flight: Optional[set[str]] = None,
    ) -> None:
        self.kind = kind
        self._store = store
        self._session = session
        self._records: list[ModerationRecord] = []
        # Engines for the same kind may share one registry so the guard spans them.
        self._in_flight: set[str] = in_flight if in_flight is not None else set()
        self._detail_closed: list[DetailListener] = []
        self.loading = False
        self.notification: Optional[Notification] = None
        self.detail: Optional[ModerationRecord] = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def records(self) -> tuple[ModerationRecord, ...]:
        """The full list in load order. Read-only for callers."""
        return tuple(self._records)

    def get(self, record_id: str) -> ModerationRecord:
        for record in self._records:
            if record.id == record_id:
                return record
        raise NotFound(f"No {self.kind.name} record '{record_id}'")

    def is_busy(self, record_id: str) -> bool:
        return record_id in self._in_flight

    def view(self, spec: FilterSortSpec | None = None) -> list[ModerationRecord]:
        """Project the full list through *spec*; never mutates it."""
        return apply_filter_sort(self.kind, self._records, spec or FilterSortSpec())

    def dismiss_notification(self) -> None:
        self.notification = None

    async def load_all(self, order_by: str = "createdAt", direction: str = "desc") -> list[ModerationRecord]:
        """Replace the list with every stored record of this kind.

        On failure the list is left empty and an error notification is set.
        """
        require_capability(self._session(), Capability.view_admin_console)
        self.loading = True
        try:
            docs = await self._store.query(self.kind.collection, order_by, direction)
        except StoreFailure as exc:
            logger.warning("Loading %s failed: %s", self.kind.name, exc.message, extra={"kind": self.kind.name})
            self._records = []
            self.notification = Notification.error(self.kind.messages.loaded_failed)
            return []
        finally:
            self.loading = False

        self._records = [
            ModerationRecord.from_document(doc, self.kind.status_field, self.kind.initial_status)
            for doc in docs
            if doc.get("id")
        ]
        if self.detail is not None:
            self.detail = next((r for r in self._records if r.id == self.detail.id), None)
        return list(self._records)

    # ------------------------------------------------------------------
    # Detail view
    # ------------------------------------------------------------------

    def on_detail_closed(self, listener: DetailListener) -> Callable[[], None]:
        """Call *listener* with the record id whenever the detail view is force-closed."""
        self._detail_closed.append(listener)

        def unsubscribe() -> None:
            if listener in self._detail_closed:
                self._detail_closed.remove(listener)

        return unsubscribe

    def open_detail(self, record_id: str) -> ModerationRecord:
        require_capability(self._session(), Capability.view_admin_console)
        self.detail = self.get(record_id)
        return self.detail

    def close_detail(self) -> None:
        self.detail = None

    def _force_close(self, record_id: str) -> None:
        if self.detail is None or self.detail.id != record_id:
            return
        self.detail = None
        for listener in list(self._detail_closed):
            listener(record_id)

    def _drop(self, record_id: str) -> None:
        self._records = [r for r in self._records if r.id != record_id]
        self._force_close(record_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def transition(
        self, record_id: str, action: str, target: Optional[str] = None
    ) -> Optional[ModerationRecord]:
        """Move a record along its state machine.

        Returns the updated record, or ``None`` when the store write failed
        (see ``notification``). Raises ``Unauthorized``, ``Busy``,
        ``NotFound`` or ``InvalidTransition`` without side effects.
        """
        session = self._session()
        require_capability(session, Capability.mutate_moderation_record)
        if self.kind.transition_capability is not None:
            require_capability(session, self.kind.transition_capability, record_id)
        if record_id in self._in_flight:
            raise Busy(f"{self.kind.name} record '{record_id}' is already being updated")

        record = self.get(record_id)
        new_status = self.kind.next_status(record, action, target)
        log_extra = {"record_id": record_id, "kind": self.kind.name, "action": action}

        self._in_flight.add(record_id)
        try:
            await self._store.update(
                self.kind.collection,
                record_id,
                {self.kind.status_field: new_status, "updatedAt": utcnow_iso()},
            )
        except NotFound:
            logger.warning("%s record %s vanished before %s", self.kind.name, record_id, action, extra=log_extra)
            self._drop(record_id)
            self.notification = Notification.error(self.kind.messages.transition_failed[action])
            raise
        except StoreFailure as exc:
            logger.error("%s on %s record %s failed: %s", action, self.kind.name, record_id, exc.message, extra=log_extra)
            self.notification = Notification.error(self.kind.messages.transition_failed[action])
            return None
        finally:
            self._in_flight.discard(record_id)

        # A load_all may have replaced the entry while the write was pending.
        current = next((r for r in self._records if r.id == record_id), record)
        updated = current.with_status(new_status)
        self._records = [updated if r.id == record_id else r for r in self._records]
        if self.detail is not None and self.detail.id == record_id:
            self.detail = updated
        self.notification = Notification.success(self.kind.messages.transitioned[action])
        logger.info("%s record %s -> %s", self.kind.name, record_id, new_status, extra=log_extra)
        return updated

    async def change_role(self, record_id: str, role: str) -> Optional[ModerationRecord]:
        return await self.transition(record_id, "change_role", role)

    async def remove(self, record_id: str, confirmed: bool) -> bool:
        """Hard-delete a record once the boundary has confirmed.

        Returns False when not confirmed or when the store delete failed.
        A detail view open on the record is closed.
        """
        if not confirmed:
            return False
        session = self._session()
        require_capability(session, Capability.mutate_moderation_record)
        require_capability(session, self.kind.delete_capability, record_id)
        if record_id in self._in_flight:
            raise Busy(f"{self.kind.name} record '{record_id}' is already being updated")
        self.get(record_id)

        log_extra = {"record_id": record_id, "kind": self.kind.name, "action": "delete"}
        self._in_flight.add(record_id)
        try:
            await self._store.delete(self.kind.collection, record_id)
        except StoreFailure as exc:
            logger.error("Deleting %s record %s failed: %s", self.kind.name, record_id, exc.message, extra=log_extra)
            self.notification = Notification.error(self.kind.messages.delete_failed)
            return False
        finally:
            self._in_flight.discard(record_id)

        self._drop(record_id)
        self.notification = Notification.success(self.kind.messages.deleted)
        logger.info("Deleted %s record %s", self.kind.name, record_id, extra=log_extra)
        return True
