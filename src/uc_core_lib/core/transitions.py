"""Transition Validator & Command Executor

Executes a staff-requested status change for one case:

1. Refuse if a transition for the same record is already in flight
2. Validate the record exists and the status belongs to its kind
3. Patch only the status fields (and remarks) on the remote document
4. On success, update the projection, then emit exactly one notification
5. On failure, leave the projection alone and raise WriteError

The in-flight lock is released on every path. Nothing is retried; the next
feed batch is authoritative and may overwrite the optimistic update.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Set

from uc_core_lib.clients.interfaces import RecordStore
from uc_core_lib.core.exceptions import (
    NotificationWriteError,
    RecordStoreError,
    TransitionInFlightError,
    ValidationError,
    WriteError,
)
from uc_core_lib.core.notifications import NotificationEmitter
from uc_core_lib.core.projection import ProjectionStore
from uc_core_lib.models.case import (
    CaseBase,
    CaseKind,
    LeakStatus,
    parse_status,
    status_values,
)
from uc_core_lib.models.notification import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of a confirmed transition"""

    record_id: str
    collection: str
    kind: CaseKind
    previous_status: Enum
    new_status: Enum
    remarks: Optional[str]
    case: CaseBase
    notification: Notification


def build_patch(kind: CaseKind, status: Enum, remarks: Optional[str] = None) -> Dict[str, Any]:
    """Field-level patch for a status change.

    Leak documents store their status as two flags; both are always written
    so they can never end up true together.
    """
    if CaseKind(kind) == CaseKind.LEAK_REPORT:
        patch: Dict[str, Any] = {
            "resolved": status == LeakStatus.RESOLVED,
            "rejected": status == LeakStatus.REJECTED,
        }
    else:
        patch = {"status": status.value}
    if remarks:
        patch["remarks"] = remarks
    return patch


class TransitionExecutor:
    """Validates and executes status transitions, one in flight per record"""

    def __init__(
        self,
        store: RecordStore,
        projection: ProjectionStore,
        emitter: NotificationEmitter,
    ):
        self.store = store
        self.projection = projection
        self.emitter = emitter
        self._in_flight: Set[str] = set()
        self._lock = threading.Lock()

    def is_in_flight(self, record_id: str) -> bool:
        with self._lock:
            return record_id in self._in_flight

    def _acquire(self, record_id: str) -> None:
        with self._lock:
            if record_id in self._in_flight:
                raise TransitionInFlightError(record_id)
            self._in_flight.add(record_id)

    def _release(self, record_id: str) -> None:
        with self._lock:
            self._in_flight.discard(record_id)

    async def request_transition(
        self,
        record_id: str,
        new_status: Any,
        remarks: Optional[str] = None,
        collection: Optional[str] = None,
    ) -> TransitionOutcome:
        """Change the status of one case.

        Args:
            record_id: Case id
            new_status: Target status (value or enum member) for the case's kind
            remarks: Optional staff remarks stored with the change
            collection: Restrict the lookup to one projection collection

        Returns:
            TransitionOutcome with the updated case and the notification sent

        Raises:
            TransitionInFlightError: Another transition for the record is running
            ValidationError: Unknown record or status; the store is not contacted
            WriteError: The remote status update failed; projection unchanged
            NotificationWriteError: Status updated but the notification failed
        """
        self._acquire(record_id)
        try:
            return await self._execute(record_id, new_status, remarks, collection)
        finally:
            self._release(record_id)

    def validate(
        self, record_id: str, new_status: Any, collection: Optional[str] = None
    ):
        """Resolve the record and target status, raising ValidationError if invalid."""
        found = self.projection.find(record_id, collection)
        if found is None:
            raise ValidationError(f"Unknown record {record_id}")
        collection, case = found

        status = parse_status(case.kind, new_status)
        if status is None:
            raise ValidationError(
                f"Invalid status {new_status!r} for {case.kind.value} {record_id}; "
                f"expected one of {', '.join(status_values(case.kind))}"
            )
        return collection, case, status

    async def _execute(
        self,
        record_id: str,
        new_status: Any,
        remarks: Optional[str],
        collection: Optional[str],
    ) -> TransitionOutcome:
        collection, case, status = self.validate(record_id, new_status, collection)
        remarks = remarks.strip() if remarks and remarks.strip() else None

        patch = build_patch(case.kind, status, remarks)
        try:
            await self.store.patch(collection, record_id, patch)
        except RecordStoreError as e:
            logger.error(f"Status update of {collection}/{record_id} to {status.value} failed: {e}")
            raise WriteError(f"Status update failed: {e}", record_id=record_id) from e

        logger.info(
            f"{case.kind.value} {record_id}: {case.status.value} -> {status.value}"
        )

        try:
            updated = self.projection.apply_local(
                collection, record_id, lambda current: current.with_status(status, remarks)
            )
        except KeyError:
            # Dropped by a feed batch while the write was in flight
            logger.warning(f"{collection}/{record_id} left the projection during its transition")
            updated = case.with_status(status, remarks)

        try:
            notification = await self.emitter.emit(
                updated.account_number,
                record_id,
                updated.kind,
                status,
                remarks=remarks,
                case=updated,
            )
        except WriteError as e:
            raise NotificationWriteError(
                f"Status of {record_id} changed to {status.value} but the notification failed: {e}",
                record_id=record_id,
                case=updated,
            ) from e

        return TransitionOutcome(
            record_id=record_id,
            collection=collection,
            kind=updated.kind,
            previous_status=case.status,
            new_status=status,
            remarks=remarks,
            case=updated,
            notification=notification,
        )
