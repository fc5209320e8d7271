"""Notification Emitter

Appends one Notification under ``notifications/{account_number}/records``
for each confirmed transition. The emitter does not deduplicate; it relies on
the transition executor calling it exactly once per accepted status change.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Union
from urllib.parse import quote

from uc_core_lib.clients.interfaces import RecordStore
from uc_core_lib.core.exceptions import RecordStoreError, WriteError
from uc_core_lib.models.case import CaseBase, CaseKind, ServiceRequest
from uc_core_lib.models.common import utc_now
from uc_core_lib.models.notification import Notification

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATIONS_COLLECTION = "notifications"


def describe_transition(kind: CaseKind, status: str, case: Optional[CaseBase] = None) -> str:
    """Customer-facing sentence for a status change."""
    if CaseKind(kind) == CaseKind.SERVICE_REQUEST:
        reference = case.service_id if isinstance(case, ServiceRequest) and case.service_id else ""
        if reference:
            return f"Your service request {reference} is now {status}."
        return f"Your service request is now {status}."
    return f"Report marked as {status}"


class NotificationEmitter:
    """Writes account-scoped notification records"""

    def __init__(
        self,
        store: RecordStore,
        collection: str = DEFAULT_NOTIFICATIONS_COLLECTION,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.collection = collection
        self.clock = clock

    def records_path(self, account_number: str) -> str:
        return f"{self.collection}/{quote(account_number, safe='')}/records"

    async def emit(
        self,
        account_number: str,
        record_id: str,
        kind: CaseKind,
        new_status: Union[str, object],
        remarks: Optional[str] = None,
        case: Optional[CaseBase] = None,
    ) -> Notification:
        """Write one unread notification for a confirmed transition.

        Args:
            account_number: Account the case belongs to
            record_id: Case id
            kind: Case kind (becomes the notification ``kind``)
            new_status: Status the case moved to
            remarks: Staff remarks, if any
            case: The updated case, used for request details

        Returns:
            The stored Notification, with its id

        Raises:
            WriteError: If the store rejects the write
        """
        kind = CaseKind(kind)
        status = getattr(new_status, "value", new_status)
        notification = Notification(
            account_number=account_number,
            record_id=record_id,
            description=describe_transition(kind, status, case),
            status=status,
            kind=kind,
            timestamp=self.clock(),
            read=False,
            remarks=remarks or None,
        )
        if isinstance(case, ServiceRequest):
            notification = notification.model_copy(
                update={
                    "email": case.email or None,
                    "subject": case.subject or None,
                    "service_id": case.service_id or None,
                }
            )

        try:
            notification_id = await self.store.add(
                self.records_path(account_number), notification.to_document()
            )
        except RecordStoreError as e:
            logger.error(f"Notification for {kind.value} {record_id} to account {account_number} failed: {e}")
            raise WriteError(f"Notification write failed: {e}", record_id=record_id) from e

        logger.info(
            f"Notified account {account_number}: {kind.value} {record_id} is now {status}"
        )
        return notification.model_copy(update={"id": notification_id})
