"""Error taxonomy for the case engine.

Nothing here is fatal to the process; the worst outcome is a stale view.

    CaseEngineError
    ├── SubscriptionError        feed lost or denied; last snapshot is kept
    ├── ValidationError          bad transition request; never reaches the store
    │   └── TransitionInFlightError
    ├── WriteError               remote status update failed; not retried
    │   └── NotificationWriteError
    └── RecordStoreError         transport failure raised by store clients

Anomalies found during normalization are corrected and logged, never raised.
"""

from typing import Any, Optional


class CaseEngineError(Exception):
    """Base class for all case engine errors."""


class SubscriptionError(CaseEngineError):
    """A change feed subscription failed."""

    def __init__(self, collection: str, message: str):
        super().__init__(f"Subscription to '{collection}' failed: {message}")
        self.collection = collection


class ValidationError(CaseEngineError):
    """A transition request was rejected locally."""


class TransitionInFlightError(ValidationError):
    """Another transition for the same record has not completed yet."""

    def __init__(self, record_id: str):
        super().__init__(f"A transition is already in flight for record {record_id}")
        self.record_id = record_id


class WriteError(CaseEngineError):
    """A remote write failed. The caller decides whether to retry."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class NotificationWriteError(WriteError):
    """The status update was accepted but the notification write failed.

    ``case`` is the already-updated projection entry.
    """

    def __init__(self, message: str, record_id: str, case: Any = None):
        super().__init__(message, record_id=record_id)
        self.case = case


class RecordStoreError(CaseEngineError):
    """Transport-level failure talking to the record store."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
