"""Utility Console Core Library

Case models, projection, filtering and transition engine for the utility
operations console.
"""

__version__ = "0.1.0"

# Export shared models first (no dependencies)
from uc_core_lib.models import (
    Case, CaseKind, ServiceRequest, LeakReport,
    RequestStatus, LeakStatus, Notification,
    FilterCriteria, FilteredView, CaseStats, DateRange,
    normalize_case,
)

from uc_core_lib.core import (
    ProjectionStore,
    ChangeFeedListener,
    CaseView,
    apply_filters,
    summarize,
    NotificationEmitter,
    TransitionExecutor,
    TransitionOutcome,
    CaseEngineError,
    SubscriptionError,
    ValidationError,
    TransitionInFlightError,
    WriteError,
    NotificationWriteError,
)

from uc_core_lib.config import EngineConfig


# Lazy import for the engine facade: it pulls in the HTTP and Redis adapters
def __getattr__(name):
    """Lazy import for CaseEngine and RecordStoreClient."""
    if name == "CaseEngine":
        from uc_core_lib.engine import CaseEngine
        return CaseEngine
    if name == "RecordStoreClient":
        from uc_core_lib.clients import RecordStoreClient
        return RecordStoreClient
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

__all__ = [
    # Models
    "Case", "CaseKind", "ServiceRequest", "LeakReport",
    "RequestStatus", "LeakStatus", "Notification",
    "FilterCriteria", "FilteredView", "CaseStats", "DateRange",
    "normalize_case",
    # Engine
    "ProjectionStore", "ChangeFeedListener", "CaseView", "apply_filters", "summarize",
    "NotificationEmitter", "TransitionExecutor", "TransitionOutcome",
    "CaseEngine", "EngineConfig",
    # Errors
    "CaseEngineError", "SubscriptionError", "ValidationError",
    "TransitionInFlightError", "WriteError", "NotificationWriteError",
    # Clients (lazy loaded)
    "RecordStoreClient",
]
