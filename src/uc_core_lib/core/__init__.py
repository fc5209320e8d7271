"""
Case lifecycle and notification synchronization engine.

Data flow:
  record store -> ChangeFeedListener -> ProjectionStore -> filtering (views, stats)
  staff action -> TransitionExecutor -> record store + NotificationEmitter -> ProjectionStore
"""

from uc_core_lib.core.exceptions import (
    CaseEngineError,
    SubscriptionError,
    ValidationError,
    TransitionInFlightError,
    WriteError,
    NotificationWriteError,
    RecordStoreError,
)
from uc_core_lib.core.projection import ProjectionStore
from uc_core_lib.core.listener import ChangeFeedListener, normalize_batch
from uc_core_lib.core.filtering import (
    CaseView,
    apply_filters,
    summarize,
    daily_series,
    date_cutoff,
)
from uc_core_lib.core.notifications import NotificationEmitter, describe_transition
from uc_core_lib.core.transitions import TransitionExecutor, TransitionOutcome, build_patch

__all__ = [
    # Errors
    "CaseEngineError",
    "SubscriptionError",
    "ValidationError",
    "TransitionInFlightError",
    "WriteError",
    "NotificationWriteError",
    "RecordStoreError",
    # Projection and feed
    "ProjectionStore",
    "ChangeFeedListener",
    "normalize_batch",
    # Views
    "CaseView",
    "apply_filters",
    "summarize",
    "daily_series",
    "date_cutoff",
    # Transitions
    "NotificationEmitter",
    "describe_transition",
    "TransitionExecutor",
    "TransitionOutcome",
    "build_patch",
]
