"""
Shared data models for the utility operations console.

This package provides Pydantic models for the cases staff triage, the
notifications customers receive, and the filter/statistics views derived
from the case projection.
"""

from uc_core_lib.models.case import (
    # Core case models
    Case,
    CaseBase,
    CaseKind,
    ServiceRequest,
    LeakReport,

    # Lifecycle
    RequestStatus,
    LeakStatus,
    STATUS_ENUMS,
    status_values,
    parse_status,

    # Normalization
    normalize_case,
    ADDRESS_NOT_AVAILABLE,
    REQUEST_TYPES,
    OTHER_REQUEST_TYPE,
)
from uc_core_lib.models.notification import Notification
from uc_core_lib.models.filters import (
    MATCH_ALL,
    DateRange,
    FilterCriteria,
    FilteredView,
    DailyCount,
    CaseStats,
)
from uc_core_lib.models.common import (
    utc_now,
    parse_utc_timestamp,
    coerce_timestamp,
)

__all__ = [
    # Core case
    "Case", "CaseBase", "CaseKind", "ServiceRequest", "LeakReport",
    # Lifecycle
    "RequestStatus", "LeakStatus", "STATUS_ENUMS", "status_values", "parse_status",
    # Normalization
    "normalize_case", "ADDRESS_NOT_AVAILABLE", "REQUEST_TYPES", "OTHER_REQUEST_TYPE",
    # Notifications
    "Notification",
    # Filters and views
    "MATCH_ALL", "DateRange", "FilterCriteria", "FilteredView", "DailyCount", "CaseStats",
    # Timestamps
    "utc_now", "parse_utc_timestamp", "coerce_timestamp",
]
