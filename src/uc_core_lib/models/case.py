"""Case data models - service requests and leak reports.

This module defines the canonical shape of the records triaged in the
operations console, and the normalization chokepoint that turns loosely-typed
remote documents into that shape.

Key Models:
- CaseKind: Which collection a case belongs to (request / report)
- RequestStatus: ServiceRequest lifecycle (any state may move to any other)
- LeakStatus: LeakReport lifecycle (PENDING → RESOLVED | REJECTED)
- ServiceRequest / LeakReport: The two case variants
- Case: Tagged union over both variants (discriminated on ``kind``)

Architecture:
- Cases are immutable; changes produce copies via ``with_status``
- ``normalize_case`` is total: it never raises, it fills defaults
- LeakReport stores a single status; ``resolved``/``rejected`` are derived,
  so both can never be true at once
"""

import logging
from abc import abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated

from uc_core_lib.models.common import coerce_timestamp, utc_now

logger = logging.getLogger(__name__)

ADDRESS_NOT_AVAILABLE = "Address not available"


# ============================================================
# Status & Lifecycle Models
# ============================================================

class CaseKind(str, Enum):
    """Case variant. Values double as the notification ``kind``."""

    SERVICE_REQUEST = "request"
    LEAK_REPORT = "report"


class RequestStatus(str, Enum):
    """
    ServiceRequest lifecycle status.

    Operator-driven: any status may transition to any other, support staff can
    always override.
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        """Check if the console treats this status as closed"""
        return self in (RequestStatus.COMPLETED, RequestStatus.REJECTED)


class LeakStatus(str, Enum):
    """
    LeakReport lifecycle status.

    Lifecycle Flow:
      PENDING → RESOLVED
              → REJECTED

    RESOLVED and REJECTED are terminal for the presentation layer only;
    the transition executor does not forbid leaving them.
    """

    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        """Check if the console treats this status as closed"""
        return self in (LeakStatus.RESOLVED, LeakStatus.REJECTED)


STATUS_ENUMS: Dict[CaseKind, Type[Enum]] = {
    CaseKind.SERVICE_REQUEST: RequestStatus,
    CaseKind.LEAK_REPORT: LeakStatus,
}

# Request types with their own aggregation bucket; anything else is "Other"
REQUEST_TYPES: Tuple[str, ...] = (
    "Maintenance",
    "Billing Issue",
    "Complaint",
    "Service Inquiry",
)
OTHER_REQUEST_TYPE = "Other"


def status_values(kind: CaseKind) -> Tuple[str, ...]:
    """All valid status values for a case kind, in lifecycle order."""
    return tuple(member.value for member in STATUS_ENUMS[CaseKind(kind)])


def parse_status(kind: CaseKind, value: Any) -> Optional[Enum]:
    """Return the status member for ``value``, or None if it is not valid for ``kind``."""
    if isinstance(value, Enum):
        value = value.value
    if not isinstance(value, str):
        return None
    try:
        return STATUS_ENUMS[CaseKind(kind)](value.strip().lower())
    except ValueError:
        return None


# ============================================================
# Case Variants
# ============================================================

class CaseBase(BaseModel):
    """Fields shared by every case variant."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Store-assigned document id")
    account_number: str = Field(default="", description="Customer account the case belongs to")
    submitted_at: datetime = Field(description="Submission time (UTC)")
    description: str = Field(default="", description="Customer-provided description")
    remarks: Optional[str] = Field(
        default=None, description="Staff remarks, set only on a transition"
    )

    def with_status(self, status: Any, remarks: Optional[str] = None) -> "CaseBase":
        """Return a copy with the new status and, when given, new remarks."""
        update: Dict[str, Any] = {"status": status}
        if remarks:
            update["remarks"] = remarks
        return self.model_copy(update=update)

    @abstractmethod
    def search_fields(self) -> Tuple[str, ...]:
        """Values matched by the free-text search, in display order."""


class ServiceRequest(CaseBase):
    """Customer-submitted service request."""

    kind: Literal[CaseKind.SERVICE_REQUEST] = CaseKind.SERVICE_REQUEST
    status: RequestStatus = RequestStatus.PENDING

    service_id: str = ""
    email: str = ""
    subject: str = ""
    type: str = ""
    attachment_uri: str = ""

    def search_fields(self) -> Tuple[str, ...]:
        return (self.service_id, self.account_number, self.subject, self.email)

    @property
    def type_bucket(self) -> str:
        """Aggregation bucket for this request's type"""
        return self.type if self.type in REQUEST_TYPES else OTHER_REQUEST_TYPE


class LeakReport(CaseBase):
    """Customer-submitted leak report."""

    kind: Literal[CaseKind.LEAK_REPORT] = CaseKind.LEAK_REPORT
    status: LeakStatus = LeakStatus.PENDING

    address: str = ADDRESS_NOT_AVAILABLE
    image_url: str = ""
    unique_user_id: str = ""

    @property
    def resolved(self) -> bool:
        return self.status == LeakStatus.RESOLVED

    @property
    def rejected(self) -> bool:
        return self.status == LeakStatus.REJECTED

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)

    @property
    def address_missing(self) -> bool:
        return self.address == ADDRESS_NOT_AVAILABLE

    def search_fields(self) -> Tuple[str, ...]:
        return (self.account_number, self.address, self.description, self.unique_user_id)


Case = Annotated[Union[ServiceRequest, LeakReport], Field(discriminator="kind")]


# ============================================================
# Normalization
# ============================================================

def _text(raw: Mapping[str, Any], key: str, default: str = "") -> str:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        value = str(value)
    return value if value else default


def _flag(raw: Mapping[str, Any], key: str) -> bool:
    value = raw.get(key)
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _remarks(raw: Mapping[str, Any]) -> Optional[str]:
    value = raw.get("remarks")
    if value is None or value == "":
        return None
    return str(value)


def _normalize_request(
    record_id: str, raw: Mapping[str, Any], submitted_at: datetime
) -> ServiceRequest:
    status = parse_status(CaseKind.SERVICE_REQUEST, raw.get("status"))
    if status is None:
        if raw.get("status") not in (None, ""):
            logger.warning(
                f"Request {record_id} has unrecognized status {raw.get('status')!r}, "
                f"normalizing to 'pending'"
            )
        status = RequestStatus.PENDING

    return ServiceRequest(
        id=record_id,
        account_number=_text(raw, "accountNumber"),
        submitted_at=submitted_at,
        description=_text(raw, "description"),
        remarks=_remarks(raw),
        status=status,
        service_id=_text(raw, "serviceId"),
        email=_text(raw, "email"),
        subject=_text(raw, "subject"),
        type=_text(raw, "type"),
        attachment_uri=_text(raw, "attachmentUri"),
    )


def _normalize_leak(
    record_id: str, raw: Mapping[str, Any], submitted_at: datetime
) -> LeakReport:
    resolved = _flag(raw, "resolved")
    rejected = _flag(raw, "rejected")

    if resolved and rejected:
        logger.warning(
            f"Anomaly: leak report {record_id} is both resolved and rejected, "
            f"treating as rejected"
        )
    if rejected:
        status = LeakStatus.REJECTED
    elif resolved:
        status = LeakStatus.RESOLVED
    else:
        status = LeakStatus.PENDING

    return LeakReport(
        id=record_id,
        account_number=_text(raw, "accountNumber"),
        submitted_at=submitted_at,
        description=_text(raw, "leakDescription") or _text(raw, "description"),
        remarks=_remarks(raw),
        status=status,
        address=_text(raw, "address", ADDRESS_NOT_AVAILABLE),
        image_url=_text(raw, "imageUrl"),
        unique_user_id=_text(raw, "uniqueUserId"),
    )


def normalize_case(
    kind: CaseKind,
    record_id: str,
    raw: Optional[Mapping[str, Any]],
    now: Optional[datetime] = None,
) -> Union[ServiceRequest, LeakReport]:
    """Normalize a raw remote document into a Case.

    Never raises on malformed data: missing text becomes "", missing flags
    become False, a missing leak address becomes "Address not available" and
    a missing or unparseable timestamp becomes ``now`` (the call time by
    default).

    Args:
        kind: Which variant the document belongs to
        record_id: Store-assigned document id
        raw: Document fields as delivered by the store
        now: Fallback timestamp (defaults to the current time)

    Returns:
        ServiceRequest or LeakReport
    """
    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.warning(f"Record {record_id} payload is {type(raw).__name__}, not a mapping")
        raw = {}

    submitted_at = coerce_timestamp(raw.get("timestamp"))
    if submitted_at is None:
        submitted_at = coerce_timestamp(now) or utc_now()

    record_id = "" if record_id is None else str(record_id)

    if CaseKind(kind) == CaseKind.SERVICE_REQUEST:
        return _normalize_request(record_id, raw, submitted_at)
    return _normalize_leak(record_id, raw, submitted_at)
