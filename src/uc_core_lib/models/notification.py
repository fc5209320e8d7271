"""Account-scoped notification records.

A Notification is written once per confirmed status transition under
``notifications/{account_number}/records``. This library never mutates one
after creation; marking it read belongs to the customer-facing app.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from uc_core_lib.models.case import CaseKind
from uc_core_lib.models.common import utc_now


class Notification(BaseModel):
    """Outcome of a transition, as seen by the affected account"""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(default=None, description="Store-assigned id, known after the write")
    account_number: str
    record_id: str = Field(description="Id of the case that changed")
    description: str
    status: str = Field(description="Status the case moved to")
    kind: CaseKind
    timestamp: datetime = Field(default_factory=utc_now)
    read: bool = False
    remarks: Optional[str] = None

    # Carried for the email collaborator on service requests
    email: Optional[str] = None
    subject: Optional[str] = None
    service_id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the remote document shape (camelCase, no id)."""
        document: Dict[str, Any] = {
            "accountNumber": self.account_number,
            "recordId": self.record_id,
            "description": self.description,
            "status": self.status,
            "type": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "read": self.read,
        }
        optional = {
            "remarks": self.remarks,
            "email": self.email,
            "subject": self.subject,
            "serviceId": self.service_id,
        }
        document.update({key: value for key, value in optional.items() if value})
        return document
