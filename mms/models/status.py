"""Status vocabularies for applicants, applications, documents and members.

Application state flow (forward only):
    draft → submitted → payment_pending → payment_received
          → under_review → document_review → approved | rejected
"""

from enum import Enum
from typing import Dict, Optional


class ApplicantStatus(str, Enum):
    REGISTERED = "registered"
    EMAIL_VERIFIED = "email_verified"
    APPLICATION_STARTED = "application_started"
    APPLICATION_COMPLETED = "application_completed"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_RECEIVED = "payment_received"
    UNDER_REVIEW = "under_review"
    DOCUMENT_REVIEW = "document_review"
    APPROVED = "approved"
    REJECTED = "rejected"


# approved and rejected share the final rank
STATUS_RANK: Dict[ApplicationStatus, int] = {
    ApplicationStatus.DRAFT: 0,
    ApplicationStatus.SUBMITTED: 1,
    ApplicationStatus.PAYMENT_PENDING: 2,
    ApplicationStatus.PAYMENT_RECEIVED: 3,
    ApplicationStatus.UNDER_REVIEW: 4,
    ApplicationStatus.DOCUMENT_REVIEW: 5,
    ApplicationStatus.APPROVED: 6,
    ApplicationStatus.REJECTED: 6,
}

TERMINAL_STATUSES = {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}

# Statuses in which the applicant may still add or remove documents
UPLOAD_OPEN_STATUSES = {
    ApplicationStatus.DRAFT,
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.PAYMENT_PENDING,
}


def can_transition(from_status: Optional[str], to_status: str) -> bool:
    """Return True if an application may move from ``from_status`` to ``to_status``.

    Moves must go strictly forward. Terminal states are final and a draft
    only leaves through submission.

    Example:
        >>> can_transition("submitted", "document_review")
        True
        >>> can_transition("document_review", "payment_received")
        False
    """
    if from_status is None:
        return to_status == ApplicationStatus.DRAFT.value
    current = ApplicationStatus(from_status)
    target = ApplicationStatus(to_status)
    if current in TERMINAL_STATUSES:
        return False
    if current == ApplicationStatus.DRAFT:
        return target == ApplicationStatus.SUBMITTED
    return STATUS_RANK[target] > STATUS_RANK[current]


class DocumentStatus(str, Enum):
    UPLOADED = "uploaded"
    VERIFIED = "verified"
    REJECTED = "rejected"


class MembershipStatus(str, Enum):
    ACTIVE = "active"
    LAPSED = "lapsed"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class FeeStatus(str, Enum):
    UNPAID = "unpaid"
    PENDING = "pending"
    SETTLED = "settled"
