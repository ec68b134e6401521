# mms/services/members.py
"""Maintenance of promoted Member and Organization records."""

import logging
from datetime import date
from typing import Optional, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session

from mms.models.member import Member, Organization
from mms.models.status import MembershipStatus
from mms.services.workflow import MEMBERSHIP_TERM_YEARS, add_years

logger = logging.getLogger(__name__)

MemberRow = Union[Member, Organization]


def get_member_or_404(db: Session, membership_number: str) -> Member:
    member = db.query(Member).filter(Member.membership_number == membership_number).first()
    if not member:
        raise HTTPException(status_code=404, detail=f"Member {membership_number} not found")
    return member


def get_organization_or_404(db: Session, registration_number: str) -> Organization:
    organization = db.query(Organization).filter(Organization.registration_number == registration_number).first()
    if not organization:
        raise HTTPException(status_code=404, detail=f"Organization {registration_number} not found")
    return organization


def update_record(db: Session, record: MemberRow, changes: dict) -> MemberRow:
    try:
        for field, value in changes.items():
            setattr(record, field, value)
        db.commit()
        db.refresh(record)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update {record!r}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update record")

    logger.info(f"Updated {record!r}: {sorted(changes)}")
    return record


def renew_membership(db: Session, record: MemberRow, today: Optional[date] = None) -> MemberRow:
    """Extend by one term from the later of today and the current expiry, and reactivate."""
    today = today or date.today()
    if record.membership_status == MembershipStatus.CANCELLED.value:
        raise HTTPException(status_code=409, detail="Cancelled memberships cannot be renewed")

    start = max(today, record.expiry_date) if record.expiry_date else today
    return update_record(db, record, {
        "expiry_date": add_years(start, MEMBERSHIP_TERM_YEARS),
        "membership_status": MembershipStatus.ACTIVE.value,
    })
