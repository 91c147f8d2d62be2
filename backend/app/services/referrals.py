"""
Referral workflow engine.

A referral starts pending, is accepted or rejected by the alumnus, and after
acceptance moves through submitted -> interviewing -> offered -> hired or
declined. Every transition is a conditional UPDATE on the referral row plus
one appended history entry, committed together.
"""

from typing import Optional, Union

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    TenancyError,
    ValidationError,
)
from app.core.logging import get_logger
from app.db.session import storage_guard
from app.models import Referral, ReferralStatus, ReferralStatusChange, Role, User
from app.models.referral import MESSAGE_MAX_LENGTH

logger = get_logger("referrals")

ACCEPTED_NOTE = "Referral accepted by alumni"
REJECTED_NOTE = "Referral rejected by alumni"

# Set only by accept/reject, never by update_status
RESPONSE_STATUSES = {ReferralStatus.ACCEPTED, ReferralStatus.REJECTED}

# Legal moves when strict transitions are enabled
TRANSITIONS: dict[ReferralStatus, set[ReferralStatus]] = {
    ReferralStatus.PENDING: {ReferralStatus.ACCEPTED, ReferralStatus.REJECTED},
    ReferralStatus.ACCEPTED: {ReferralStatus.SUBMITTED},
    ReferralStatus.SUBMITTED: {ReferralStatus.INTERVIEWING},
    ReferralStatus.INTERVIEWING: {ReferralStatus.OFFERED},
    ReferralStatus.OFFERED: {ReferralStatus.HIRED, ReferralStatus.DECLINED},
    ReferralStatus.REJECTED: set(),
    ReferralStatus.HIRED: set(),
    ReferralStatus.DECLINED: set(),
}


def is_terminal(status: Union[ReferralStatus, str]) -> bool:
    return not TRANSITIONS[ReferralStatus(status)]


def _require_text(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} is required")
    return value


def get_referral(db: Session, referral_id: int) -> Referral:
    with storage_guard(db):
        referral = db.get(Referral, referral_id)
    if referral is None:
        raise NotFoundError("Referral not found")
    return referral


def ensure_participant(identity: User, referral: Referral) -> None:
    if identity.id not in (referral.student_id, referral.alumni_id):
        raise ForbiddenError("Only the student and alumnus on a referral can access it")


def create(
    db: Session,
    student: User,
    alumnus: User,
    company: str,
    position: str,
    job_url: str,
    message: str,
    job_id: Optional[int] = None,
    resume_url: Optional[str] = None,
    cover_letter: Optional[str] = None,
) -> Referral:
    """Open a pending referral request from a student to an alumnus."""
    company = _require_text(company, "Company name")
    position = _require_text(position, "Position")
    job_url = _require_text(job_url, "Job URL")
    message = _require_text(message, "Message")

    if len(message) > MESSAGE_MAX_LENGTH:
        raise ValidationError(f"Message cannot exceed {MESSAGE_MAX_LENGTH} characters")

    if alumnus.role != Role.ALUMNI.value:
        raise ValidationError("Referrals can only be requested from alumni")

    if student.id == alumnus.id:
        raise ValidationError("Cannot request a referral from yourself")

    if student.college_id != alumnus.college_id:
        raise TenancyError("Referrals can only be requested within your own college")

    referral = Referral(
        student_id=student.id,
        alumni_id=alumnus.id,
        college_id=student.college_id,
        job_id=job_id,
        company=company,
        position=position,
        job_url=job_url,
        message=message,
        resume_url=resume_url,
        cover_letter=cover_letter,
        status=ReferralStatus.PENDING.value,
        version=1,
    )

    with storage_guard(db):
        db.add(referral)
        db.commit()
        db.refresh(referral)

    logger.info(f"Referral {referral.id} requested by {student.id} from {alumnus.id}")
    return referral


def _respond(db: Session, referral: Referral, status: ReferralStatus, response: str, note: str) -> Referral:
    now = utcnow()

    with storage_guard(db):
        result = db.execute(
            update(Referral)
            .where(
                Referral.id == referral.id,
                Referral.status == ReferralStatus.PENDING.value,
                Referral.responded_at.is_(None),
            )
            .values(
                status=status.value,
                alumni_response=response,
                responded_at=now,
                version=Referral.version + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Referral {referral.id} is no longer pending")
            raise InvalidStateError(f"Referral can only be {status.value} while pending")

        db.add(ReferralStatusChange(referral_id=referral.id, status=status.value, note=note, changed_at=now))
        db.commit()

    db.refresh(referral)
    logger.info(f"Referral {referral.id} {status.value}")
    return referral


def accept(db: Session, referral: Referral, response: str = "") -> Referral:
    return _respond(db, referral, ReferralStatus.ACCEPTED, response, ACCEPTED_NOTE)


def reject(db: Session, referral: Referral, response: str = "") -> Referral:
    return _respond(db, referral, ReferralStatus.REJECTED, response, REJECTED_NOTE)


def update_status(
    db: Session,
    referral: Referral,
    new_status: Union[ReferralStatus, str],
    note: str = "",
) -> Referral:
    """
    Move a referral to any status and record it in the history.

    accepted and rejected are reserved for accept/reject, and an answered
    referral never returns to pending. With STRICT_REFERRAL_TRANSITIONS
    enabled only the moves in TRANSITIONS are allowed. responded_at is never
    touched here.
    """
    try:
        new_status = ReferralStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown referral status: {new_status}")

    current = ReferralStatus(referral.status)
    expected_version = referral.version

    if new_status in RESPONSE_STATUSES:
        raise InvalidStateError(f"A referral is {new_status.value} only through the alumnus' response")

    if new_status == ReferralStatus.PENDING and referral.responded_at is not None:
        raise InvalidStateError("An answered referral cannot return to pending")

    if settings.STRICT_REFERRAL_TRANSITIONS and new_status not in TRANSITIONS[current]:
        raise InvalidStateError(f"Cannot move referral from {current.value} to {new_status.value}")

    now = utcnow()

    with storage_guard(db):
        result = db.execute(
            update(Referral)
            .where(
                Referral.id == referral.id,
                Referral.version == expected_version,
            )
            .values(status=new_status.value, version=Referral.version + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Stale status update for referral {referral.id}")
            raise InvalidStateError("Referral was modified concurrently, reload and retry")

        db.add(ReferralStatusChange(referral_id=referral.id, status=new_status.value, note=note or "", changed_at=now))
        db.commit()

    db.refresh(referral)
    logger.info(f"Referral {referral.id} moved {current.value} -> {new_status.value}")
    return referral
