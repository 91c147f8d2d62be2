import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.base import Base


class ReferralStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SUBMITTED = "submitted"
    INTERVIEWING = "interviewing"
    OFFERED = "offered"
    HIRED = "hired"
    DECLINED = "declined"


MESSAGE_MAX_LENGTH = 1000


class Referral(Base):
    """
    A student's request to an alumnus for a job referral.

    Status changes are recorded in ReferralStatusChange rows which are only
    ever appended. Referrals are never deleted.
    """

    __tablename__ = "referrals"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    alumni_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    college_id = Column(Integer, ForeignKey("colleges.id"), index=True, nullable=False)

    # Optional posting this referral is for
    job_id = Column(Integer, nullable=True)

    company = Column(String(200), nullable=False)
    position = Column(String(200), nullable=False)
    job_url = Column(String(1000), nullable=False)

    # Student's materials
    resume_url = Column(String(1000))
    cover_letter = Column(Text)
    message = Column(Text, nullable=False)

    status = Column(String(20), default=ReferralStatus.PENDING.value, nullable=False, index=True)

    # Alumni response, written once on accept/reject
    alumni_response = Column(Text)
    responded_at = Column(DateTime)

    # Bumped by every transition, checked by conditional updates
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    student = relationship("User", foreign_keys=[student_id])
    alumni = relationship("User", foreign_keys=[alumni_id])
    history = relationship(
        "ReferralStatusChange",
        back_populates="referral",
        order_by="ReferralStatusChange.id",
    )


class ReferralStatusChange(Base):
    """One entry of a referral's timeline."""

    __tablename__ = "referral_status_history"

    id = Column(Integer, primary_key=True)
    referral_id = Column(Integer, ForeignKey("referrals.id"), index=True, nullable=False)
    status = Column(String(20), nullable=False)
    note = Column(String(1000), default="")
    changed_at = Column(DateTime, default=utcnow, nullable=False)

    referral = relationship("Referral", back_populates="history")
