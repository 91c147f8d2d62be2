"""
Referral API endpoints.

Students request referrals from alumni of their own college; the alumnus
accepts or rejects; either participant records later progress.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.db.session import get_db
from app.models import Role, User
from app.schemas.referral import ReferralOut
from app.services import access_control, identity, referrals

router = APIRouter()


# ============== Pydantic Schemas ==============


class ReferralCreateRequest(BaseModel):
    alumni_id: int
    company: str
    position: str
    job_url: str
    message: str
    job_id: Optional[int] = None
    resume_url: Optional[str] = None
    cover_letter: Optional[str] = None


class ReferralRespondRequest(BaseModel):
    action: str  # "accept" | "reject"
    response: str = ""


class ReferralStatusRequest(BaseModel):
    status: str
    note: str = ""


# ============== Helper Functions ==============


def load_for_participant(db: Session, referral_id: int, current_user: User):
    referral = referrals.get_referral(db, referral_id)
    access_control.require_same_tenant(current_user, referral.college_id)
    referrals.ensure_participant(current_user, referral)
    return referral


# ============== API Endpoints ==============


@router.post("", response_model=ReferralOut, status_code=status.HTTP_201_CREATED)
def create_referral(
    request: ReferralCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    access_control.require_role(current_user, [Role.STUDENT])

    alumnus = identity.find_by_id(db, request.alumni_id)
    if alumnus is None:
        raise NotFoundError("Alumnus not found")

    referral = referrals.create(
        db,
        student=current_user,
        alumnus=alumnus,
        company=request.company,
        position=request.position,
        job_url=request.job_url,
        message=request.message,
        job_id=request.job_id,
        resume_url=request.resume_url,
        cover_letter=request.cover_letter,
    )
    return ReferralOut.model_validate(referral)


@router.get("/{referral_id}", response_model=ReferralOut)
def get_referral(
    referral_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ReferralOut.model_validate(load_for_participant(db, referral_id, current_user))


@router.post("/{referral_id}/respond", response_model=ReferralOut)
def respond_to_referral(
    referral_id: int,
    request: ReferralRespondRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Accept or reject a pending referral. Only its alumnus may respond."""
    referral = load_for_participant(db, referral_id, current_user)
    if current_user.id != referral.alumni_id:
        raise ForbiddenError("Only the alumnus can respond to this referral")

    action = request.action.strip().lower()
    if action == "accept":
        referral = referrals.accept(db, referral, request.response)
    elif action == "reject":
        referral = referrals.reject(db, referral, request.response)
    else:
        raise ValidationError("Action must be 'accept' or 'reject'")

    return ReferralOut.model_validate(referral)


@router.post("/{referral_id}/status", response_model=ReferralOut)
def advance_referral_status(
    referral_id: int,
    request: ReferralStatusRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    referral = load_for_participant(db, referral_id, current_user)
    referral = referrals.update_status(db, referral, request.status, request.note)
    return ReferralOut.model_validate(referral)
