"""
College API endpoints.

Read access to the caller's own college, plus the college-admin actions:
settings, admin membership and account approval.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_current_tenant_admin, get_current_user
from app.core.exceptions import NotFoundError
from app.db.session import get_db
from app.models import User
from app.schemas.user import CollegeDetail, PublicProfile, college_detail
from app.services import identity, tenant_registry

router = APIRouter()


class SettingsUpdate(BaseModel):
    require_admin_approval: Optional[bool] = None
    allow_public_jobs: Optional[bool] = None
    enable_chat: Optional[bool] = None
    enable_mentorship: Optional[bool] = None


@router.get("/me", response_model=CollegeDetail)
def get_my_college(current_user: User = Depends(get_current_user)):
    return college_detail(current_user.college)


@router.patch("/me/settings", response_model=CollegeDetail)
def update_my_college_settings(
    update: SettingsUpdate,
    admin: User = Depends(get_current_tenant_admin),
    db: Session = Depends(get_db),
):
    flags = {key: value for key, value in update.model_dump(exclude_unset=True).items() if value is not None}
    college = tenant_registry.update_settings(db, admin.college, **flags)
    return college_detail(college)


@router.post("/me/admins/{user_id}", response_model=CollegeDetail)
def add_college_admin(
    user_id: int,
    admin: User = Depends(get_current_tenant_admin),
    db: Session = Depends(get_db),
):
    user = identity.find_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    college = tenant_registry.add_admin(db, admin.college, user)
    return college_detail(college)


@router.post("/me/users/{user_id}/approve", response_model=PublicProfile)
def approve_user(
    user_id: int,
    admin: User = Depends(get_current_tenant_admin),
    db: Session = Depends(get_db),
):
    """Approve a pending account in the admin's college."""
    return identity.approve(db, admin, user_id)
