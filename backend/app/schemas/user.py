"""
Outward projections of identities and colleges.

PublicProfile is the only representation of a user that leaves the core.
It is built from the users table alone; credential fields do not exist on
this type.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CollegeSettings(BaseModel):
    require_admin_approval: bool
    allow_public_jobs: bool
    enable_chat: bool
    enable_mentorship: bool

    class Config:
        from_attributes = True


class CollegeSummary(BaseModel):
    """Schema for college response."""

    id: int
    name: str
    slug: str
    email_domain: str
    status: str

    class Config:
        from_attributes = True


class CollegeDetail(CollegeSummary):
    """College with settings, statistics and admin ids."""

    description: Optional[str] = None
    website: Optional[str] = None
    settings: CollegeSettings
    total_students: int
    total_alumni: int
    total_faculty: int
    total_jobs: int
    admin_ids: list[int] = Field(default_factory=list)


class PublicProfile(BaseModel):
    """Schema for user response (never includes credentials)."""

    id: int
    full_name: str
    email: str
    role: str
    college_id: int
    college: Optional[CollegeSummary] = None
    is_verified: bool
    email_verified_at: Optional[datetime] = None

    profile_picture: Optional[str] = None
    bio: Optional[str] = None
    degree: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = None
    current_company: Optional[str] = None
    current_position: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    is_mentor: bool = False
    mentorship_topics: list[str] = Field(default_factory=list)

    profile_completeness: int = 0
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def college_detail(college) -> CollegeDetail:
    return CollegeDetail(
        id=college.id,
        name=college.name,
        slug=college.slug,
        email_domain=college.email_domain,
        status=college.status,
        description=college.description,
        website=college.website,
        settings=CollegeSettings.model_validate(college),
        total_students=college.total_students,
        total_alumni=college.total_alumni,
        total_faculty=college.total_faculty,
        total_jobs=college.total_jobs,
        admin_ids=[admin.id for admin in college.admins],
    )
