from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class StatusHistoryEntry(BaseModel):
    status: str
    note: Optional[str] = ""
    changed_at: datetime

    class Config:
        from_attributes = True


class ReferralOut(BaseModel):
    """Schema for referral response, including the full timeline."""

    id: int
    student_id: int
    alumni_id: int
    college_id: int
    job_id: Optional[int] = None
    company: str
    position: str
    job_url: str
    resume_url: Optional[str] = None
    cover_letter: Optional[str] = None
    message: str
    status: str
    alumni_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    history: list[StatusHistoryEntry] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True
