from app.schemas.user import CollegeDetail, CollegeSettings, CollegeSummary, PublicProfile, college_detail
from app.schemas.referral import ReferralOut, StatusHistoryEntry

__all__ = [
    "CollegeDetail",
    "CollegeSettings",
    "CollegeSummary",
    "PublicProfile",
    "college_detail",
    "ReferralOut",
    "StatusHistoryEntry",
]
