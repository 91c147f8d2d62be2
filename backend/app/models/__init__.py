from app.models.college import College, CollegeStatus, college_admins
from app.models.user import Role, User, UserCredential
from app.models.referral import Referral, ReferralStatus, ReferralStatusChange

__all__ = [
    "College",
    "CollegeStatus",
    "college_admins",
    "Role",
    "User",
    "UserCredential",
    "Referral",
    "ReferralStatus",
    "ReferralStatusChange",
]
