import enum

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.base import Base


class Role(str, enum.Enum):
    """User roles."""

    STUDENT = "student"
    ALUMNI = "alumni"
    FACULTY = "faculty"
    ADMIN = "admin"


# Fields counted towards profile completeness
PROFILE_COMPLETENESS_FIELDS = [
    "full_name",
    "email",
    "bio",
    "degree",
    "major",
    "graduation_year",
    "current_company",
    "current_position",
    "skills",
]


class User(Base):
    """User identity: role, college membership, verification state and profile."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(20), nullable=False)  # 'student' | 'alumni' | 'faculty' | 'admin'
    college_id = Column(Integer, ForeignKey("colleges.id"), index=True, nullable=False)

    is_verified = Column(Boolean, default=False, nullable=False, index=True)
    email_verified_at = Column(DateTime)

    # Profile
    profile_picture = Column(String(500), default="")
    bio = Column(Text, default="")

    # Academic
    degree = Column(String(200))
    major = Column(String(200))
    graduation_year = Column(Integer)

    # Professional (mainly alumni)
    current_company = Column(String(200))
    current_position = Column(String(200))
    skills = Column(JSON, default=list)

    # Contact & social
    phone = Column(String(30))
    linkedin_url = Column(String(500))
    github_url = Column(String(500))
    portfolio_url = Column(String(500))

    # Mentorship (alumni / faculty)
    is_mentor = Column(Boolean, default=False, nullable=False)
    mentorship_topics = Column(JSON, default=list)

    last_login = Column(DateTime)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    college = relationship("College", back_populates="users")
    credential = relationship(
        "UserCredential",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def profile_completeness(self) -> int:
        filled = 0
        for field in PROFILE_COMPLETENESS_FIELDS:
            value = getattr(self, field)
            if isinstance(value, (str, list)):
                filled += 1 if len(value) > 0 else 0
            elif value:
                filled += 1
        return round(filled * 100 / len(PROFILE_COMPLETENESS_FIELDS))

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"


class UserCredential(Base):
    """
    Secrets belonging to a user, kept out of the users table.

    Nothing in this record is part of the public profile. Tokens are stored
    only as SHA-256 digests and are cleared after a single successful use.
    """

    __tablename__ = "user_credentials"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    password_hash = Column(String(255), nullable=False)

    verification_token_hash = Column(String(64), unique=True, index=True)
    verification_token_expires_at = Column(DateTime)

    reset_token_hash = Column(String(64), unique=True, index=True)
    reset_token_expires_at = Column(DateTime)

    user = relationship("User", back_populates="credential")
