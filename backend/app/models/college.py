import enum
import re

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    event,
)
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.base import Base


class CollegeStatus(str, enum.Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


def slugify(name: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to '-', strip edge dashes."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


# Ordered set of college admins; ordering is by the time they were added
college_admins = Table(
    "college_admins",
    Base.metadata,
    Column("college_id", Integer, ForeignKey("colleges.id"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
    Column("added_at", DateTime, default=utcnow, nullable=False),
)


class College(Base):
    """
    A college is the tenant boundary.

    Users, referrals and their visibility are scoped by it. Colleges are
    created on the first registration from an unseen email domain and are
    disabled rather than deleted.
    """

    __tablename__ = "colleges"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, nullable=False)
    slug = Column(String(200), unique=True, nullable=False)
    email_domain = Column(String(255), unique=True, index=True, nullable=False)  # e.g. "stanford.edu"

    description = Column(Text)
    website = Column(String(500))

    # Settings
    require_admin_approval = Column(Boolean, default=True, nullable=False)
    allow_public_jobs = Column(Boolean, default=False, nullable=False)
    enable_chat = Column(Boolean, default=True, nullable=False)
    enable_mentorship = Column(Boolean, default=True, nullable=False)

    # Statistics, only ever changed with in-database increments
    total_students = Column(Integer, default=0, nullable=False)
    total_alumni = Column(Integer, default=0, nullable=False)
    total_faculty = Column(Integer, default=0, nullable=False)
    total_jobs = Column(Integer, default=0, nullable=False)

    status = Column(String(20), default=CollegeStatus.ACTIVE.value, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    users = relationship("User", back_populates="college")
    admins = relationship(
        "User",
        secondary=college_admins,
        order_by=college_admins.c.added_at,
        viewonly=True,
    )

    @property
    def is_active(self) -> bool:
        return self.status == CollegeStatus.ACTIVE.value

    def __repr__(self):
        return f"<College {self.name} ({self.email_domain})>"


@event.listens_for(College, "before_insert")
def _derive_slug(mapper, connection, target: College) -> None:
    if not target.slug and target.name:
        target.slug = slugify(target.name)
