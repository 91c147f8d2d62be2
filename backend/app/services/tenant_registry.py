"""
Tenant registry.

Maps email domains to colleges, creates colleges on first registration from
an unseen domain, and maintains their settings, counters, admin list and
lifecycle state.
"""

from typing import Optional

from sqlalchemy import insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.exceptions import NotFoundError, TenancyError, ValidationError
from app.core.logging import get_logger
from app.db.session import storage_guard
from app.models import College, CollegeStatus, Role, User, college_admins
from app.models.college import slugify

logger = get_logger("tenant_registry")

ROLE_COUNTERS = {
    Role.STUDENT.value: College.total_students,
    Role.ALUMNI.value: College.total_alumni,
    Role.FACULTY.value: College.total_faculty,
}

SETTINGS_FLAGS = (
    "require_admin_approval",
    "allow_public_jobs",
    "enable_chat",
    "enable_mentorship",
)


def extract_domain(email: str) -> str:
    """Return the normalized domain of an email address."""
    _, sep, domain = (email or "").strip().lower().rpartition("@")
    domain = domain.strip()
    if not sep or not domain:
        raise ValidationError("Email address has no domain")
    return domain


def domain_matches(college: College, email: str) -> bool:
    """Check whether an email belongs to the college's domain."""
    try:
        return extract_domain(email) == college.email_domain.lower()
    except ValidationError:
        return False


def find_by_domain(db: Session, domain: str) -> Optional[College]:
    return db.execute(
        select(College).where(College.email_domain == domain.lower())
    ).scalar_one_or_none()


def get_college(db: Session, college_id: int) -> College:
    with storage_guard(db):
        college = db.get(College, college_id)
    if college is None:
        raise NotFoundError("College not found")
    return college


def _insert_if_absent(db: Session, name: str, domain: str) -> None:
    """
    Insert a college unless one already holds the domain, name or slug.

    Runs as a single INSERT ... ON CONFLICT DO NOTHING so two first
    registrants for the same domain can never produce two colleges.
    """
    values = {
        "name": name,
        "slug": slugify(name),
        "email_domain": domain,
        "status": CollegeStatus.ACTIVE.value,
    }

    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(College).values(**values).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite.insert(College).values(**values).on_conflict_do_nothing()
    else:
        stmt = insert(College).values(**values).prefix_with("IGNORE")

    db.execute(stmt)


def resolve_or_create(db: Session, email: str, display_name: str) -> College:
    """
    Find the college owning the email's domain, creating it if needed.

    When the display name is already taken by a college with a different
    domain, that college is returned so the caller's domain check rejects
    the registration.
    """
    domain = extract_domain(email)
    name = (display_name or "").strip()
    if not name:
        raise ValidationError("College name is required")
    if not slugify(name):
        raise ValidationError("College name must contain letters or digits")

    college = find_by_domain(db, domain)
    if college is not None:
        return college

    _insert_if_absent(db, name, domain)

    college = find_by_domain(db, domain)
    if college is not None:
        if college.name == name:
            logger.info(f"Created college '{name}' for domain {domain}")
        return college

    college = db.execute(select(College).where(College.name == name)).scalar_one_or_none()
    if college is not None:
        logger.warning(f"College name '{name}' is already held by domain {college.email_domain}")
        return college

    raise ValidationError("A college with a similar name already exists")


def increment_role_counter(db: Session, college: College, role: str) -> None:
    """Bump the statistics counter for a role in the database itself."""
    column = ROLE_COUNTERS.get(role)
    if column is None:
        return

    db.execute(
        update(College)
        .where(College.id == college.id)
        .values({column: column + 1})
        .execution_options(synchronize_session=False)
    )
    db.expire(college, [column.key])


def add_admin(db: Session, college: College, user: User) -> College:
    """Append a user to the college's ordered admin set (idempotent)."""
    if user.college_id != college.id:
        raise TenancyError("Only members of the college can become its admins")

    if any(admin.id == user.id for admin in college.admins):
        return college

    try:
        with storage_guard(db):
            db.execute(
                insert(college_admins).values(college_id=college.id, user_id=user.id, added_at=utcnow())
            )
            db.commit()
    except IntegrityError:
        # A concurrent add of the same admin got there first
        logger.info(f"User {user.id} is already an admin of college {college.id}")
    else:
        logger.info(f"User {user.id} added as admin of college {college.id}")

    db.refresh(college)
    return college


def update_settings(db: Session, college: College, **flags: bool) -> College:
    unknown = set(flags) - set(SETTINGS_FLAGS)
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")

    with storage_guard(db):
        for key, value in flags.items():
            setattr(college, key, bool(value))
        db.commit()
    db.refresh(college)
    return college


def _set_status(db: Session, college: College, status: CollegeStatus) -> College:
    with storage_guard(db):
        college.status = status.value
        db.commit()
    db.refresh(college)
    logger.info(f"College {college.id} is now {status.value}")
    return college


def disable(db: Session, college: College) -> College:
    return _set_status(db, college, CollegeStatus.DISABLED)


def enable(db: Session, college: College) -> College:
    return _set_status(db, college, CollegeStatus.ACTIVE)
