"""
Alumni Connect Database Seeder

Creates a demo college with:
- An approved college admin
- An approved alumnus open to mentorship
- An approved student and a pending referral between them
"""

from app.core.exceptions import DuplicateError
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models import User
from app.services import identity, referrals, tenant_registry

DEMO_COLLEGE = "Demo University"
DEMO_PASSWORD = "demo-password-123"


def register_approved(db, full_name, email, role):
    result = identity.register(db, full_name, email, DEMO_PASSWORD, role, DEMO_COLLEGE)
    user = db.get(User, result.identity.id)
    user.is_verified = True
    db.commit()
    return user


def seed_database():
    """Seed the database with test data."""

    # Create all tables
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()

    try:
        print("Seeding database...")

        # 1. College admin (creates the college)
        admin = register_approved(db, "Dana Admin", "admin@demo.edu", "admin")
        tenant_registry.add_admin(db, admin.college, admin)

        # 2. Alumnus who mentors
        alumnus = register_approved(db, "Priya Raman", "priya.raman@demo.edu", "alumni")
        identity.update_profile(
            db,
            alumnus,
            current_company="Acme Corp",
            current_position="Senior Engineer",
            skills=["Python", "Distributed Systems"],
            is_mentor=True,
            mentorship_topics=["Interview prep", "Backend careers"],
        )

        # 3. Student with a pending referral request
        student = register_approved(db, "John Doe", "john.doe@demo.edu", "student")
        referral = referrals.create(
            db,
            student=student,
            alumnus=alumnus,
            company="Acme Corp",
            position="Software Engineer Intern",
            job_url="https://careers.acme.example/jobs/1234",
            message="Hi Priya, I'd love a referral for the summer internship.",
        )

        print("\n" + "=" * 50)
        print("Database seeded successfully!")
        print("=" * 50)
        print(f"\nCollege: {admin.college.name} ({admin.college.email_domain})")
        print("\nTest Accounts:")
        print(f"  Admin:   admin@demo.edu / {DEMO_PASSWORD}")
        print(f"  Alumnus: priya.raman@demo.edu / {DEMO_PASSWORD}")
        print(f"  Student: john.doe@demo.edu / {DEMO_PASSWORD}")
        print(f"\nReferral #{referral.id}: {referral.status}")
        print("=" * 50)

    except DuplicateError:
        print("Database already seeded. Skipping...")
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
