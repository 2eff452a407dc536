"""
Script to seed the superadmin account and a couple of staff users.
Run this once after the database has been created.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from freightdesk.db.database import SessionLocal
from freightdesk.models import User, UserRole
from freightdesk.services.security import get_password_hash

SEED_USERS = [
    {
        "name": "Super Admin",
        "email": os.getenv("SUPERADMIN_EMAIL", "superadmin@freightdesk.local"),
        "password": os.getenv("SUPERADMIN_PASSWORD", "change-me-now"),
        "role": UserRole.SUPERADMIN,
    },
    {
        "name": "Operations Admin",
        "email": "admin@freightdesk.local",
        "password": os.getenv("ADMIN_PASSWORD", "change-me-now"),
        "role": UserRole.ADMIN,
    },
    {
        "name": "Counter Staff",
        "email": "counter@freightdesk.local",
        "password": os.getenv("STAFF_PASSWORD", "change-me-now"),
        "role": UserRole.USER,
    },
]


def create_superadmin():
    db = SessionLocal()
    try:
        for seed in SEED_USERS:
            existing = db.query(User).filter(User.email == seed["email"]).first()
            if existing:
                print(f"User '{seed['email']}' already exists with ID: {existing.id}")
                continue

            user = User(
                name=seed["name"],
                email=seed["email"],
                password_hash=get_password_hash(seed["password"]),
                role=seed["role"],
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            print(f"Created {seed['role'].value}: {user.email} (ID: {user.id})")
    except Exception as e:
        print(f"Error: {e}")
        db.rollback()
    finally:
        db.close()

if __name__ == "__main__":
    create_superadmin()
