#!/usr/bin/env python3
"""
Script to create the first dashboard account (ADMIN or REGIONAL_COORDINATOR).

Usage:
    python scripts/create_admin_user.py admin@example.org "Admin Name" secret-password [--role REGIONAL_COORDINATOR]
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kanasu.core.database import SessionLocal
from kanasu.core.security import get_password_hash
from kanasu.models.user import User, UserRole


def create_user(email: str, name: str, password: str, role: UserRole) -> None:
    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == email).first():
            print(f"User {email} already exists, nothing to do")
            return

        user = User(email=email, name=name, password_hash=get_password_hash(password), role=role)
        db.add(user)
        db.commit()
        print(f"Created {role.value} user {email} ({user.id})")
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a Kanasu dashboard user")
    parser.add_argument("email")
    parser.add_argument("name")
    parser.add_argument("password")
    parser.add_argument("--role", choices=[r.value for r in UserRole], default=UserRole.ADMIN.value)
    args = parser.parse_args()

    create_user(args.email, args.name, args.password, UserRole(args.role))
