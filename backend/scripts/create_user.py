#!/usr/bin/env python3
"""
Create a Note.Lab account from the command line.

Usage:
    python scripts/create_user.py [--init-db]

Interactive prompts will ask for:
- Email
- Display name (defaults to the part of the email before "@")
- Password (hidden input)

The account goes through the same validation and hashing as
POST /api/auth/register.
"""

import argparse
import getpass
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from notelab.config import get_settings
from notelab.database import SessionLocal, init_db
from notelab.error_handlers import APIError
from notelab.models import User
from notelab.services.auth_service import PASSWORD_POLICY_MESSAGE, AuthService
from notelab.services.password_hasher import build_password_hasher
from notelab.services.token_service import build_token_service
from notelab.utils.validators import is_valid_email, is_valid_password


def create_user():
    """Interactive script to create a user"""
    print("=" * 60)
    print("  Note.Lab - Create User")
    print("=" * 60)
    print()

    settings = get_settings()
    db = SessionLocal()

    try:
        # Prompt for email
        while True:
            email = input("Email: ").strip()
            if not email:
                print("❌ Email cannot be empty")
                continue
            if not is_valid_email(email):
                print("❌ Invalid email address")
                continue

            # Check if email exists
            if db.query(User).filter(User.email == email).first():
                print(f"❌ Email '{email}' already exists")
                continue

            break

        name = input("Name (optional): ").strip()

        # Prompt for password
        while True:
            password = getpass.getpass("Password: ")
            if not is_valid_password(password):
                print(f"❌ {PASSWORD_POLICY_MESSAGE}")
                continue

            # Confirm password
            password_confirm = getpass.getpass("Confirm password: ")
            if password != password_confirm:
                print("❌ Passwords do not match")
                continue

            break

        auth = AuthService(
            db,
            hasher=build_password_hasher(settings),
            token_service=build_token_service(settings),
            session_expire_days=settings.session_expire_days,
        )
        result = auth.register(email, password, name or None)

        print()
        print("=" * 60)
        print("✅ User created successfully!")
        print("=" * 60)
        print()
        print(f"User ID: {result.user.id}")
        print(f"Email:   {result.user.email}")
        print(f"Name:    {result.user.name}")
        print()
        print("You can now login with these credentials:")
        print("  POST /api/auth/login")
        print(f"  {{ \"email\": \"{email}\", \"password\": \"<your-password>\" }}")
        print()

    except KeyboardInterrupt:
        print("\n\n❌ Aborted by user.")
        db.rollback()
    except APIError as e:
        print(f"\n❌ Could not create user: {e.message}")
        db.rollback()
    except Exception as e:
        print(f"\n❌ Error creating user: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a Note.Lab user")
    parser.add_argument("--init-db", action="store_true", help="Create missing tables first")
    args = parser.parse_args()

    if args.init_db:
        init_db()

    create_user()
