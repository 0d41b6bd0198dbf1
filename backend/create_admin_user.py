#!/usr/bin/env python
"""Create the first admin account.

Usage:
    python create_admin_user.py admin@example.com "Admin Name" [password]

Without a password a random one is generated and printed once.
"""
import secrets
import sys

from borrowtrack.core.config import settings
from borrowtrack.core.exceptions import InvalidInputError
from borrowtrack.db.session import SessionLocal
from borrowtrack.schemas.user import UserCreate
from borrowtrack.services.local_mirror import LocalCache
from borrowtrack.services.user_service import add_user, get_users


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)

    email, name = sys.argv[1], sys.argv[2]
    password = sys.argv[3] if len(sys.argv) > 3 else secrets.token_urlsafe(12)

    db = SessionLocal()
    cache = LocalCache.at(settings.LOCAL_CACHE_DIR)
    try:
        users = get_users(db, cache)
        print(f"\n{'='*60}")
        print(f"Current users: {len(users)}")
        print(f"{'='*60}")
        for u in users:
            print(f"  ✓ {u.email} | {u.role}")

        try:
            user = add_user(db, cache, UserCreate(email=email, password=password, name=name, role="admin"))
        except InvalidInputError as e:
            print(f"\n✗ {e}\n")
            sys.exit(1)

        print(f"\n✅ Admin user created")
        print(f"{'='*60}")
        print(f"Email:    {user.email}")
        print(f"Password: {password}")
        print(f"Barcode:  {user.barcode}")
        print(f"{'='*60}\n")
    finally:
        db.close()


if __name__ == "__main__":
    main()
