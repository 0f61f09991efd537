#!/usr/bin/env python3
"""
Create the first store admin, or promote an existing account.

Usage:
    python create_admin.py admin@example.com 'StrongPass123' [First] [Last]

Email and password fall back to ADMIN_EMAIL / ADMIN_PASSWORD from the environment.
"""
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.orm import Session

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def create_or_promote_admin(
    db: Session,
    email: str,
    password: Optional[str] = None,
    first_name: str = "Store",
    last_name: str = "Admin",
):
    """Returns (user, created). An existing account keeps its password unless one is given."""
    from core.db import commit
    from models.user import User
    from security.password import hash_password

    email = (email or "").strip().lower()
    if not email:
        raise ValueError("Admin email is required")
    if password is not None and len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Admin password must be at least {MIN_PASSWORD_LENGTH} characters")

    user = db.query(User).filter(User.email == email).one_or_none()
    if user:
        user.is_admin = True
        if password:
            user.password_hash = hash_password(password)
        commit(db)
        logger.info("Promoted %s to admin", email)
        return user, False

    if not password:
        raise ValueError("A password is required to create a new admin")
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=hash_password(password),
        is_admin=True,
    )
    db.add(user)
    commit(db)
    db.refresh(user)
    logger.info("Created admin %s", email)
    return user, True


def main(argv=None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    email = args[0] if len(args) > 0 else os.getenv("ADMIN_EMAIL", "")
    password = args[1] if len(args) > 1 else os.getenv("ADMIN_PASSWORD") or None
    names = {}
    if len(args) > 2:
        names["first_name"] = args[2]
    if len(args) > 3:
        names["last_name"] = args[3]

    import models  # noqa: F401
    from core.db import Base, SessionLocal, engine

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user, created = create_or_promote_admin(db, email, password, **names)
    except ValueError as e:
        logger.error("%s", e)
        return 1
    finally:
        db.close()
    print(f"Admin {'created' if created else 'promoted'}: {user.email}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
