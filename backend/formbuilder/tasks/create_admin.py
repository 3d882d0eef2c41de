from sqlalchemy.orm import Session
from typing import Optional
import logging
import sys

from formbuilder.database import Base, SessionLocal, engine
from formbuilder.data_access import fetch_maybe_single, insert_row, update_row
from formbuilder.models.user import AdminUser
from formbuilder.utils.security import get_password_hash

logger = logging.getLogger(__name__)


def create_admin(db: Session, email: str, password: str, full_name: Optional[str] = None) -> AdminUser:
    """
    Create an admin account, or reset the password of an existing one.
    Accounts are only ever made here; there is no sign-up route.
    """
    email = email.strip().lower()
    if len(password) < 6:
        raise ValueError("Password must be at least 6 characters")
    if len(password.encode("utf-8")) > 72:
        raise ValueError("Password cannot be longer than 72 bytes")

    existing = fetch_maybe_single(db, AdminUser, AdminUser.email == email)
    if existing:
        values = {"hashed_password": get_password_hash(password), "is_active": True}
        if full_name:
            values["full_name"] = full_name
        logger.info(f"Resetting password for admin {existing.id}")
        return update_row(db, existing, values)

    user = insert_row(db, AdminUser(
        email=email,
        hashed_password=get_password_hash(password),
        full_name=full_name,
        is_active=True,
    ))
    logger.info(f"Created admin {user.id}")
    return user


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python -m formbuilder.tasks.create_admin <email> <password> [full name]")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        admin = create_admin(db, sys.argv[1], sys.argv[2], " ".join(sys.argv[3:]) or None)
        print(f"✅ Admin ready: {admin.email}")
    finally:
        db.close()
