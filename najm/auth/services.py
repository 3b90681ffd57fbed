# najm/auth/services.py
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from najm.auth.models import User
from najm.core.security import hash_password, verify_password

logger = logging.getLogger(__name__)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


def create_user(db: Session, username: str, password: str, role: str = "user") -> User:
    db_user = User(username=username, password_hash=hash_password(password), role=role)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def authenticate(db: Session, username: str, password: str) -> User | None:
    """Return the user when the password matches, stamping last_login."""
    db_user = get_user_by_username(db, username)
    if not db_user or not verify_password(password, db_user.password_hash):
        return None
    db_user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(db_user)
    return db_user


def ensure_admin_user(db: Session, username: str, password: str) -> User:
    existing = get_user_by_username(db, username)
    if existing:
        return existing
    logger.info("Creating admin user %s", username)
    return create_user(db, username, password, role="admin")
