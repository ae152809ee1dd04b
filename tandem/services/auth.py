import secrets
from datetime import datetime, timedelta, UTC
from typing import Optional
import bcrypt
from sqlmodel import Session, select

from ..config import SESSION_EXPIRE_DAYS
from ..errors import NotFound
from ..logging import get_logger
from ..models.user import User
from ..models.session import Session as UserSession

logger = get_logger(__name__)


def _password_bytes(password: str) -> bytes:
    # Bcrypt only looks at the first 72 bytes
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > 72:
        password_bytes = password_bytes[:72]
    return password_bytes


def hash_password(password: str) -> str:
    """Hash a password using bcrypt. Truncates to 72 bytes for bcrypt compatibility."""
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get a user by email."""
    statement = select(User).where(User.email == email)
    return db.exec(statement).first()


def create_user(db: Session, email: str, password: str, name: str) -> User:
    """Create a new user."""
    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_created", user_id=user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate a user by email and password."""
    user = get_user_by_email(db, email)

    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


def create_session(db: Session, user_id: int) -> UserSession:
    """Create a new login session for a user."""
    user_session = UserSession(
        user_id=user_id,
        session_token=secrets.token_urlsafe(32),
        expires_at=datetime.now(UTC) + timedelta(days=SESSION_EXPIRE_DAYS)
    )
    db.add(user_session)
    db.commit()
    db.refresh(user_session)
    return user_session


def delete_user_sessions(db: Session, user_id: int) -> int:
    """Delete every session of a user (logout). Returns how many were removed."""
    statement = select(UserSession).where(UserSession.user_id == user_id)
    sessions = db.exec(statement).all()

    for user_session in sessions:
        db.delete(user_session)
    db.commit()

    return len(sessions)


def get_user_or_404(db: Session, user_id: int) -> User:
    """Load a user by id, failing the request with 404 when it does not exist."""
    user = db.get(User, user_id)
    if not user:
        logger.warning("user_not_found", user_id=user_id)
        raise NotFound("User not found.")
    return user
