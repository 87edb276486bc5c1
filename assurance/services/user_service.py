"""User directory - read by the notification fan-out, written by seeding / CLI."""

from sqlalchemy.orm import Session

from assurance.db.base import utcnow
from assurance.db.enums import UserRole, UserStatus
from assurance.db.models import User


class UserAlreadyExistsError(Exception):
    """Username is already taken."""

    pass


def list_all(db: Session) -> list[User]:
    """Return every user, ordered by username."""
    return db.query(User).order_by(User.username).all()


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


def count_users(db: Session) -> int:
    return db.query(User).count()


def create_user(
    db: Session,
    username: str,
    display_name: str | None = None,
    role: UserRole = UserRole.USER,
    status: UserStatus = UserStatus.REGISTERED,
    active: bool = True,
) -> User:
    """Create a directory entry. Raises UserAlreadyExistsError on a taken username."""
    username = username.strip()
    if get_user_by_username(db, username):
        raise UserAlreadyExistsError(username)

    user = User(
        username=username,
        display_name=display_name,
        role=role.value,
        status=status.value,
        active=active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def record_login(db: Session, user: User) -> User:
    """Stamp last_login_at (users who never logged in receive no broadcasts)."""
    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    return user
