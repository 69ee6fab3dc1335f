from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, or_, select

from ..errors import ConflictError
from ..models.base import utcnow
from ..models.user import Deleted, User, UserRole

EMAIL_TAKEN = "The email has already been taken."
SEARCH_LIMIT = 20


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _live():
    return col(User.deleted_at).is_(None)


def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)


def get_live_user(session: Session, user_id: int) -> Optional[User]:
    user = get_user(session, user_id)
    if user is None or isinstance(user.state, Deleted):
        return None
    return user


def find_live_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == normalize_email(email), _live())).first()


def email_taken(session: Session, email: str, *, exclude_user_id: Optional[int] = None) -> bool:
    q = select(User.id).where(User.email == normalize_email(email), _live())
    if exclude_user_id is not None:
        q = q.where(User.id != exclude_user_id)
    return session.exec(q).first() is not None


def _commit_user(session: Session, user: User) -> User:
    """
    Commit with the partial unique index on email as the final arbiter:
    a concurrent registration that slipped past email_taken() lands here.
    """
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("email", EMAIL_TAKEN)
    session.refresh(user)
    return user


def create_user(
    session: Session,
    *,
    name: str,
    email: str,
    password_hash: str,
    role: UserRole = UserRole.PLAYER,
    avatar: Optional[str] = None,
) -> User:
    if email_taken(session, email):
        raise ConflictError("email", EMAIL_TAKEN)

    user = User(
        name=name,
        email=normalize_email(email),
        password_hash=password_hash,
        role=role,
        avatar=avatar,
    )
    return _commit_user(session, user)


def update_user(session: Session, user: User, changes: Dict[str, object]) -> User:
    """
    Apply only the keys present in changes (avatar may be set to None).
    """
    if "email" in changes:
        email = str(changes["email"])
        if email_taken(session, email, exclude_user_id=user.id):
            raise ConflictError("email", EMAIL_TAKEN)
        user.email = normalize_email(email)
    for key in ("name", "password_hash", "role", "avatar"):
        if key in changes:
            setattr(user, key, changes[key])

    user.updated_at = utcnow()
    return _commit_user(session, user)


def soft_delete_user(session: Session, user: User) -> User:
    user.mark_deleted()
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def list_live_users(session: Session) -> List[User]:
    q = select(User).where(_live()).order_by(User.created_at.desc(), User.id.desc())
    return list(session.exec(q).all())


def search_users(session: Session, query: str, *, limit: int = SEARCH_LIMIT) -> List[User]:
    """
    Case-insensitive substring match on name or email, live users only.
    """
    term = (query or "").strip()
    q = select(User).where(_live())
    if term:
        q = q.where(
            or_(
                col(User.name).icontains(term, autoescape=True),
                col(User.email).icontains(term, autoescape=True),
            )
        )
    q = q.order_by(User.name, User.id).limit(min(limit, SEARCH_LIMIT))
    return list(session.exec(q).all())
