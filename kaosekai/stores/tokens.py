from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from sqlmodel import Session, col, select

from ..models.token import Token
from ..models.user import User


def create_token(
    session: Session,
    *,
    user_id: int,
    token_hash: str,
    expires_at: Optional[datetime] = None,
    name: str = "api_token",
) -> Token:
    token = Token(user_id=user_id, token_hash=token_hash, expires_at=expires_at, name=name)
    session.add(token)
    session.commit()
    session.refresh(token)
    return token


def find_with_live_user(session: Session, token_hash: str) -> Optional[Tuple[Token, User]]:
    """
    Token row plus its owner, provided the owner isn't soft-deleted.
    """
    q = (
        select(Token, User)
        .join(User, col(User.id) == col(Token.user_id))
        .where(Token.token_hash == token_hash, col(User.deleted_at).is_(None))
    )
    row = session.exec(q).first()
    if row is None:
        return None
    return row[0], row[1]


def touch(session: Session, token: Token, now: datetime) -> None:
    # Last-writer-wins; a lost update here is harmless.
    token.last_used_at = now
    session.add(token)
    session.commit()


def _delete_where(session: Session, *criteria) -> int:
    rows = session.exec(select(Token).where(*criteria)).all()
    for row in rows:
        session.delete(row)
    session.commit()
    return len(rows)


def delete_by_hash(session: Session, token_hash: str) -> int:
    return _delete_where(session, Token.token_hash == token_hash)


def delete_for_user(session: Session, user_id: int) -> int:
    return _delete_where(session, Token.user_id == user_id)


def count_for_user(session: Session, user_id: int) -> int:
    return len(session.exec(select(Token.id).where(Token.user_id == user_id)).all())
