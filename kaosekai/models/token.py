from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from .base import as_utc, utcnow


class Token(SQLModel, table=True):
    """
    Server-side session record.

    Store only a SHA-256 digest of the random token; the signed bearer token
    handed to the client references this digest. Deleting the row revokes the
    session even while the signed token is still cryptographically valid.
    """

    __tablename__ = "tokens"

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="users.id", index=True)
    name: str = Field(default="api_token")

    token_hash: str = Field(index=True, unique=True, max_length=64)

    expires_at: Optional[datetime] = Field(default=None, index=True)
    last_used_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)

    def is_expired(self, now: datetime) -> bool:
        exp = as_utc(self.expires_at)
        return exp is not None and exp < now
