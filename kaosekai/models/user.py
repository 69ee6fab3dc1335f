from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from .base import as_utc, utcnow


class UserRole(str, Enum):
    """
    Account role. Values are API-stable strings.

    - ADMIN: user management + document catalog management
    - GM / PLAYER: regular accounts (no extra server-side privileges yet)
    """

    ADMIN = "ADMIN"
    GM = "GM"
    PLAYER = "PLAYER"


@dataclass(frozen=True)
class Active:
    pass


@dataclass(frozen=True)
class Deleted:
    at: datetime


UserState = Union[Active, Deleted]


class User(SQLModel, table=True):
    """
    An account.

    Notes:
    - Users are never hard-deleted; deleted_at marks a soft delete and every
      listing/search/authentication query filters on it.
    - email is stored lower-cased; uniqueness only applies to live rows
      (partial unique index) so a soft-deleted address can register again.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index(
            "uq_users_email_live",
            "email",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(max_length=255)
    email: str = Field(max_length=255)
    password_hash: str

    role: UserRole = Field(default=UserRole.PLAYER, index=True)
    avatar: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)

    @property
    def state(self) -> UserState:
        if self.deleted_at is None:
            return Active()
        return Deleted(at=as_utc(self.deleted_at))

    def mark_deleted(self) -> None:
        if isinstance(self.state, Active):
            self.deleted_at = utcnow()
            self.updated_at = self.deleted_at
