from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from .base import utcnow


class PartyType(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class Party(SQLModel, table=True):
    """
    A group of players around one owner (usually the GM).

    code is the 6-character join code; the unique constraint is the final
    arbiter when two creations race on the same candidate.
    """

    __tablename__ = "parties"

    id: Optional[int] = Field(default=None, primary_key=True)

    owner_id: int = Field(foreign_key="users.id", index=True)

    name: str = Field(max_length=255)
    description: str
    banner: Optional[str] = Field(default=None)

    code: str = Field(index=True, unique=True, max_length=6)
    type: PartyType = Field(default=PartyType.PUBLIC)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)


class PartyMember(SQLModel, table=True):
    """
    Membership link. The owner is never a row here.
    """

    __tablename__ = "party_members"
    __table_args__ = (UniqueConstraint("party_id", "user_id", name="uq_party_members_party_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    party_id: int = Field(foreign_key="parties.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    created_at: datetime = Field(default_factory=utcnow)
