from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from .base import utcnow


class Character(SQLModel, table=True):
    """
    A player character.

    data is the character sheet: an opaque JSON document (stats, inventory,
    skills, notes...) persisted and returned verbatim.
    """

    __tablename__ = "characters"

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="users.id", index=True)
    name: str = Field(max_length=255)

    data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)
