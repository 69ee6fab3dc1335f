from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column, Text
from sqlmodel import Field, SQLModel

from .base import utcnow


class Post(SQLModel, table=True):
    __tablename__ = "posts"

    id: Optional[int] = Field(default=None, primary_key=True)

    party_id: int = Field(foreign_key="parties.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    text: str = Field(sa_column=Column(Text, nullable=False))
    images: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
