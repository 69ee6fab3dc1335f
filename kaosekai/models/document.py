from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from .base import utcnow


class Document(SQLModel, table=True):
    """
    Catalog entry (rulebook): a cover image plus a PDF.

    cover_image / pdf_file hold public reference paths ("/uploads/covers/..."),
    not disk paths. Work-in-progress rows are hidden from the public catalog.
    """

    __tablename__ = "documents"

    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(max_length=255)
    version: str = Field(max_length=64)

    cover_image: str
    pdf_file: str

    is_wip: bool = Field(default=False, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
