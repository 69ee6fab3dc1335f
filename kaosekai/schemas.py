from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional
from urllib.parse import urlsplit

from pydantic import AfterValidator, BaseModel

from .models.base import as_utc
from .models.user import User, UserRole


# Stored datetimes come back naive from SQLite; always serialize as UTC.
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


def validate_http_url(value: str) -> str:
    s = (value or "").strip()
    parts = urlsplit(s)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError("must be a valid http(s) URL")
    return s


def strip_text(value: Any) -> Any:
    # runs before length constraints, so "   " fails min_length
    return value.strip() if isinstance(value, str) else value


def validate_media_ref(value: str) -> str:
    """
    An http(s) URL, or a site-relative path such as the ones returned by
    image uploads ("/uploads/images/...").
    """
    s = (value or "").strip()
    if s.startswith("/") and not s.startswith("//"):
        return s
    return validate_http_url(s)


class MessageResponse(BaseModel):
    message: str


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole

    @classmethod
    def of(cls, user: User) -> "UserSummary":
        return cls(id=user.id, name=user.name, email=user.email, role=user.role)


class UserAuthor(BaseModel):
    id: int
    name: str
    avatar: Optional[str] = None

    @classmethod
    def of(cls, user: User) -> "UserAuthor":
        return cls(id=user.id, name=user.name, avatar=user.avatar)
