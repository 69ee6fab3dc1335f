from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field as PydField, field_validator
from sqlmodel import Session

from ..config import Settings
from ..database import get_db
from ..errors import NotFoundError
from ..models.user import User, UserRole
from ..schemas import MessageResponse, UtcDatetime, strip_text, validate_media_ref
from ..services import credentials
from ..stores import users as store
from .deps import get_settings, require_user_admin

logger = logging.getLogger(__name__)

# Every route here is ADMIN-only.
router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_user_admin)])

NOT_FOUND = "User not found."


# -----------------------------
# Schemas
# -----------------------------

class UserCreate(BaseModel):
    name: str = PydField(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = PydField(..., min_length=6)
    role: UserRole = UserRole.PLAYER
    avatar: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> Any:
        return strip_text(v)

    @field_validator("avatar")
    @classmethod
    def _avatar_ref(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_media_ref(v)


class UserUpdate(BaseModel):
    """
    Partial update (PUT and PATCH). Any field omitted is left unchanged.
    """
    name: Optional[str] = PydField(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = PydField(default=None, min_length=6)
    role: Optional[UserRole] = None
    avatar: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> Any:
        return strip_text(v)

    @field_validator("avatar")
    @classmethod
    def _avatar_ref(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_media_ref(v)


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    avatar: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def of(cls, user: User) -> "UserRead":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            avatar=user.avatar,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


def _load(db: Session, user_id: int) -> User:
    user = store.get_live_user(db, user_id)
    if user is None:
        raise NotFoundError(NOT_FOUND)
    return user


# -----------------------------
# Routes
# -----------------------------

@router.get("", response_model=List[UserRead])
def list_users(db: Session = Depends(get_db)) -> List[UserRead]:
    return [UserRead.of(u) for u in store.list_live_users(db)]


@router.post("", response_model=UserRead, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserRead:
    user = store.create_user(
        db,
        name=payload.name,
        email=str(payload.email),
        password_hash=credentials.hash_password(payload.password, settings.bcrypt_rounds),
        role=payload.role,
        avatar=payload.avatar,
    )
    return UserRead.of(user)


def _update(user_id: int, payload: UserUpdate, db: Session, settings: Settings) -> UserRead:
    user = _load(db, user_id)

    changes: Dict[str, object] = {}
    for key in payload.model_fields_set:
        value = getattr(payload, key)
        # only avatar can be cleared; a null name/email/password/role is ignored
        if value is None and key != "avatar":
            continue
        if key == "password":
            changes["password_hash"] = credentials.hash_password(value, settings.bcrypt_rounds)
        elif key == "email":
            changes["email"] = str(value)
        else:
            changes[key] = value

    user = store.update_user(db, user, changes)

    if "password_hash" in changes:
        # a new password ends every existing session
        credentials.revoke_all(db, user.id)

    return UserRead.of(user)


@router.put("/{user_id}", response_model=UserRead)
def replace_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserRead:
    return _update(user_id, payload, db, settings)


@router.patch("/{user_id}", response_model=UserRead)
def patch_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserRead:
    return _update(user_id, payload, db, settings)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, db: Session = Depends(get_db)) -> MessageResponse:
    """
    Soft delete: the row stays for history (characters, posts, parties keep
    pointing at it) but the account can no longer log in or be found.
    """
    user = _load(db, user_id)
    store.soft_delete_user(db, user)
    credentials.revoke_all(db, user.id)
    logger.info("Soft-deleted user id=%s", user.id)
    return MessageResponse(message="User deleted.")
