from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field as PydField, field_validator
from sqlmodel import Session

from ..config import Settings
from ..database import get_db
from ..models.user import User
from ..schemas import MessageResponse, UserSummary, strip_text
from ..services import credentials
from ..services.credentials import Identity, IssuedSession
from .deps import get_current_user, get_identity, get_settings

router = APIRouter(tags=["auth"])


# -----------------------------
# Schemas
# -----------------------------

class RegisterRequest(BaseModel):
    name: str = PydField(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = PydField(..., min_length=6)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> Any:
        return strip_text(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    user: UserSummary
    access_token: str
    token_type: str

    @classmethod
    def of(cls, issued: IssuedSession) -> "AuthResponse":
        return cls(
            user=UserSummary.of(issued.user),
            access_token=issued.access_token,
            token_type=issued.token_type,
        )


# -----------------------------
# Routes
# -----------------------------

@router.post("/register", response_model=AuthResponse, status_code=201)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    issued = credentials.register(
        db,
        settings,
        name=payload.name,
        email=str(payload.email),
        password=payload.password,
    )
    return AuthResponse.of(issued)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    issued = credentials.login(db, settings, email=str(payload.email), password=payload.password)
    return AuthResponse.of(issued)


@router.post("/logout", response_model=MessageResponse)
def logout(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> MessageResponse:
    credentials.logout(db, identity.token_hash)
    return MessageResponse(message="Logged out successfully")


@router.get("/user", response_model=UserSummary)
def current_user(user: User = Depends(get_current_user)) -> UserSummary:
    return UserSummary.of(user)
