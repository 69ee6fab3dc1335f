from __future__ import annotations

from fastapi import Depends, Request
from sqlmodel import Session

from ..config import Settings
from ..database import get_db
from ..errors import AuthError
from ..models.user import User
from ..services import credentials
from ..services.credentials import Identity
from ..services.policy import DOCUMENT_CATALOG, USER_DIRECTORY, Action, Actor, enforce
from ..services.uploads import FileStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_file_store(request: Request) -> FileStore:
    return request.app.state.file_store


def _bearer(request: Request) -> str:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError()
    return token.strip()


def get_identity(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Identity:
    """
    Every protected route depends on this: signature, expiry and the stored
    session row are all checked on each request.
    """
    return credentials.authenticate(db, settings, _bearer(request))


def get_current_user(identity: Identity = Depends(get_identity)) -> User:
    return identity.user


def get_actor(identity: Identity = Depends(get_identity)) -> Actor:
    return Actor.of(identity.user)


def require_user_admin(actor: Actor = Depends(get_actor)) -> Actor:
    enforce(actor, Action.MANAGE, USER_DIRECTORY)
    return actor


def require_catalog_admin(actor: Actor = Depends(get_actor)) -> Actor:
    enforce(actor, Action.MANAGE, DOCUMENT_CATALOG)
    return actor
