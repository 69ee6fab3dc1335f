from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field as PydField
from sqlmodel import Session

from ..database import get_db
from ..errors import NotFoundError
from ..models.character import Character
from ..schemas import MessageResponse, UtcDatetime
from ..services.policy import Action, Actor, enforce
from ..stores import characters as store
from .deps import get_actor

router = APIRouter(prefix="/characters", tags=["characters"])

NOT_FOUND = "Character not found."
DEFAULT_NAME = "Unnamed"


# -----------------------------
# Schemas
# -----------------------------

class CharacterWrite(BaseModel):
    """
    Create / full replace. data is the sheet, stored verbatim.
    """
    data: Dict[str, Any]
    name: Optional[str] = PydField(default=None, max_length=255)


class CharacterPatch(BaseModel):
    """
    Partial update. Any field omitted is left unchanged.
    """
    data: Optional[Dict[str, Any]] = None
    name: Optional[str] = PydField(default=None, max_length=255)


class CharacterRead(BaseModel):
    id: int
    user_id: int
    name: str
    data: Dict[str, Any]
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def of(cls, c: Character) -> "CharacterRead":
        return cls(
            id=c.id,
            user_id=c.user_id,
            name=c.name,
            data=c.data,
            created_at=c.created_at,
            updated_at=c.updated_at,
        )


# -----------------------------
# Helpers
# -----------------------------

def _name_from(name: Optional[str], data: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Explicit name first, then the sheet's own "name" entry.
    """
    if name and name.strip():
        return name.strip()
    sheet_name = (data or {}).get("name")
    if isinstance(sheet_name, str) and sheet_name.strip():
        return sheet_name.strip()[:255]
    return None


def _load(db: Session, actor: Actor, character_id: int, action: Action) -> Character:
    character = store.get_character(db, character_id)
    if character is None:
        raise NotFoundError(NOT_FOUND)
    # Someone else's character is "not found", never "forbidden".
    enforce(actor, action, character, conceal=True, message=NOT_FOUND)
    return character


# -----------------------------
# Routes
# -----------------------------

@router.get("", response_model=List[CharacterRead])
def list_characters(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> List[CharacterRead]:
    return [CharacterRead.of(c) for c in store.list_for_owner(db, actor.id)]


@router.post("", response_model=CharacterRead, status_code=201)
def create_character(
    payload: CharacterWrite,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> CharacterRead:
    character = store.create_character(
        db,
        user_id=actor.id,
        name=_name_from(payload.name, payload.data) or DEFAULT_NAME,
        data=payload.data,
    )
    return CharacterRead.of(character)


@router.get("/{character_id}", response_model=CharacterRead)
def get_character(
    character_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> CharacterRead:
    return CharacterRead.of(_load(db, actor, character_id, Action.VIEW))


@router.put("/{character_id}", response_model=CharacterRead)
def replace_character(
    character_id: int,
    payload: CharacterWrite,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> CharacterRead:
    character = _load(db, actor, character_id, Action.UPDATE)
    character = store.update_character(
        db,
        character,
        name=_name_from(payload.name, payload.data),
        data=payload.data,
    )
    return CharacterRead.of(character)


@router.patch("/{character_id}", response_model=CharacterRead)
def patch_character(
    character_id: int,
    payload: CharacterPatch,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> CharacterRead:
    character = _load(db, actor, character_id, Action.UPDATE)
    character = store.update_character(
        db,
        character,
        name=_name_from(payload.name, payload.data),
        data=payload.data,
    )
    return CharacterRead.of(character)


@router.delete("/{character_id}", response_model=MessageResponse)
def delete_character(
    character_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> MessageResponse:
    character = _load(db, actor, character_id, Action.DELETE)
    store.delete_character(db, character)
    return MessageResponse(message="Character deleted.")
