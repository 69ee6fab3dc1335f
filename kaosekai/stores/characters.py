from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..models.base import utcnow
from ..models.character import Character


def list_for_owner(session: Session, user_id: int) -> List[Character]:
    q = (
        select(Character)
        .where(Character.user_id == user_id)
        .order_by(Character.updated_at.desc(), Character.id.desc())
    )
    return list(session.exec(q).all())


def get_character(session: Session, character_id: int) -> Optional[Character]:
    return session.get(Character, character_id)


def create_character(session: Session, *, user_id: int, name: str, data: Dict[str, Any]) -> Character:
    character = Character(user_id=user_id, name=name, data=data)
    session.add(character)
    session.commit()
    session.refresh(character)
    return character


def update_character(
    session: Session,
    character: Character,
    *,
    name: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> Character:
    if name is not None:
        character.name = name
    if data is not None:
        # whole-document replace; the sheet is never merged or coerced
        character.data = data
    character.updated_at = utcnow()
    session.add(character)
    session.commit()
    session.refresh(character)
    return character


def delete_character(session: Session, character: Character) -> None:
    session.delete(character)
    session.commit()
