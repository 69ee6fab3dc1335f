from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field as PydField, field_validator
from sqlmodel import Session

from ..database import get_db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models.party import Party, PartyType
from ..schemas import MessageResponse, UtcDatetime, strip_text, validate_http_url
from ..services.policy import Action, Actor, PartyScope, enforce
from ..stores import parties as store
from .deps import get_actor

router = APIRouter(prefix="/parties", tags=["parties"])

NOT_FOUND = "Party not found."
BAD_CODE = "Invalid code format. Code must be 6 characters."


# -----------------------------
# Schemas
# -----------------------------

class PartyCreate(BaseModel):
    name: str = PydField(..., min_length=1, max_length=255)
    description: str = PydField(..., min_length=1)
    banner: Optional[str] = None
    type: Optional[PartyType] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> Any:
        return strip_text(v)

    @field_validator("banner")
    @classmethod
    def _banner_url(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_http_url(v)


class PartyUpdate(BaseModel):
    """
    Partial update. Omitted fields are unchanged; banner may be cleared
    with an explicit null.
    """
    name: Optional[str] = PydField(default=None, min_length=1, max_length=255)
    description: Optional[str] = PydField(default=None, min_length=1)
    banner: Optional[str] = None
    type: Optional[PartyType] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> Any:
        return strip_text(v)

    @field_validator("banner")
    @classmethod
    def _banner_url(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_http_url(v)


class JoinRequest(BaseModel):
    code: str


class PartyRead(BaseModel):
    id: int
    owner_id: int
    name: str
    description: str
    banner: Optional[str] = None
    code: str
    type: PartyType
    members_count: int
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def of(cls, party: Party, members_count: int) -> "PartyRead":
        return cls(
            id=party.id,
            owner_id=party.owner_id,
            name=party.name,
            description=party.description,
            banner=party.banner,
            code=party.code,
            type=party.type,
            members_count=members_count,
            created_at=party.created_at,
            updated_at=party.updated_at,
        )


# -----------------------------
# Helpers
# -----------------------------

def load_scope(db: Session, party_id: int) -> PartyScope:
    party = store.get_party(db, party_id)
    if party is None:
        raise NotFoundError(NOT_FOUND)
    return PartyScope(party=party, member_ids=store.member_ids(db, party_id))


def _read(scope: PartyScope) -> PartyRead:
    return PartyRead.of(scope.party, len(scope.member_ids))


def _code_or_422(raw: str) -> str:
    code = store.normalize_code(raw)
    if not store.is_valid_code(code):
        raise ValidationError.for_field("code", BAD_CODE)
    return code


# -----------------------------
# Routes
# -----------------------------

@router.get("", response_model=List[PartyRead])
def list_parties(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> List[PartyRead]:
    parties = store.list_for_user(db, actor.id)
    counts = store.members_counts(db, [p.id for p in parties])
    return [PartyRead.of(p, counts.get(p.id, 0)) for p in parties]


@router.post("", response_model=PartyRead, status_code=201)
def create_party(
    payload: PartyCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> PartyRead:
    party = store.create_party(
        db,
        owner_id=actor.id,
        name=payload.name,
        description=payload.description,
        banner=payload.banner,
        party_type=payload.type or PartyType.PUBLIC,
    )
    return PartyRead.of(party, 0)


@router.get("/code/{code}", response_model=PartyRead)
def find_by_code(code: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> PartyRead:
    party = store.get_by_code(db, _code_or_422(code))
    if party is None:
        raise NotFoundError(NOT_FOUND)
    scope = PartyScope(party=party, member_ids=store.member_ids(db, party.id))
    enforce(actor, Action.VIEW, scope, conceal=True, message=NOT_FOUND)
    return _read(scope)


@router.post("/join", response_model=PartyRead, status_code=201)
def join_party(payload: JoinRequest, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> PartyRead:
    """
    Join by code. Codes are matched case-insensitively ("abc123" finds "ABC123").
    """
    party = store.get_by_code(db, _code_or_422(payload.code))
    if party is None:
        raise NotFoundError(NOT_FOUND)

    if party.owner_id == actor.id:
        raise ConflictError("code", "You are already the owner of this party.")

    already = "You are already a member of this party."
    if store.is_member(db, party.id, actor.id):
        raise ConflictError("code", already)

    store.add_member(db, party, actor.id, field="code", message=already)
    return _read(load_scope(db, party.id))


@router.get("/{party_id}", response_model=PartyRead)
def get_party(party_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> PartyRead:
    scope = load_scope(db, party_id)
    enforce(actor, Action.VIEW, scope, conceal=True, message=NOT_FOUND)
    return _read(scope)


def _update(party_id: int, payload: PartyUpdate, actor: Actor, db: Session) -> PartyRead:
    scope = load_scope(db, party_id)
    enforce(actor, Action.UPDATE, scope, conceal=True, message=NOT_FOUND)

    changes = {}
    for key in payload.model_fields_set:
        value = getattr(payload, key)
        # only banner can be cleared; a null name/description/type is ignored
        if value is not None or key == "banner":
            changes[key] = value

    store.update_party(db, scope.party, changes)
    return _read(load_scope(db, party_id))


@router.put("/{party_id}", response_model=PartyRead)
def replace_party(
    party_id: int,
    payload: PartyUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> PartyRead:
    return _update(party_id, payload, actor, db)


@router.patch("/{party_id}", response_model=PartyRead)
def patch_party(
    party_id: int,
    payload: PartyUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> PartyRead:
    return _update(party_id, payload, actor, db)


@router.delete("/{party_id}", response_model=MessageResponse)
def delete_party(party_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> MessageResponse:
    scope = load_scope(db, party_id)
    enforce(actor, Action.DELETE, scope, conceal=True, message=NOT_FOUND)
    store.delete_party(db, scope.party)
    return MessageResponse(message="Party deleted.")
