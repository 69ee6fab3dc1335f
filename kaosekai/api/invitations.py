from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field as PydField
from sqlmodel import Session

from ..database import get_db
from ..errors import ConflictError, NotFoundError
from ..models.party import PartyMember
from ..models.user import User
from ..schemas import UtcDatetime
from ..services.policy import Action, Actor, enforce
from ..stores import parties as party_store
from ..stores import users as user_store
from .deps import get_actor
from .parties import load_scope

router = APIRouter(tags=["invitations"])

ALREADY_MEMBER = "User is already a member of this party."


class UserSearchResult(BaseModel):
    id: int
    name: str
    email: str
    avatar: Optional[str] = None

    @classmethod
    def of(cls, user: User) -> "UserSearchResult":
        return cls(id=user.id, name=user.name, email=user.email, avatar=user.avatar)


class InvitationCreate(BaseModel):
    user_id: int = PydField(..., ge=1)


class MemberRead(BaseModel):
    id: int
    party_id: int
    user_id: int
    created_at: UtcDatetime

    @classmethod
    def of(cls, member: PartyMember) -> "MemberRead":
        return cls(id=member.id, party_id=member.party_id, user_id=member.user_id, created_at=member.created_at)


class InvitationResponse(BaseModel):
    message: str
    member: MemberRead


@router.get("/users/search", response_model=List[UserSearchResult])
def search_users(
    query: str = Query(default="", max_length=255),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> List[UserSearchResult]:
    """
    Fuzzy name/email lookup for the invite dialog. Soft-deleted accounts
    never show up; at most 20 results.
    """
    return [UserSearchResult.of(u) for u in user_store.search_users(db, query)]


@router.post("/parties/{party_id}/invitations", response_model=InvitationResponse, status_code=201)
def invite_user(
    party_id: int,
    payload: InvitationCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> InvitationResponse:
    """
    Owner adds a user straight into the party (no acceptance step).
    """
    scope = load_scope(db, party_id)
    enforce(actor, Action.INVITE, scope, message="Only the party owner can invite users.")

    target = user_store.get_live_user(db, payload.user_id)
    if target is None:
        raise NotFoundError("User not found.")

    if target.id == scope.party.owner_id:
        raise ConflictError("user_id", "User is already the owner of this party.")
    if target.id in scope.member_ids:
        raise ConflictError("user_id", ALREADY_MEMBER)

    member = party_store.add_member(db, scope.party, target.id, field="user_id", message=ALREADY_MEMBER)
    return InvitationResponse(message="User invited successfully", member=MemberRead.of(member))
