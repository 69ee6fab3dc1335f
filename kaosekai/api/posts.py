from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field as PydField, field_validator
from sqlmodel import Session

from ..database import get_db
from ..errors import NotFoundError
from ..models.post import Post
from ..models.user import User
from ..schemas import MessageResponse, UserAuthor, UtcDatetime, validate_media_ref
from ..services.policy import Action, Actor, enforce
from ..stores import posts as store
from .deps import get_actor, get_current_user
from .parties import load_scope

router = APIRouter(tags=["posts"])

NO_ACCESS = "You do not have access to this party."


class PostCreate(BaseModel):
    text: str = PydField(..., min_length=1, max_length=5000)
    images: List[str] = PydField(default_factory=list)

    @field_validator("images")
    @classmethod
    def _image_refs(cls, v: List[str]) -> List[str]:
        return [validate_media_ref(x) for x in v]


class PostRead(BaseModel):
    id: int
    party_id: int
    user_id: int
    text: str
    images: List[str]
    user: UserAuthor
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def of(cls, post: Post, author: User) -> "PostRead":
        return cls(
            id=post.id,
            party_id=post.party_id,
            user_id=post.user_id,
            text=post.text,
            images=list(post.images or []),
            user=UserAuthor.of(author),
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


@router.get("/parties/{party_id}/posts", response_model=List[PostRead])
def list_posts(party_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> List[PostRead]:
    scope = load_scope(db, party_id)
    enforce(actor, Action.VIEW, scope, message=NO_ACCESS)
    return [PostRead.of(post, author) for post, author in store.list_for_party(db, party_id)]


@router.post("/parties/{party_id}/posts", response_model=PostRead, status_code=201)
def create_post(
    party_id: int,
    payload: PostCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> PostRead:
    actor = Actor.of(user)
    scope = load_scope(db, party_id)
    enforce(actor, Action.CREATE, scope, message=NO_ACCESS)

    post = store.create_post(db, party_id=party_id, user_id=actor.id, text=payload.text, images=payload.images)
    return PostRead.of(post, user)


@router.delete("/posts/{post_id}", response_model=MessageResponse)
def delete_post(post_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> MessageResponse:
    post = store.get_post(db, post_id)
    if post is None:
        raise NotFoundError("Post not found.")
    enforce(actor, Action.DELETE, post, message="You cannot delete this post.")
    store.delete_post(db, post)
    return MessageResponse(message="Post deleted.")
