from __future__ import annotations

from typing import List, Optional, Tuple

from sqlmodel import Session, col, select

from ..models.post import Post
from ..models.user import User


def list_for_party(session: Session, party_id: int) -> List[Tuple[Post, User]]:
    """
    Feed for one party, oldest first, with each author.
    """
    q = (
        select(Post, User)
        .join(User, col(User.id) == col(Post.user_id))
        .where(Post.party_id == party_id)
        .order_by(Post.created_at, Post.id)
    )
    return [(post, user) for post, user in session.exec(q).all()]


def get_post(session: Session, post_id: int) -> Optional[Post]:
    return session.get(Post, post_id)


def create_post(session: Session, *, party_id: int, user_id: int, text: str, images: List[str]) -> Post:
    post = Post(party_id=party_id, user_id=user_id, text=text, images=list(images))
    session.add(post)
    session.commit()
    session.refresh(post)
    return post


def delete_post(session: Session, post: Post) -> None:
    session.delete(post)
    session.commit()
