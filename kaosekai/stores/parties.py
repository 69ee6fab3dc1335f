from __future__ import annotations

import logging
import secrets
from typing import Callable, Dict, FrozenSet, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, or_, select

from ..errors import ConflictError
from ..models.base import utcnow
from ..models.party import Party, PartyMember, PartyType
from ..models.post import Post

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CODE_LENGTH = 6


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def is_valid_code(code: str) -> bool:
    return len(code) == CODE_LENGTH and all(c in CODE_ALPHABET for c in code)


def code_taken(session: Session, code: str) -> bool:
    return session.exec(select(Party.id).where(Party.code == code)).first() is not None


def unique_code(session: Session, generate: Callable[[], str] = generate_code) -> str:
    """
    Draw codes until one is free. No retry cap: 36^6 candidates keep
    collisions rare, but the loop only stops on a free code.
    """
    while True:
        code = generate()
        if not code_taken(session, code):
            return code
        logger.info("Party code collision on %s, drawing again", code)


def create_party(
    session: Session,
    *,
    owner_id: int,
    name: str,
    description: str,
    banner: Optional[str] = None,
    party_type: PartyType = PartyType.PUBLIC,
    generate: Callable[[], str] = generate_code,
) -> Party:
    """
    Insert a party with a fresh join code.

    unique_code() reads before we write, so a concurrent creation can still
    claim the same code; the unique constraint rejects the loser and we draw
    again.
    """
    while True:
        code = unique_code(session, generate)
        party = Party(
            owner_id=owner_id,
            name=name,
            description=description,
            banner=banner,
            code=code,
            type=party_type,
        )
        session.add(party)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            if code_taken(session, code):
                logger.info("Party code %s claimed concurrently, retrying", code)
                continue
            raise
        session.refresh(party)
        logger.info("Created party id=%s owner=%s", party.id, owner_id)
        return party


def get_party(session: Session, party_id: int) -> Optional[Party]:
    return session.get(Party, party_id)


def get_by_code(session: Session, code: str) -> Optional[Party]:
    return session.exec(select(Party).where(Party.code == normalize_code(code))).first()


def member_ids(session: Session, party_id: int) -> FrozenSet[int]:
    rows = session.exec(select(PartyMember.user_id).where(PartyMember.party_id == party_id)).all()
    return frozenset(int(r) for r in rows)


def is_member(session: Session, party_id: int, user_id: int) -> bool:
    q = select(PartyMember.id).where(PartyMember.party_id == party_id, PartyMember.user_id == user_id)
    return session.exec(q).first() is not None


def members_counts(session: Session, party_ids: List[int]) -> Dict[int, int]:
    if not party_ids:
        return {}
    q = (
        select(PartyMember.party_id, func.count(PartyMember.id))
        .where(col(PartyMember.party_id).in_(party_ids))
        .group_by(PartyMember.party_id)
    )
    counts = {int(pid): int(n) for pid, n in session.exec(q).all()}
    return {pid: counts.get(pid, 0) for pid in party_ids}


def list_for_user(session: Session, user_id: int) -> List[Party]:
    """
    Parties the user owns or belongs to, each once, newest update first.
    """
    joined = select(PartyMember.party_id).where(PartyMember.user_id == user_id)
    q = (
        select(Party)
        .where(or_(Party.owner_id == user_id, col(Party.id).in_(joined)))
        .order_by(Party.updated_at.desc(), Party.id.desc())
    )
    return list(session.exec(q).all())


def update_party(
    session: Session,
    party: Party,
    changes: Dict[str, object],
) -> Party:
    """
    Apply only the keys present in changes (banner may be set to None).
    """
    for key in ("name", "description", "banner", "type"):
        if key in changes:
            setattr(party, key, changes[key])
    party.updated_at = utcnow()
    session.add(party)
    session.commit()
    session.refresh(party)
    return party


def delete_party(session: Session, party: Party) -> None:
    for post in session.exec(select(Post).where(Post.party_id == party.id)).all():
        session.delete(post)
    for member in session.exec(select(PartyMember).where(PartyMember.party_id == party.id)).all():
        session.delete(member)
    # children first: foreign_keys=ON on SQLite
    session.flush()
    session.delete(party)
    session.commit()


def add_member(session: Session, party: Party, user_id: int, *, field: str, message: str) -> PartyMember:
    """
    Insert the (party, user) link. The unique constraint decides races;
    a duplicate surfaces as ConflictError on field.
    """
    member = PartyMember(party_id=party.id, user_id=user_id)
    session.add(member)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(field, message)
    session.refresh(member)
    return member
