from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Union

from ..errors import ForbiddenError, NotFoundError
from ..models.character import Character
from ..models.document import Document
from ..models.party import Party
from ..models.post import Post
from ..models.user import User, UserRole


class Action(str, Enum):
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    INVITE = "invite"
    # admin surfaces: user management, catalog listing incl. work-in-progress
    MANAGE = "manage"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class Actor:
    """
    The narrow view of a caller the policy needs.
    """
    id: int
    role: UserRole

    @classmethod
    def of(cls, user: User) -> "Actor":
        return cls(id=int(user.id), role=user.role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class PartyScope:
    """
    A party together with its member ids (the owner is not a member row).

    CREATE on a PartyScope means writing to its feed.
    """
    party: Party
    member_ids: FrozenSet[int]

    def includes(self, user_id: int) -> bool:
        return user_id == self.party.owner_id or user_id in self.member_ids


class _Marker:
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


# Collection-level resources (no row to check against)
USER_DIRECTORY = _Marker("user-directory")
DOCUMENT_CATALOG = _Marker("document-catalog")

Resource = Union[Character, PartyScope, Post, Document, _Marker]


# -------------------------
# Rules
# -------------------------

def _character(actor: Actor, action: Action, character: Character) -> bool:
    # Ownership is absolute: no role override, ADMIN included.
    return character.user_id == actor.id


def _party(actor: Actor, action: Action, scope: PartyScope) -> bool:
    if action in (Action.VIEW, Action.CREATE):
        return scope.includes(actor.id)
    if action in (Action.UPDATE, Action.DELETE, Action.INVITE):
        return scope.party.owner_id == actor.id
    return False


def _post(actor: Actor, action: Action, post: Post) -> bool:
    # Party ownership does not grant moderation over members' posts.
    if action == Action.DELETE:
        return post.user_id == actor.id
    return False


def _document(actor: Optional[Actor], action: Action, document: Document) -> bool:
    if action == Action.VIEW:
        # Public read never exposes work-in-progress, whoever is asking.
        return not document.is_wip
    return actor is not None and actor.is_admin


def authorize(actor: Optional[Actor], action: Action, resource: Resource) -> Decision:
    """
    Pure allow/deny decision. actor is None for anonymous callers.
    """
    if isinstance(resource, Document):
        allowed = _document(actor, action, resource)
    elif actor is None:
        allowed = False
    elif resource is USER_DIRECTORY or resource is DOCUMENT_CATALOG:
        allowed = actor.is_admin
    elif isinstance(resource, Character):
        allowed = _character(actor, action, resource)
    elif isinstance(resource, PartyScope):
        allowed = _party(actor, action, resource)
    elif isinstance(resource, Post):
        allowed = _post(actor, action, resource)
    else:
        allowed = False

    return Decision.ALLOW if allowed else Decision.DENY


def is_allowed(actor: Optional[Actor], action: Action, resource: Resource) -> bool:
    return authorize(actor, action, resource) == Decision.ALLOW


def enforce(
    actor: Optional[Actor],
    action: Action,
    resource: Resource,
    *,
    conceal: bool = False,
    message: Optional[str] = None,
) -> None:
    """
    Raise on DENY.

    conceal=True answers 404 instead of 403 so callers outside a row's scope
    can't tell whether it exists.
    """
    if is_allowed(actor, action, resource):
        return
    if conceal:
        raise NotFoundError(message)
    raise ForbiddenError(message)
