# Central import surface for SQLModel table registration.
# Keeping these imports ensures init_db() sees all models and creates tables.

from .base import as_utc, utcnow
from .user import Active, Deleted, User, UserRole, UserState
from .token import Token
from .character import Character
from .party import Party, PartyMember, PartyType
from .post import Post
from .document import Document

__all__ = [
    "Active",
    "Character",
    "Deleted",
    "Document",
    "Party",
    "PartyMember",
    "PartyType",
    "Post",
    "Token",
    "User",
    "UserRole",
    "UserState",
    "as_utc",
    "utcnow",
]
