from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from kaosekai.config import settings
from kaosekai.database import get_engine, init_db, session_scope
from kaosekai.models.base import utcnow
from kaosekai.models.character import Character
from kaosekai.models.user import User, UserRole
from kaosekai.services.credentials import hash_password
from kaosekai.stores.users import find_live_by_email, normalize_email


# ---------------------------------------------------------------------
# Seed data (local dev accounts + one example sheet)
# ---------------------------------------------------------------------

USERS: List[Dict[str, Any]] = [
    {
        "name": "Admin Kaosekai",
        "email": "admin@kaosekai.com",
        "password": os.getenv("SEED_ADMIN_PASSWORD", "admin123"),
        "role": UserRole.ADMIN,
    },
    {
        "name": "Test Player",
        "email": "player@kaosekai.com",
        "password": os.getenv("SEED_PLAYER_PASSWORD", "password123"),
        "role": UserRole.PLAYER,
    },
]

EXAMPLE_SHEET: Dict[str, Any] = {
    "name": "Kael, the Wanderer",
    "playerName": "Test Player",
    "characterImage": None,
    "stats": {"body": 2, "senses": 3, "mind": 1, "soul": 2},
    "hp": {"current": 20, "max": 20},
    "determination": {"current": 5, "max": 5},
    "rd": 0,
    "block": 10,
    "skills": [
        {"name": "Athletics", "value": 4},
        {"name": "Perception", "value": 5},
        {"name": "Investigation", "value": 3},
    ],
    "conditions": [],
    "attacks": [
        {"name": "Longsword", "damage": "2d6+2", "graze": "1d6+2", "critical": "3d6+4"},
    ],
    "abilities": [
        {
            "name": "Mighty Blow",
            "type": "Action",
            "cost": "1 Determination",
            "description": "Make an attack that deals an extra 2d6 damage.",
        },
    ],
    "feats": [],
    "notes": "Example character for local testing",
    "origin": "Land of Winds",
    "investigationNotes": [],
    "inventory": [
        {
            "id": "1",
            "name": "Healing Potion",
            "description": "Restores 2d6 HP",
            "icon": "potion",
            "size": 1,
            "quantity": 3,
            "type": "CONSUMABLE",
        },
        {
            "id": "2",
            "name": "Longsword",
            "description": "A well balanced blade",
            "icon": "sword",
            "size": 2,
            "quantity": 1,
            "type": "EQUIPMENT",
            "equipped": True,
        },
    ],
    "credits": 100,
}


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def upsert_user(session: Session, row: Dict[str, Any]) -> User:
    """
    Upsert by email (stable identifier).

    - Existing live users keep their password; only the role is enforced.
    """
    existing: Optional[User] = find_live_by_email(session, row["email"])
    if existing:
        existing.role = row["role"]
        existing.updated_at = utcnow()
        session.add(existing)
        return existing

    user = User(
        name=row["name"],
        email=normalize_email(row["email"]),
        password_hash=hash_password(row["password"], settings.bcrypt_rounds),
        role=row["role"],
    )
    session.add(user)
    session.flush()
    return user


def ensure_example_character(session: Session, owner: User) -> Character:
    name = str(EXAMPLE_SHEET["name"])
    existing = session.exec(
        select(Character).where(Character.user_id == owner.id, Character.name == name)
    ).first()
    if existing:
        return existing

    character = Character(user_id=owner.id, name=name, data=dict(EXAMPLE_SHEET))
    session.add(character)
    return character


# ---------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------

def main() -> None:
    engine = get_engine(settings.resolved_database_url)
    init_db(engine)

    with session_scope(engine) as session:
        users = [upsert_user(session, row) for row in USERS]
        player = next(u for u in users if u.role == UserRole.PLAYER)
        ensure_example_character(session, player)

        summary = [f"{u.email} ({u.role.value})" for u in users]

    print(f"Seeded users: {', '.join(summary)}")
    print(f"Example character: {EXAMPLE_SHEET['name']}")


if __name__ == "__main__":
    main()
