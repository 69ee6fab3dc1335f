"""
User store: soft-delete state, live lookups, partial updates.
"""
from datetime import timezone

from kaosekai.models.user import Active, Deleted
from kaosekai.stores import users as store


def test_new_user_is_active(make_user):
    user = make_user("alice@example.com")
    assert user.state == Active()


def test_soft_delete_moves_to_deleted_state(db, make_user):
    user = store.get_user(db, make_user("alice@example.com").id)
    store.soft_delete_user(db, user)

    state = user.state
    assert isinstance(state, Deleted)
    assert state.at.tzinfo == timezone.utc

    # the row is retained but no longer live
    assert store.get_user(db, user.id) is not None
    assert store.get_live_user(db, user.id) is None
    assert store.find_live_by_email(db, "alice@example.com") is None


def test_soft_delete_keeps_first_timestamp(db, make_user):
    user = store.get_user(db, make_user("alice@example.com").id)
    store.soft_delete_user(db, user)
    first = user.state.at
    store.soft_delete_user(db, user)
    assert user.state == Deleted(at=first)


def test_get_live_user_unknown_id(db):
    assert store.get_live_user(db, 12345) is None


def test_update_applies_only_given_keys(db, make_user):
    user = store.get_user(db, make_user("alice@example.com", name="Alice").id)
    store.update_user(db, user, {"avatar": "/uploads/images/a.png"})
    store.update_user(db, user, {"name": "Alicia"})
    assert (user.name, user.avatar) == ("Alicia", "/uploads/images/a.png")

    store.update_user(db, user, {"avatar": None})
    assert user.avatar is None
    assert user.name == "Alicia"
