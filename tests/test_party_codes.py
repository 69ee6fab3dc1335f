"""
Join-code generation and the collision loop.
"""
import re

from kaosekai.stores import parties as store

CODE_RE = re.compile(r"^[A-Z0-9]{6}$")


def _scripted(*codes):
    it = iter(codes)
    return lambda: next(it)


def test_generated_codes_match_format():
    for _ in range(200):
        assert CODE_RE.match(store.generate_code())


def test_normalize_and_validate():
    assert store.normalize_code("  ab12cd ") == "AB12CD"
    assert store.is_valid_code("AB12CD")
    assert not store.is_valid_code("AB12C")
    assert not store.is_valid_code("AB12CDE")
    assert not store.is_valid_code("ab12cd")
    assert not store.is_valid_code("AB-2CD")


def test_collision_draws_again(db, make_user):
    owner = make_user("owner@example.com")
    first = store.create_party(db, owner_id=owner.id, name="One", description="", generate=_scripted("AAAAAA"))
    second = store.create_party(
        db,
        owner_id=owner.id,
        name="Two",
        description="",
        generate=_scripted("AAAAAA", "AAAAAA", "BBBBBB"),
    )
    assert first.code == "AAAAAA"
    assert second.code == "BBBBBB"


def test_lookup_by_code_is_case_insensitive(db, make_user):
    owner = make_user("owner@example.com")
    party = store.create_party(db, owner_id=owner.id, name="One", description="", generate=_scripted("QWE123"))
    assert store.get_by_code(db, "qwe123").id == party.id
    assert store.get_by_code(db, "ZZZ999") is None


def test_list_for_user_includes_owned_and_joined_once(db, make_user):
    owner = make_user("owner@example.com")
    player = make_user("player@example.com")
    owned = store.create_party(db, owner_id=owner.id, name="Owned", description="")
    joined = store.create_party(db, owner_id=player.id, name="Joined", description="")
    store.add_member(db, joined, owner.id, field="code", message="dup")

    ids = [p.id for p in store.list_for_user(db, owner.id)]
    assert sorted(ids) == sorted([owned.id, joined.id])
    assert store.members_counts(db, [owned.id, joined.id]) == {owned.id: 0, joined.id: 1}


def test_insert_race_on_code_draws_again(db, make_user, monkeypatch):
    owner = make_user("owner@example.com")
    store.create_party(db, owner_id=owner.id, name="One", description="", generate=_scripted("AAAAAA"))

    # the pre-check misses a code claimed by a concurrent creation
    real_code_taken = store.code_taken
    calls = []

    def stale_then_real(session, code):
        calls.append(code)
        if len(calls) == 1:
            return False
        return real_code_taken(session, code)

    monkeypatch.setattr(store, "code_taken", stale_then_real)

    party = store.create_party(
        db,
        owner_id=owner.id,
        name="Two",
        description="",
        generate=_scripted("AAAAAA", "BBBBBB"),
    )
    assert party.code == "BBBBBB"
    # stale pre-check, post-conflict recheck, fresh pre-check
    assert calls == ["AAAAAA", "AAAAAA", "BBBBBB"]
    assert sorted(p.code for p in store.list_for_user(db, owner.id)) == ["AAAAAA", "BBBBBB"]
