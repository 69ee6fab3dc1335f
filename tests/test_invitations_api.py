"""
User search and owner-driven invitations.
"""
import pytest

from conftest import API


@pytest.fixture
def party(client, alice):
    headers, _ = alice
    return client.post(f"{API}/parties", json={"name": "Invites", "description": "d"}, headers=headers).json()


def _invite(client, party, headers, user_id):
    return client.post(f"{API}/parties/{party['id']}/invitations", json={"user_id": user_id}, headers=headers)


def test_search_by_name_or_email(client, alice, bob, register):
    headers, _ = alice
    register("carol@gamesguild.org", name="Carol Bobbins")

    r = client.get(f"{API}/users/search", params={"query": "bob"}, headers=headers)
    assert r.status_code == 200
    names = sorted(u["name"] for u in r.json())
    assert names == ["Bob", "Carol Bobbins"]
    assert set(r.json()[0]) == {"id", "name", "email", "avatar"}

    r = client.get(f"{API}/users/search", params={"query": "GAMESGUILD.ORG"}, headers=headers)
    assert [u["name"] for u in r.json()] == ["Carol Bobbins"]


def test_search_escapes_wildcards(client, alice, bob):
    headers, _ = alice
    r = client.get(f"{API}/users/search", params={"query": "%"}, headers=headers)
    assert r.json() == []


def test_search_caps_results(client, alice, register):
    headers, _ = alice
    for i in range(25):
        register(f"player{i}@example.com", name=f"Player {i:02d}")
    r = client.get(f"{API}/users/search", params={"query": "player"}, headers=headers)
    assert len(r.json()) == 20


def test_search_requires_auth(client):
    assert client.get(f"{API}/users/search", params={"query": "a"}).status_code == 401


def test_owner_invites(client, party, alice, bob):
    alice_headers, _ = alice
    bob_headers, bob_user = bob

    r = _invite(client, party, alice_headers, bob_user["id"])
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["message"] == "User invited successfully"
    assert body["member"]["party_id"] == party["id"]
    assert body["member"]["user_id"] == bob_user["id"]

    # bob now sees the party and its feed
    assert client.get(f"{API}/parties/{party['id']}", headers=bob_headers).status_code == 200
    assert client.get(f"{API}/parties/{party['id']}/posts", headers=bob_headers).status_code == 200


def test_duplicate_invite_conflicts(client, party, alice, bob):
    alice_headers, alice_user = alice
    _, bob_user = bob
    _invite(client, party, alice_headers, bob_user["id"])

    r = _invite(client, party, alice_headers, bob_user["id"])
    assert r.status_code == 422
    assert "user_id" in r.json()["errors"]

    r = _invite(client, party, alice_headers, alice_user["id"])
    assert r.status_code == 422
    assert "user_id" in r.json()["errors"]


def test_only_owner_invites(client, party, alice, bob, register):
    alice_headers, _ = alice
    bob_headers, bob_user = bob
    _, carol_user = register("carol@example.com", name="Carol")
    _invite(client, party, alice_headers, bob_user["id"])

    r = _invite(client, party, bob_headers, carol_user["id"])
    assert r.status_code == 403
    assert r.json() == {"message": "Only the party owner can invite users."}


def test_invite_unknown_user(client, party, alice):
    headers, _ = alice
    r = _invite(client, party, headers, 4242)
    assert r.status_code == 404
    assert r.json() == {"message": "User not found."}
