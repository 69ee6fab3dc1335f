"""
Admin user management.
"""
from conftest import API, PASSWORD


def test_non_admin_is_forbidden(client, alice):
    headers, _ = alice
    assert client.get(f"{API}/users", headers=headers).status_code == 403
    assert client.post(
        f"{API}/users",
        json={"name": "X", "email": "x@example.com", "password": PASSWORD},
        headers=headers,
    ).status_code == 403


def test_admin_lists_and_creates(client, admin, login):
    r = client.post(
        f"{API}/users",
        json={"name": "Game Master", "email": "gm@example.com", "password": PASSWORD, "role": "GM"},
        headers=admin,
    )
    assert r.status_code == 201, r.text
    assert r.json()["role"] == "GM"

    emails = {u["email"] for u in client.get(f"{API}/users", headers=admin).json()}
    assert emails == {"admin@example.com", "gm@example.com"}

    # the new account can log in right away
    login("gm@example.com")


def test_create_defaults_to_player_and_checks_email(client, admin, alice):
    r = client.post(f"{API}/users", json={"name": "P", "email": "p@example.com", "password": PASSWORD}, headers=admin)
    assert r.json()["role"] == "PLAYER"

    r = client.post(
        f"{API}/users",
        json={"name": "Dup", "email": "alice@example.com", "password": PASSWORD},
        headers=admin,
    )
    assert r.status_code == 422
    assert r.json()["errors"] == {"email": ["The email has already been taken."]}


def test_partial_update(client, admin, alice):
    _, user = alice
    r = client.patch(f"{API}/users/{user['id']}", json={"name": "Alicia"}, headers=admin)
    assert r.status_code == 200
    assert r.json()["name"] == "Alicia"
    assert r.json()["email"] == "alice@example.com"

    r = client.put(f"{API}/users/{user['id']}", json={"avatar": "/uploads/images/me.png"}, headers=admin)
    assert r.json()["avatar"] == "/uploads/images/me.png"
    assert r.json()["name"] == "Alicia"


def test_update_email_conflict(client, admin, alice, bob):
    _, user = alice
    r = client.patch(f"{API}/users/{user['id']}", json={"email": "bob@example.com"}, headers=admin)
    assert r.status_code == 422
    assert "email" in r.json()["errors"]


def test_password_change_revokes_sessions(client, admin, alice, login):
    headers, user = alice
    r = client.patch(f"{API}/users/{user['id']}", json={"password": "brandnew"}, headers=admin)
    assert r.status_code == 200

    assert client.get(f"{API}/user", headers=headers).status_code == 401
    login("alice@example.com", "brandnew")


def test_soft_delete(client, admin, alice, bob, register):
    alice_headers, user = alice
    bob_headers, _ = bob

    r = client.delete(f"{API}/users/{user['id']}", headers=admin)
    assert r.status_code == 200
    assert r.json() == {"message": "User deleted."}

    # sessions are gone and the account can't log back in
    assert client.get(f"{API}/user", headers=alice_headers).status_code == 401
    r = client.post(f"{API}/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert r.status_code == 401

    # hidden from listings and search
    assert "alice@example.com" not in {u["email"] for u in client.get(f"{API}/users", headers=admin).json()}
    assert client.get(f"{API}/users/search", params={"query": "alice"}, headers=bob_headers).json() == []

    # a second delete or update is a 404
    assert client.delete(f"{API}/users/{user['id']}", headers=admin).status_code == 404
    assert client.patch(f"{API}/users/{user['id']}", json={"name": "x"}, headers=admin).status_code == 404

    # the address is free again
    register("alice@example.com", name="Alice Again")


def test_deleted_user_cannot_be_invited(client, admin, alice, bob):
    alice_headers, _ = alice
    _, bob_user = bob
    party = client.post(f"{API}/parties", json={"name": "P", "description": "d"}, headers=alice_headers).json()
    client.delete(f"{API}/users/{bob_user['id']}", headers=admin)

    r = client.post(f"{API}/parties/{party['id']}/invitations", json={"user_id": bob_user["id"]}, headers=alice_headers)
    assert r.status_code == 404


def test_blank_names_are_rejected(client, admin, alice):
    _, user = alice
    r = client.post(f"{API}/users", json={"name": "  ", "email": "x@example.com", "password": PASSWORD}, headers=admin)
    assert r.status_code == 422
    assert "name" in r.json()["errors"]

    r = client.patch(f"{API}/users/{user['id']}", json={"name": "   "}, headers=admin)
    assert r.status_code == 422
    names = {u["id"]: u["name"] for u in client.get(f"{API}/users", headers=admin).json()}
    assert names[user["id"]] == "Alice"


def test_avatar_can_be_cleared(client, admin, alice):
    _, user = alice
    url = f"{API}/users/{user['id']}"
    client.patch(url, json={"avatar": "https://cdn.example.com/a.png"}, headers=admin)

    # omitted means unchanged
    r = client.patch(url, json={"name": "Alicia"}, headers=admin)
    assert r.json()["avatar"] == "https://cdn.example.com/a.png"

    r = client.patch(url, json={"avatar": None}, headers=admin)
    assert r.status_code == 200
    assert r.json()["avatar"] is None
    assert r.json()["name"] == "Alicia"
