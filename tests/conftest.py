"""
Shared fixtures: one app per test over a fresh in-memory SQLite database and
a temporary upload directory.

Run with:  python -m pytest tests/ -v
"""
from typing import Callable, Dict, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from kaosekai.config import Settings
from kaosekai.database import get_engine, init_db
from kaosekai.main import create_app
from kaosekai.models.user import User, UserRole
from kaosekai.services.credentials import hash_password
from kaosekai.stores import users as user_store

API = "/api"
PASSWORD = "secret1"

Headers = Dict[str, str]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        database_url="sqlite://",
        upload_root=str(tmp_path / "uploads"),
        image_max_bytes=2048,
        document_max_bytes=8192,
    )


@pytest.fixture
def engine(settings):
    engine = get_engine(settings.resolved_database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(engine, settings) -> Callable[..., User]:
    """
    Insert a user directly (e.g. an ADMIN, which registration never creates).
    """
    def _make(email: str, *, name: str = "User", password: str = PASSWORD, role: UserRole = UserRole.PLAYER) -> User:
        with Session(engine) as session:
            return user_store.create_user(
                session,
                name=name,
                email=email,
                password_hash=hash_password(password, settings.bcrypt_rounds),
                role=role,
            )

    return _make


@pytest.fixture
def login(client) -> Callable[..., Headers]:
    def _login(email: str, password: str = PASSWORD) -> Headers:
        r = client.post(f"{API}/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['access_token']}"}

    return _login


@pytest.fixture
def register(client) -> Callable[..., Tuple[Headers, dict]]:
    def _register(email: str, *, name: str = "User", password: str = PASSWORD) -> Tuple[Headers, dict]:
        r = client.post(f"{API}/register", json={"name": name, "email": email, "password": password})
        assert r.status_code == 201, r.text
        body = r.json()
        return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]

    return _register


@pytest.fixture
def admin(make_user, login) -> Headers:
    make_user("admin@example.com", name="Admin", role=UserRole.ADMIN)
    return login("admin@example.com")


@pytest.fixture
def alice(register) -> Tuple[Headers, dict]:
    return register("alice@example.com", name="Alice")


@pytest.fixture
def bob(register) -> Tuple[Headers, dict]:
    return register("bob@example.com", name="Bob")
