"""
App wiring: meta routes, error envelopes, startup checks.
"""
import pytest
from fastapi.testclient import TestClient

from conftest import API

from kaosekai.config import Settings
from kaosekai.errors import InternalError
from kaosekai.main import create_app


def test_meta_routes(client):
    root = client.get("/").json()
    assert root["version"] == "1.0.0"
    assert root["endpoints"]["auth"]["login"] == f"POST {API}/login"

    assert client.get("/health").json()["ok"] is True
    assert client.get(f"{API}/").json() == {"status": "ok", "message": "API is running"}


def test_unknown_route(client):
    r = client.get(f"{API}/nope")
    assert r.status_code == 404
    assert r.json() == {"message": "Route not found"}


def test_malformed_json_body(client):
    r = client.post(f"{API}/login", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 422
    assert r.json()["message"] == "The given data was invalid."


def _boom_client(settings, engine):
    app = create_app(settings, engine)

    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")

    return TestClient(app, raise_server_exceptions=False)


def test_unhandled_errors_hide_detail(settings, engine):
    with _boom_client(settings, engine) as c:
        r = c.get("/boom")
    assert r.status_code == 500
    assert r.json() == {"message": "Internal server error"}


def test_unhandled_errors_show_detail_in_development(settings, engine):
    dev = settings.model_copy(update={"env": "development"})
    with _boom_client(dev, engine) as c:
        r = c.get("/boom")
    assert r.status_code == 500
    assert r.json() == {"message": "Internal server error", "error": "kaboom"}


def test_production_requires_jwt_secret(settings, engine):
    prod = settings.model_copy(update={"env": "production", "jwt_secret": ""})
    with pytest.raises(RuntimeError):
        create_app(prod, engine)


def test_missing_secret_outside_production_still_works(settings, engine):
    local = settings.model_copy(update={"jwt_secret": ""})
    app = create_app(local, engine)
    assert app.state.settings.jwt_secret


def test_settings_normalization():
    s = Settings(
        CORS_ORIGIN="https://a.test, https://b.test",
        API_PREFIX="v1/",
        BCRYPT_ROUNDS=50,
        DATABASE_URL="",
        DB_PATH="./data/x.sqlite",
    )
    assert s.cors_allow_origins == ["https://a.test", "https://b.test"]
    assert s.api_prefix == "/v1"
    assert s.bcrypt_rounds == 31
    assert s.resolved_database_url == "sqlite:///./data/x.sqlite"


def test_internal_error_uses_its_own_message(settings, engine):
    app = create_app(settings, engine)

    @app.get("/explicit")
    def explicit():
        raise InternalError("Storage unavailable")

    with TestClient(app) as c:
        r = c.get("/explicit")
    assert r.status_code == 500
    assert r.json() == {"message": "Storage unavailable"}
