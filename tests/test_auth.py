import datetime

import pytest

import AuthAndUser as auth
from database import get_db
from main import app, require_database_config, require_signing_key
from settings import Settings


def test_login_returns_token_and_sets_cookie(client, make_user):
    make_user("carol", password="s3cret")

    response = client.post("/api/auth/token", data={"username": "carol@example.com", "password": "s3cret"})

    assert response.status_code == 200
    token = response.json()["access_token"]
    assert response.json()["token_type"] == "bearer"
    assert response.cookies.get("token") == token


def test_login_with_wrong_password_is_401(client, make_user):
    make_user("carol", password="s3cret")
    response = client.post("/api/auth/token", data={"username": "carol@example.com", "password": "nope"})
    assert response.status_code == 401


def test_cookie_token_is_accepted(client, make_user):
    make_user("carol", password="s3cret")
    client.post("/api/auth/token", data={"username": "carol@example.com", "password": "s3cret"})

    response = client.get("/api/users/me")

    assert response.status_code == 200
    assert response.json()["id"] == "carol"


def test_expired_token_is_rejected(client, alice):
    token = auth.create_access_token({"sub": "alice"}, expires_delta=datetime.timedelta(minutes=-1))
    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_token_for_unknown_user_is_rejected(client, headers_for):
    assert client.get("/api/users/me", headers=headers_for("ghost")).status_code == 401


def test_disabled_user_is_rejected(client, make_user, headers_for):
    make_user("dave", disabled=True)
    assert client.get("/api/users/me", headers=headers_for("dave")).status_code == 400


def test_password_hash_round_trip():
    hashed = auth.get_password_hash("hunter2")
    assert auth.verify_password("hunter2", hashed)
    assert not auth.verify_password("hunter3", hashed)


def test_missing_database_uri_stops_the_process():
    with pytest.raises(SystemExit) as exc:
        require_database_config(Settings(MONGO_URI=None, _env_file=None))
    assert exc.value.code == 1


def test_database_uri_present_passes():
    require_database_config(Settings(MONGO_URI="mongodb://localhost:27017", _env_file=None))


def test_missing_signing_key_stops_the_process():
    with pytest.raises(SystemExit) as exc:
        require_signing_key(Settings(JWT_SECRET=None, _env_file=None))
    assert exc.value.code == 1


def test_signing_key_present_passes():
    require_signing_key(Settings(JWT_SECRET="k", _env_file=None))


def test_missing_database_handle_is_503(client, monkeypatch):
    monkeypatch.delitem(app.dependency_overrides, get_db)
    monkeypatch.setattr(app.state, "db", None, raising=False)
    assert client.get("/api/posts/featured").status_code == 503
