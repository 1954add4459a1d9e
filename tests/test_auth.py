from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from dsa_practice.auth.tokens import ALGORITHM, TokenService, hash_password, verify_password
from dsa_practice.core.errors import Unauthenticated


def test_token_round_trip():
    tokens = TokenService("secret")
    identity = tokens.validate(tokens.issue_token("0123456789abcdef01234567", "alice"))
    assert identity.user_id == "0123456789abcdef01234567"
    assert identity.username == "alice"


def test_token_signed_with_other_secret_is_rejected():
    token = TokenService("other").issue_token("0123456789abcdef01234567", "alice")
    with pytest.raises(Unauthenticated):
        TokenService("secret").validate(token)


def test_expired_token_is_rejected():
    expired = jwt.encode(
        {"user_id": "0123456789abcdef01234567", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        "secret",
        algorithm=ALGORITHM,
    )
    with pytest.raises(Unauthenticated):
        TokenService("secret").validate(expired)


def test_token_without_user_is_rejected():
    token = jwt.encode({"username": "alice"}, "secret", algorithm=ALGORITHM)
    with pytest.raises(Unauthenticated):
        TokenService("secret").validate(token)


def test_password_hashing():
    hashed = hash_password("hunter22")
    assert hashed != "hunter22"
    assert verify_password("hunter22", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("hunter22", "")


def test_register_login_profile(client, fake_db):
    response = client.post("/api/auth/register", json={"username": "alice", "password": "hunter22"})
    assert response.status_code == 201
    body = response.json()
    assert body["user"]["username"] == "alice"
    assert body["user"]["trialUsage"] == 0
    assert body["user"]["trialLimit"] == 3
    assert body["user"]["hasApiKey"] is False
    assert "passwordHash" not in body["user"]
    assert fake_db.users.docs[0]["password_hash"] != "hunter22"

    login = client.post("/api/auth/login", json={"username": "alice", "password": "hunter22"})
    assert login.status_code == 200
    token = login.json()["token"]

    profile = client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})
    assert profile.status_code == 200
    assert profile.json()["username"] == "alice"
    assert profile.json()["solvedCount"] == 0


def test_register_validation_and_duplicates(client):
    assert client.post("/api/auth/register", json={"username": "al", "password": "hunter22"}).status_code == 400
    assert client.post("/api/auth/register", json={"username": "alice", "password": "123"}).status_code == 400

    assert client.post("/api/auth/register", json={"username": "alice", "password": "hunter22"}).status_code == 201
    duplicate = client.post("/api/auth/register", json={"username": "alice", "password": "hunter22"})
    assert duplicate.status_code == 409
    assert duplicate.json() == {"error": "Username already exists"}


def test_login_with_wrong_password(client):
    client.post("/api/auth/register", json={"username": "alice", "password": "hunter22"})

    response = client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}

    response = client.post("/api/auth/login", json={"username": "nobody", "password": "hunter22"})
    assert response.status_code == 401


def test_update_api_key(client, fake_db, auth_headers, make_user):
    user = make_user()
    headers = auth_headers(user)

    response = client.put("/api/apikey", json={"apiKey": "sk-or-personal"}, headers=headers)
    assert response.status_code == 200
    assert fake_db.users.docs[0]["api_key"] == "sk-or-personal"
    assert client.get("/api/profile", headers=headers).json()["hasApiKey"] is True

    client.put("/api/apikey", json={"apiKey": ""}, headers=headers)
    assert client.get("/api/profile", headers=headers).json()["hasApiKey"] is False


def test_malformed_authorization_header(client):
    response = client.get("/api/profile", headers={"Authorization": "Token abc"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid authorization format"}
