"""Tests for Bearer token extraction and selection."""

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.dependencies import get_auth_token, select_token

# ---------------------------------------------------------------------------
# Minimal test app that uses get_auth_token
# ---------------------------------------------------------------------------

test_app = FastAPI()


@test_app.get("/protected")
async def protected_route(token: str = Depends(get_auth_token)):
    return {"token": token}


client = TestClient(test_app)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


def test_single_token_is_returned():
    resp = client.get("/protected", headers={"Authorization": "Bearer abc123"})
    assert resp.status_code == 200
    assert resp.json()["token"] == "abc123"


def test_missing_authorization_header():
    resp = client.get("/protected")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Authentication token is required"


def test_empty_bearer_token():
    resp = client.get("/protected", headers={"Authorization": "Bearer "})
    assert resp.status_code == 401


def test_first_of_comma_separated_tokens_wins():
    resp = client.get("/protected", headers={"Authorization": "Bearer first, second,third"})
    assert resp.status_code == 200
    assert resp.json()["token"] == "first"


def test_delimited_token_keeps_part_after_delimiter():
    resp = client.get("/protected", headers={"Authorization": "Bearer user_01%3A%3AeyJhbGciOi"})
    assert resp.status_code == 200
    assert resp.json()["token"] == "eyJhbGciOi"


def test_select_token_is_stable_across_calls():
    header = "Bearer a,b,c"
    assert [select_token(header) for _ in range(3)] == ["a", "a", "a"]


def test_select_token_skips_blank_entries():
    assert select_token("Bearer , ,real") == "real"


def test_select_token_without_bearer_prefix():
    assert select_token("raw-token") == "raw-token"


def test_bearer_scheme_is_case_insensitive():
    resp = client.get("/protected", headers={"Authorization": "bearer tok"})
    assert resp.status_code == 200
    assert resp.json()["token"] == "tok"
