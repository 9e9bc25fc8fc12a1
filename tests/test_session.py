import json
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import pytest
import respx
from httpx import Response

from social_login import (
    InvalidCallbackError,
    NoAuthURLError,
    OAuth2Session,
    ProfileError,
    SocialLoginError,
    TokenError,
)
from social_login.clients.oauth import Token
from social_login.security import code_challenge_s256


def test_get_auth_url():
    session = OAuth2Session()
    with pytest.raises(NoAuthURLError) as ei:
        session.get_auth_url()
    assert str(ei.value) == "an AuthURL has not been set"

    session.auth_url = "/foo"
    assert session.get_auth_url() == "/foo"


def test_marshal_and_str():
    session = OAuth2Session(auth_url="http://example.com/auth", access_token="1234567890")
    data = json.loads(session.marshal())
    assert data["auth_url"] == "http://example.com/auth"
    assert data["access_token"] == "1234567890"
    assert data["expires_at"] is None
    assert str(session) == session.marshal()


def test_unmarshal_round_trip_ignores_unknown_keys(faux):
    session = faux.unmarshal_session(
        '{"auth_url":"http://example.com/auth","access_token":"1234567890","id_token":"abc","other":1}'
    )
    assert isinstance(session, OAuth2Session)
    assert session.auth_url == "http://example.com/auth"
    assert session.access_token == "1234567890"
    assert session.id_token == "abc"


def test_unmarshal_invalid_json(faux):
    with pytest.raises(SocialLoginError) as ei:
        faux.unmarshal_session("not json")
    assert "session" in str(ei.value).lower()
from social_login.security import code_challenge_s256


@pytest.mark.asyncio
async def test_begin_auth(faux):
    session = await faux.begin_auth("test_state")
    url = session.get_auth_url()
    assert url.startswith("http://example.com/auth?")
    assert "client_id=key" in url
    assert "state=test_state" in url
    assert "redirect_uri=http%3A%2F%2Flocalhost%2Fcallback" in url


@pytest.mark.asyncio
@respx.mock
async def test_authorize_stores_token(faux):
    respx.post("http://example.com/token").mock(
        return_value=Response(200, json={
            "access_token": "test_token",
            "expires_in": 3600,
            "refresh_token": "refresh_token",
        })
    )
    session = OAuth2Session()
    token = await session.authorize(faux, {"code": "authorization_code"})

    assert token == "test_token"
    assert session.access_token == "test_token"
    assert session.refresh_token == "refresh_token"
    expected = datetime.now(timezone.utc) + timedelta(seconds=3600)
    assert abs((session.expires_at - expected).total_seconds()) < 5


@pytest.mark.asyncio
async def test_authorize_without_code(faux):
    with pytest.raises(InvalidCallbackError):
        await OAuth2Session().authorize(faux, {})


@pytest.mark.asyncio
@respx.mock
async def test_authorize_error_code_in_ok_response(faux):
    respx.post("http://example.com/token").mock(
        return_value=Response(200, json={"code": 1, "msg": "error message"})
    )
    with pytest.raises(TokenError):
        await OAuth2Session().authorize(faux, {"code": "authorization_code"})


@pytest.mark.asyncio
@respx.mock
async def test_authorize_non_json_response(faux):
    respx.post("http://example.com/token").mock(return_value=Response(200, text="not a json"))
    with pytest.raises(TokenError):
        await OAuth2Session().authorize(faux, {"code": "authorization_code"})


def test_apply_expired_token_rejected():
    expired = Token(access_token="at", expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
    with pytest.raises(TokenError) as ei:
        OAuth2Session().apply_token(expired)
    assert "invalid token" in str(ei.value)


@pytest.mark.asyncio
@respx.mock
async def test_fetch_user(faux):
    respx.get("http://example.com/profile").mock(
        return_value=Response(200, json={"id": 42, "name": "Homer", "email": "homer@example.com"})
    )
    session = OAuth2Session(access_token="at", refresh_token="rt")
    user = await faux.fetch_user(session)

    assert user.provider == "faux"
    assert user.user_id == "42"
    assert user.name == "Homer"
    assert user.email == "homer@example.com"
    assert user.access_token == "at"
    assert user.refresh_token == "rt"
    assert user.raw_data["name"] == "Homer"


@pytest.mark.asyncio
async def test_fetch_user_without_access_token(faux):
    with pytest.raises(ProfileError) as ei:
        await faux.fetch_user(OAuth2Session())
    assert str(ei.value) == "faux cannot get user information without accessToken"


@pytest.mark.asyncio
@respx.mock
async def test_fetch_user_non_200(faux):
    respx.get("http://example.com/profile").mock(return_value=Response(401, json={"error": "nope"}))
    with pytest.raises(ProfileError) as ei:
        await faux.fetch_user(OAuth2Session(access_token="at"))
    assert str(ei.value) == "faux responded with a 401 trying to fetch user information"
    assert ei.value.status_code == 401


@pytest.mark.asyncio
async def test_begin_auth_without_pkce_sends_no_challenge(faux):
    session = await faux.begin_auth("test_state")
    assert "code_challenge" not in session.get_auth_url()
    assert session.code_verifier == ""


@pytest.mark.asyncio
@respx.mock
async def test_pkce_challenge_and_verifier(faux):
    route = respx.post("http://example.com/token").mock(
        return_value=Response(200, json={"access_token": "test_token", "expires_in": 3600})
    )
    faux.enable_pkce()
    session = await faux.begin_auth("test_state")
    query = parse_qs(urlsplit(session.get_auth_url()).query)

    assert query["code_challenge_method"] == ["S256"]
    assert query["code_challenge"] == [code_challenge_s256(session.code_verifier)]

    session = faux.unmarshal_session(session.marshal())
    await session.authorize(faux, {"code": "authorization_code"})
    body = parse_qs(route.calls.last.request.content.decode())
    assert body["code_verifier"] == [session.code_verifier]
