import base64
from urllib.parse import parse_qs

import pytest
import respx
from httpx import Response

from social_login.exceptions import ConfigurationError, ProfileError, RefreshNotAvailableError
from social_login.providers import azureadv2, discord, facebook, github, gitlab, google, linkedin, reddit, slack
from social_login.security import compute_appsecret_proof
from social_login.session import OAuth2Session

CALLBACK = "http://localhost/foo"


def authorized(access_token="token"):
    return OAuth2Session(access_token=access_token)


# github

@pytest.mark.asyncio
@respx.mock
async def test_github_fetch_user():
    provider = github.Provider("key", "secret", CALLBACK)
    route = respx.get(github.PROFILE_URL).mock(
        return_value=Response(200, json={
            "id": 1234,
            "login": "octocat",
            "name": "The Octocat",
            "email": "octocat@github.com",
            "bio": "There once was...",
            "avatar_url": "https://github.com/images/error/octocat_happy.gif",
            "location": "San Francisco",
        })
    )
    user = await provider.fetch_user(authorized())

    assert route.calls.last.request.headers["authorization"] == "Bearer token"
    assert user.user_id == "1234"
    assert user.nick_name == "octocat"
    assert user.name == "The Octocat"
    assert user.email == "octocat@github.com"
    assert user.location == "San Francisco"


@pytest.mark.asyncio
@respx.mock
async def test_github_private_email_uses_primary_verified():
    provider = github.Provider("key", "secret", CALLBACK, "user:email")
    respx.get(github.PROFILE_URL).mock(return_value=Response(200, json={"id": 1, "login": "octocat", "email": None}))
    respx.get(github.EMAIL_URL).mock(
        return_value=Response(200, json=[
            {"email": "old@example.com", "primary": False, "verified": True},
            {"email": "primary@example.com", "primary": True, "verified": True},
        ])
    )
    user = await provider.fetch_user(authorized())
    assert user.email == "primary@example.com"


@pytest.mark.asyncio
@respx.mock
async def test_github_private_email_without_scope_is_left_empty():
    provider = github.Provider("key", "secret", CALLBACK, "read:org")
    respx.get(github.PROFILE_URL).mock(return_value=Response(200, json={"id": 1, "email": None}))
    user = await provider.fetch_user(authorized())
    assert user.email == ""


@pytest.mark.asyncio
@respx.mock
async def test_github_no_verified_primary_email():
    provider = github.Provider("key", "secret", CALLBACK, "user")
    respx.get(github.PROFILE_URL).mock(return_value=Response(200, json={"id": 1, "email": ""}))
    respx.get(github.EMAIL_URL).mock(
        return_value=Response(200, json=[{"email": "x@example.com", "primary": True, "verified": False}])
    )
    with pytest.raises(ProfileError):
        await provider.fetch_user(authorized())


@pytest.mark.asyncio
async def test_github_enterprise_urls_and_no_refresh():
    provider = github.Provider(
        "key",
        "secret",
        CALLBACK,
        auth_url="https://ghe.example.com/login/oauth/authorize",
        token_url="https://ghe.example.com/login/oauth/access_token",
        profile_url="https://ghe.example.com/api/v3/user",
    )
    session = await provider.begin_auth("state")
    assert session.get_auth_url().startswith("https://ghe.example.com/login/oauth/authorize?")
    assert provider.config.token_url == "https://ghe.example.com/login/oauth/access_token"
    assert provider.profile_url == "https://ghe.example.com/api/v3/user"
    # the class default is untouched
    assert github.Provider.profile_url == github.PROFILE_URL

    assert provider.refresh_token_available() is False
    with pytest.raises(RefreshNotAvailableError):
        await provider.refresh_token("rt")


# gitlab

@pytest.mark.asyncio
@respx.mock
async def test_gitlab_self_hosted():
    provider = gitlab.Provider(
        "key",
        "secret",
        CALLBACK,
        auth_url="https://git.example.com/oauth/authorize",
        token_url="https://git.example.com/oauth/token",
        profile_url="https://git.example.com/api/v4/user",
    )
    respx.get("https://git.example.com/api/v4/user").mock(
        return_value=Response(200, json={"id": 7, "username": "jdoe", "name": "Jane Doe", "email": "j@example.com"})
    )
    user = await provider.fetch_user(authorized())
    assert user.user_id == "7"
    assert user.nick_name == "jdoe"
    assert provider.refresh_token_available() is True


@pytest.mark.asyncio
@respx.mock
async def test_gitlab_refresh_token():
    provider = gitlab.Provider("key", "secret", CALLBACK)
    respx.post(gitlab.TOKEN_URL).mock(return_value=Response(200, json={"access_token": "fresh", "expires_in": 7200}))
    token = await provider.refresh_token("old")
    assert token.access_token == "fresh"
    assert token.refresh_token == "old"


# google

@pytest.mark.asyncio
async def test_google_begin_auth():
    provider = google.Provider("key", "secret", CALLBACK)
    provider.set_prompt("consent", "select_account")
    provider.set_hosted_domain("example.com")
    provider.set_login_hint("jane@example.com")
    url = (await provider.begin_auth("test_state")).get_auth_url()

    assert url.startswith("https://accounts.google.com/o/oauth2/auth?")
    assert "access_type=offline" in url
    assert "scope=openid+email+profile" in url
    assert "prompt=consent+select_account" in url
    assert "hd=example.com" in url
    assert "login_hint=jane%40example.com" in url
    assert "state=test_state" in url


@pytest.mark.asyncio
@respx.mock
async def test_google_fetch_user_with_legacy_id():
    provider = google.Provider("key", "secret", CALLBACK)
    respx.get(google.PROFILE_URL).mock(
        return_value=Response(200, json={
            "id": "legacy-1",
            "name": "Jane Doe",
            "given_name": "Jane",
            "family_name": "Doe",
            "email": "jane@example.com",
            "picture": "https://lh3.googleusercontent.com/a/photo.jpg",
        })
    )
    user = await provider.fetch_user(authorized())
    assert user.user_id == "legacy-1"
    assert user.first_name == "Jane"
    assert user.last_name == "Doe"
    assert user.avatar_url.endswith("photo.jpg")


# azure ad v2

@pytest.mark.asyncio
@respx.mock
async def test_azureadv2_tenant_and_graph_profile():
    provider = azureadv2.Provider("key", "secret", CALLBACK, tenant="contoso.onmicrosoft.com")
    url = (await provider.begin_auth("state")).get_auth_url()
    assert url.startswith("https://login.microsoftonline.com/contoso.onmicrosoft.com/oauth2/v2.0/authorize?")
    assert provider.config.token_url == "https://login.microsoftonline.com/contoso.onmicrosoft.com/oauth2/v2.0/token"

    respx.get(azureadv2.GRAPH_ME_URL).mock(
        return_value=Response(200, json={
            "id": "aad-1",
            "displayName": "Adele Vance",
            "givenName": "Adele",
            "surname": "Vance",
            "mail": None,
            "userPrincipalName": "AdeleV@contoso.onmicrosoft.com",
            "jobTitle": "Retail Manager",
            "officeLocation": "18/2111",
        })
    )
    user = await provider.fetch_user(authorized())
    assert user.user_id == "aad-1"
    assert user.name == "Adele Vance"
    assert user.email == "AdeleV@contoso.onmicrosoft.com"
    assert user.description == "Retail Manager"
    assert user.location == "18/2111"


def test_azureadv2_defaults_to_common_tenant():
    provider = azureadv2.Provider("key", "secret", CALLBACK)
    assert provider.config.auth_url == "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"


# discord

@pytest.mark.asyncio
async def test_discord_begin_auth():
    provider = discord.Provider("key", "secret", CALLBACK, discord.SCOPE_IDENTIFY, discord.SCOPE_EMAIL)
    provider.set_permissions("8")
    url = (await provider.begin_auth("state")).get_auth_url()
    assert "prompt=none" in url
    assert "access_type=online" in url
    assert "permissions=8" in url
    assert "scope=identify+email" in url


@pytest.mark.asyncio
@respx.mock
async def test_discord_fetch_user_animated_avatar():
    provider = discord.Provider("key", "secret", CALLBACK)
    respx.get(discord.PROFILE_URL).mock(
        return_value=Response(200, json={
            "id": "80351110224678912",
            "username": "Nelly",
            "avatar": "a_8342729096ea3675442027381ff50dfe",
            "verified": True,
            "email": "nelly@discord.com",
        })
    )
    user = await provider.fetch_user(authorized())
    assert user.email == "nelly@discord.com"
    assert user.avatar_url == (
        "https://media.discordapp.net/avatars/80351110224678912/a_8342729096ea3675442027381ff50dfe.gif"
    )


@pytest.mark.asyncio
@respx.mock
async def test_discord_keeps_unverified_email():
    provider = discord.Provider("key", "secret", CALLBACK)
    respx.get(discord.PROFILE_URL).mock(
        return_value=Response(200, json={
            "id": "80351110224678912",
            "username": "Nelly",
            "verified": False,
            "email": "nelly@discord.com",
        })
    )
    user = await provider.fetch_user(authorized())
    assert user.email == "nelly@discord.com"
    assert user.raw_data["verified"] is False


def test_discord_static_and_missing_avatar():
    assert discord.avatar_url("1", "abc").endswith("/1/abc.jpg")
    assert discord.avatar_url("1", "") == ""


# facebook

def test_facebook_always_requests_email():
    provider = facebook.Provider("key", "secret", CALLBACK, "public_profile")
    assert provider.config.scopes == ["email", "public_profile"]
    assert facebook.Provider("key", "secret", CALLBACK, "email").config.scopes == ["email"]


@pytest.mark.asyncio
@respx.mock
async def test_facebook_fetch_user_sends_appsecret_proof():
    provider = facebook.Provider("key", "app-secret", CALLBACK)
    provider.set_custom_fields("id", "name", "email", "picture")
    route = respx.get(facebook.PROFILE_URL).mock(
        return_value=Response(200, json={
            "id": "10",
            "name": "Mark",
            "email": "mark@example.com",
            "picture": {"data": {"url": "https://graph.facebook.com/10/picture"}},
            "location": {"name": "Menlo Park"},
        })
    )
    user = await provider.fetch_user(authorized("fb-token"))

    params = route.calls.last.request.url.params
    assert params["access_token"] == "fb-token"
    assert params["appsecret_proof"] == compute_appsecret_proof("fb-token", "app-secret")
    assert params["fields"] == "id,name,email,picture"
    assert user.avatar_url == "https://graph.facebook.com/10/picture"
    assert user.location == "Menlo Park"
    assert provider.refresh_token_available() is False


# linkedin

@pytest.mark.asyncio
@respx.mock
async def test_linkedin_fetch_user_merges_email():
    provider = linkedin.Provider("key", "secret", CALLBACK)
    respx.get(url__startswith="https://api.linkedin.com/v2/me").mock(
        return_value=Response(200, json={
            "id": "li-1",
            "firstName": {"localized": {"en_US": "Bob", "fr_FR": "Robert"}, "preferredLocale": {"country": "US", "language": "en"}},
            "lastName": {"localized": {"en_US": "Smith"}, "preferredLocale": {"country": "US", "language": "en"}},
            "profilePicture": {"displayImage~": {"elements": [
                {"identifiers": [{"identifier": "https://media.licdn.com/small.jpg"}]},
                {"identifiers": [{"identifier": "https://media.licdn.com/large.jpg"}]},
            ]}},
        })
    )
    respx.get(url__startswith="https://api.linkedin.com/v2/emailAddress").mock(
        return_value=Response(200, json={"elements": [{"handle~": {"emailAddress": "bob@example.com"}, "handle": "urn:li:emailAddress:1"}]})
    )
    user = await provider.fetch_user(authorized())

    assert user.user_id == "li-1"
    assert user.name == "Bob Smith"
    assert user.nick_name == "Bob"
    assert user.email == "bob@example.com"
    assert user.avatar_url == "https://media.licdn.com/large.jpg"


def test_linkedin_default_scopes():
    assert linkedin.Provider("key", "secret", CALLBACK).config.scopes == ["r_liteprofile", "r_emailaddress"]


# reddit

def test_reddit_requires_user_agent():
    with pytest.raises(ConfigurationError):
        reddit.Provider("key", "secret", CALLBACK)


@pytest.mark.asyncio
@respx.mock
async def test_reddit_exchange_uses_basic_auth_and_user_agent():
    provider = reddit.Provider("key", "secret", CALLBACK, user_agent="web:social-login:0.1 (by /u/someone)")
    url = (await provider.begin_auth("state")).get_auth_url()
    assert "duration=permanent" in url

    route = respx.post(reddit.TOKEN_URL).mock(return_value=Response(200, json={"access_token": "rd", "refresh_token": "rr"}))
    session = OAuth2Session()
    await session.authorize(provider, {"code": "abc"})

    request = route.calls.last.request
    assert request.headers["authorization"] == "Basic " + base64.b64encode(b"key:secret").decode()
    assert request.headers["user-agent"] == "web:social-login:0.1 (by /u/someone)"
    assert "client_secret" not in parse_qs(request.content.decode())

    respx.get(reddit.PROFILE_URL).mock(
        return_value=Response(200, json={"id": "abc12", "name": "spez", "icon_img": "https://styles.redditmedia.com/x.png?width=256"})
    )
    user = await provider.fetch_user(session)
    assert user.name == "spez"
    assert user.avatar_url == "https://styles.redditmedia.com/x.png"


def test_reddit_user_agent_from_settings(monkeypatch):
    from social_login.settings import get_settings

    monkeypatch.setenv("SOCIAL_LOGIN_HTTP__USER_AGENT", "configured-agent/1.0")
    get_settings.cache_clear()
    assert reddit.Provider("key", "secret", CALLBACK).user_agent == "configured-agent/1.0"


# slack

@pytest.mark.asyncio
@respx.mock
async def test_slack_fetch_user():
    provider = slack.Provider("key", "secret", CALLBACK)
    respx.get(slack.AUTH_TEST_URL).mock(
        return_value=Response(200, json={"ok": True, "user": "testuser", "user_id": "user1234"})
    )
    info = respx.get(slack.USER_INFO_URL).mock(
        return_value=Response(200, json={
            "ok": True,
            "user": {
                "id": "user1234",
                "name": "testuser",
                "profile": {
                    "real_name": "Test User",
                    "first_name": "Test",
                    "last_name": "User",
                    "image_32": "https://avatars.slack-edge.com/test_32.jpg",
                    "email": "test@example.com",
                },
            },
        })
    )
    user = await provider.fetch_user(authorized())

    assert info.calls.last.request.url.params["user"] == "user1234"
    assert user.user_id == "user1234"
    assert user.nick_name == "testuser"
    assert user.name == "Test User"
    assert user.first_name == "Test"
    assert user.last_name == "User"
    assert user.email == "test@example.com"
    assert user.avatar_url == "https://avatars.slack-edge.com/test_32.jpg"


@pytest.mark.asyncio
@respx.mock
async def test_slack_without_users_read_scope_skips_profile():
    provider = slack.Provider("key", "secret", CALLBACK, "identity.basic")
    respx.get(slack.AUTH_TEST_URL).mock(return_value=Response(200, json={"ok": True, "user": "testuser", "user_id": "user1234"}))
    info = respx.get(slack.USER_INFO_URL)

    user = await provider.fetch_user(authorized())
    assert user.user_id == "user1234"
    assert not info.called


@pytest.mark.asyncio
@respx.mock
async def test_slack_error_envelope():
    provider = slack.Provider("key", "secret", CALLBACK)
    respx.get(slack.AUTH_TEST_URL).mock(return_value=Response(200, json={"ok": False, "error": "invalid_auth"}))
    with pytest.raises(ProfileError) as ei:
        await provider.fetch_user(authorized())
    assert ei.value.error == "invalid_auth"
