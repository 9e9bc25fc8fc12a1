import pytest
import respx
from httpx import Response

from social_login.exceptions import InvalidCallbackError, ProfileError, RefreshNotAvailableError, TokenError
from social_login.providers import twitter

FORM = {"content-type": "application/x-www-form-urlencoded"}


def twitter_provider(**kwargs):
    return twitter.Provider("consumer-key", "consumer-secret", "http://localhost/foo", **kwargs)


def mock_request_token():
    return respx.post(twitter.REQUEST_TOKEN_URL).mock(
        return_value=Response(
            200,
            text="oauth_token=req-token&oauth_token_secret=req-secret&oauth_callback_confirmed=true",
            headers=FORM,
        )
    )


@pytest.mark.asyncio
@respx.mock
async def test_begin_auth_gets_request_token():
    route = mock_request_token()
    session = await twitter_provider().begin_auth("state")

    url = session.get_auth_url()
    assert url.startswith(twitter.AUTHORIZE_URL + "?")
    assert "oauth_token=req-token" in url
    assert session.request_token.token == "req-token"
    assert session.request_token.secret == "req-secret"
    assert route.calls.last.request.headers["authorization"].startswith("OAuth ")
    assert 'oauth_consumer_key="consumer-key"' in route.calls.last.request.headers["authorization"]


@pytest.mark.asyncio
@respx.mock
async def test_authenticate_endpoint():
    mock_request_token()
    session = await twitter_provider(authenticate=True).begin_auth("state")
    assert session.get_auth_url().startswith(twitter.AUTHENTICATE_URL + "?")


@pytest.mark.asyncio
@respx.mock
async def test_request_token_rejected():
    respx.post(twitter.REQUEST_TOKEN_URL).mock(return_value=Response(401, text="Invalid consumer key"))
    with pytest.raises(TokenError):
        await twitter_provider().begin_auth("state")


@pytest.mark.asyncio
@respx.mock
async def test_authorize_and_fetch_user():
    provider = twitter_provider()
    mock_request_token()
    access = respx.post(twitter.ACCESS_TOKEN_URL).mock(
        return_value=Response(
            200,
            text="oauth_token=acc-token&oauth_token_secret=acc-secret&user_id=6253282&screen_name=twitterapi",
            headers=FORM,
        )
    )
    profile = respx.get(twitter.PROFILE_URL).mock(
        return_value=Response(200, json={
            "id_str": "6253282",
            "name": "Twitter API",
            "screen_name": "TwitterAPI",
            "location": "San Francisco, CA",
            "description": "The Real Twitter API.",
            "profile_image_url": "http://a0.twimg.com/profile_images/normal.png",
        })
    )

    session = await provider.begin_auth("state")
    session = provider.unmarshal_session(session.marshal())
    assert await session.authorize(provider, {"oauth_verifier": "verifier-1"}) == "acc-token"
    assert 'oauth_verifier="verifier-1"' in access.calls.last.request.headers["authorization"]
    assert session.access_token.additional_data["screen_name"] == "twitterapi"

    user = await provider.fetch_user(session)
    params = profile.calls.last.request.url.params
    assert params["include_entities"] == "false"
    assert params["skip_status"] == "true"
    assert user.provider == "twitter"
    assert user.user_id == "6253282"
    assert user.name == "Twitter API"
    assert user.nick_name == "TwitterAPI"
    assert user.location == "San Francisco, CA"
    assert user.access_token == "acc-token"
    assert user.access_token_secret == "acc-secret"


@pytest.mark.asyncio
async def test_authorize_requires_verifier():
    session = twitter.TwitterSession(auth_url="x")
    with pytest.raises(InvalidCallbackError):
        await session.authorize(twitter_provider(), {})


@pytest.mark.asyncio
async def test_fetch_user_requires_access_token():
    with pytest.raises(ProfileError):
        await twitter_provider().fetch_user(twitter.TwitterSession())


@pytest.mark.asyncio
async def test_no_refresh_and_rename():
    provider = twitter_provider()
    provider.set_name("x")
    assert provider.name == "x"
    assert provider.refresh_token_available() is False
    with pytest.raises(RefreshNotAvailableError):
        await provider.refresh_token("anything")
