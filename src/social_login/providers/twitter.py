"""Twitter sign-in over OAuth 1.0a."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx
from pydantic import ValidationError

from social_login.clients.oauth import Token, safe_json
from social_login.clients.oauth1 import OAuth1Consumer, OAuth1Endpoints, OAuth1Token
from social_login.exceptions import (
    InvalidCallbackError,
    ProfileError,
    RefreshNotAvailableError,
    SocialLoginError,
)
from social_login.logging_config import provider_logger
from social_login.providers.base import text
from social_login.session import Session
from social_login.settings import get_settings
from social_login.user import User

REQUEST_TOKEN_URL = "https://api.twitter.com/oauth/request_token"
AUTHORIZE_URL = "https://api.twitter.com/oauth/authorize"
AUTHENTICATE_URL = "https://api.twitter.com/oauth/authenticate"
ACCESS_TOKEN_URL = "https://api.twitter.com/oauth/access_token"
PROFILE_URL = "https://api.twitter.com/1.1/account/verify_credentials.json"


class TwitterSession(Session):
    request_token: Optional[OAuth1Token] = None
    access_token: Optional[OAuth1Token] = None

    async def authorize(self, provider: "Provider", params: Mapping[str, str]) -> str:
        """Trade the request token and ``oauth_verifier`` for an access token."""
        verifier = params.get("oauth_verifier")
        if not verifier or self.request_token is None:
            raise InvalidCallbackError("Missing oauth_verifier or request token", error="invalid_request")
        self.access_token = await provider.consumer.access_token(self.request_token, verifier)
        return self.access_token.token


class Provider:
    """OAuth 1.0a provider.

    ``authenticate=True`` sends users to ``/oauth/authenticate``, which skips
    the consent screen for users who already authorized the app.
    """

    provider_name = "twitter"

    def __init__(
        self,
        client_key: str,
        secret: str,
        callback_url: str,
        *,
        authenticate: bool = False,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self.client_key = client_key
        self.secret = secret
        self.callback_url = callback_url
        self.timeout = timeout if timeout is not None else settings.http.timeout
        headers = {"User-Agent": settings.http.user_agent} if settings.http.user_agent else None
        self.consumer = OAuth1Consumer(
            client_key,
            secret,
            OAuth1Endpoints(
                request_token_url=REQUEST_TOKEN_URL,
                authorize_url=AUTHENTICATE_URL if authenticate else AUTHORIZE_URL,
                access_token_url=ACCESS_TOKEN_URL,
            ),
            timeout=self.timeout,
            headers=headers,
        )
        self._name = self.provider_name
        self.logger = provider_logger(self._name)

    @property
    def name(self) -> str:
        return self._name

    def set_name(self, name: str) -> None:
        self._name = name
        self.logger = provider_logger(name)

    def debug(self, enabled: bool) -> None:
        self.logger.setLevel(logging.DEBUG if enabled else logging.NOTSET)

    async def begin_auth(self, state: str) -> Session:
        # OAuth 1.0a has no state parameter; the request token plays that role
        request_token, url = await self.consumer.request_token_and_url(self.callback_url)
        self.logger.debug("authorization url built", extra={"provider": self.name, "url": url})
        return TwitterSession(auth_url=url, request_token=request_token)

    def unmarshal_session(self, data: str) -> Session:
        try:
            return TwitterSession.model_validate_json(data)
        except ValidationError as exc:
            raise SocialLoginError("Could not decode session", error="invalid_session", description=str(exc)) from exc

    async def fetch_user(self, session: TwitterSession) -> User:
        if session.access_token is None or not session.access_token.token:
            raise ProfileError(f"{self.name} cannot get user information without accessToken", error="missing_access_token")

        try:
            resp = await self.consumer.get(
                PROFILE_URL,
                session.access_token,
                params={"include_entities": "false", "skip_status": "true"},
            )
        except httpx.HTTPError as exc:
            raise ProfileError(
                f"Network error while fetching user information from {self.name}",
                error="network_error",
                description=str(exc),
            ) from exc
        self.logger.debug(
            "profile request",
            extra={"provider": self.name, "method": "GET", "url": PROFILE_URL, "status_code": resp.status_code},
        )
        if resp.status_code != 200:
            raise ProfileError(
                f"{self.name} responded with a {resp.status_code} trying to fetch user information",
                error="profile_request_failed",
                status_code=resp.status_code,
                details=safe_json(resp),
            )
        data = safe_json(resp)

        user = User(
            provider=self.name,
            raw_data=data,
            access_token=session.access_token.token,
            access_token_secret=session.access_token.secret,
        )
        populate_user(user, data)
        return user

    def refresh_token_available(self) -> bool:
        return False

    async def refresh_token(self, refresh_token: str) -> Token:
        raise RefreshNotAvailableError(f"Refresh token is not provided by {self.name}", error="refresh_unavailable")


def populate_user(user: User, data: Mapping[str, Any]) -> None:
    user.name = text(data.get("name"))
    user.nick_name = text(data.get("screen_name"))
    user.description = text(data.get("description"))
    user.avatar_url = text(data.get("profile_image_url"))
    user.user_id = text(data.get("id_str"))
    user.location = text(data.get("location"))
