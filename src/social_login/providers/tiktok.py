"""TikTok Login Kit.

TikTok calls the client id ``client_key``, sends every token request as query
parameters, and wraps both results and errors in a ``data`` envelope, so the
generic token client does not apply here.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import httpx

from social_login.clients.oauth import OAuth2Config, Token, append_query, expiry_from, http_client as open_client, safe_json
from social_login.exceptions import InvalidCallbackError, ProfileError, TokenError
from social_login.providers.base import OAuth2Provider, text
from social_login.session import OAuth2Session, Session
from social_login.user import User

AUTH_URL = "https://open-api.tiktok.com/platform/oauth/connect/"
TOKEN_URL = "https://open-api.tiktok.com/oauth/access_token/"
REFRESH_URL = "https://open-api.tiktok.com/oauth/refresh_token/"
USER_INFO_URL = "https://open-api.tiktok.com/oauth/userinfo/"

SCOPE_USER_INFO_BASIC = "user.info.basic"
SCOPE_VIDEO_LIST = "video.list"
SCOPE_VIDEO_UPLOAD = "video.upload"
SCOPE_SHARE_SOUND_CREATE = "share.sound.create"


def envelope_error(payload: Mapping[str, Any]) -> str:
    data = payload.get("data") or {}
    return f"{text(data.get('description'))} [{data.get('error_code', 0)}]"


class TikTokSession(OAuth2Session):
    open_id: str = ""
    refresh_expires_at: Optional[datetime] = None

    async def authorize(self, provider: "Provider", params: Mapping[str, str]) -> str:
        code = params.get("code")
        if not code:
            raise InvalidCallbackError("Missing authorization code", error="invalid_request")
        token = await provider.exchange(code)
        self.apply_token(token)
        self.open_id = text(token.get("open_id"))
        self.refresh_expires_at = expiry_from(token.get("refresh_expires_in"))
        return self.access_token


class Provider(OAuth2Provider):
    provider_name = "tiktok"
    auth_url = AUTH_URL
    token_url = TOKEN_URL
    refresh_url = REFRESH_URL
    profile_url = USER_INFO_URL
    scope_separator = ","
    session_class = TikTokSession

    def new_config(self, scopes: list[str]) -> OAuth2Config:
        # user.info.basic is always bound, first
        scopes = [SCOPE_USER_INFO_BASIC, *(s for s in scopes if s != SCOPE_USER_INFO_BASIC)]
        return super().new_config(scopes)

    async def begin_auth(self, state: str) -> Session:
        params: Dict[str, Any] = {
            "client_key": self.client_key,
            "response_type": "code",
            "scope": self.scope_separator.join(self.config.scopes),
            "state": state,
        }
        if self.callback_url:
            params["redirect_uri"] = self.callback_url
        url = append_query(self.auth_url, dict(sorted(params.items())))
        return self.session_class(auth_url=url)

    async def token_call(self, url: str, params: Dict[str, Any]) -> Token:
        try:
            async with open_client(self.http_client, self.timeout) as http:
                resp = await http.post(url, params=params, headers=self.request_headers())
        except httpx.HTTPError as exc:
            raise TokenError("Network error during token exchange", error="network_error", description=str(exc)) from exc

        payload = safe_json(resp)
        self.logger.debug(
            "token request",
            extra={"provider": self.name, "method": "POST", "url": url, "status_code": resp.status_code},
        )
        data = payload.get("data")
        if not isinstance(data, dict) or not data.get("access_token"):
            raise TokenError(
                envelope_error(payload),
                error="token_request_failed",
                status_code=resp.status_code,
                details=payload,
            )
        return Token.from_response(data)

    async def exchange(self, code: str, **extra_params: Any) -> Token:
        params: Dict[str, Any] = {
            "client_key": self.client_key,
            "client_secret": self.secret,
            "code": code,
            "grant_type": "authorization_code",
        }
        if self.callback_url:
            params["redirect_uri"] = self.callback_url
        params.update(extra_params)
        return await self.token_call(self.token_url, params)

    async def refresh_token(self, refresh_token: str) -> Token:
        return await self.token_call(
            self.refresh_url,
            {
                "client_key": self.client_key,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )

    async def fetch_user(self, session: TikTokSession) -> User:
        user = self.new_user(session)
        user.user_id = session.open_id
        if not session.access_token or not session.open_id:
            raise ProfileError(
                f"{self.name} cannot get user information without accessToken and userID",
                error="missing_access_token",
            )

        payload = await self.get_json(
            self.profile_url,
            params={"access_token": session.access_token, "open_id": session.open_id},
        )
        data = payload.get("data") or {}
        # no display name means the envelope carries an error instead
        if not data.get("display_name"):
            raise ProfileError(envelope_error(payload), error="profile_request_failed", details=payload)
        user.raw_data = payload
        self.populate_user(user, data)
        return user

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        user.avatar_url = text(data.get("avatar"))
        user.name = text(data.get("display_name"))
        user.nick_name = user.name
