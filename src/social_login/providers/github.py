from __future__ import annotations

from typing import Any, Mapping

import httpx

from social_login.exceptions import ProfileError
from social_login.providers.base import OAuth2Provider, text
from social_login.session import OAuth2Session
from social_login.user import User

AUTH_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
PROFILE_URL = "https://api.github.com/user"
EMAIL_URL = "https://api.github.com/user/emails"

EMAIL_SCOPES = ("user", "user:email")


class Provider(OAuth2Provider):
    provider_name = "github"
    auth_url = AUTH_URL
    token_url = TOKEN_URL
    profile_url = PROFILE_URL
    email_url = EMAIL_URL
    refresh_available = False

    def __init__(
        self,
        client_key: str,
        secret: str,
        callback_url: str,
        *scopes: str,
        auth_url: str | None = None,
        token_url: str | None = None,
        profile_url: str | None = None,
        email_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        # GitHub Enterprise installs live on their own hosts
        if auth_url:
            self.auth_url = auth_url
        if token_url:
            self.token_url = token_url
        if profile_url:
            self.profile_url = profile_url
        if email_url:
            self.email_url = email_url
        super().__init__(client_key, secret, callback_url, *scopes, http_client=http_client, timeout=timeout)

    async def fetch_user(self, session: OAuth2Session) -> User:
        user = await super().fetch_user(session)
        if not user.email and any(self.has_scope(s) for s in EMAIL_SCOPES):
            user.email = await self.primary_email(session.access_token)
        return user

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        user.name = text(data.get("name"))
        user.nick_name = text(data.get("login"))
        user.email = text(data.get("email"))
        user.description = text(data.get("bio"))
        user.avatar_url = text(data.get("avatar_url"))
        user.user_id = text(data.get("id"))
        user.location = text(data.get("location"))

    async def primary_email(self, access_token: str) -> str:
        """Return the primary verified address, for users with a private email."""
        resp = await self.request(self.email_url, bearer=access_token, what="email")
        try:
            emails = resp.json()
        except ValueError as exc:
            raise ProfileError(f"Could not decode email from {self.name}", error="invalid_profile") from exc
        if not isinstance(emails, list):
            raise ProfileError(f"Unexpected email payload from {self.name}", error="invalid_profile")
        for entry in emails:
            if entry.get("primary") and entry.get("verified"):
                return text(entry.get("email"))
        raise ProfileError(
            "The user does not have a verified, primary email address on GitHub",
            error="no_verified_email",
        )
