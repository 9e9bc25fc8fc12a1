from __future__ import annotations

from typing import Any, Mapping

import httpx

from social_login.providers.base import OAuth2Provider, text
from social_login.user import User

AUTH_URL = "https://gitlab.com/oauth/authorize"
TOKEN_URL = "https://gitlab.com/oauth/token"
PROFILE_URL = "https://gitlab.com/api/v4/user"


class Provider(OAuth2Provider):
    provider_name = "gitlab"
    auth_url = AUTH_URL
    token_url = TOKEN_URL
    profile_url = PROFILE_URL

    def __init__(
        self,
        client_key: str,
        secret: str,
        callback_url: str,
        *scopes: str,
        auth_url: str | None = None,
        token_url: str | None = None,
        profile_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        # self-managed GitLab instances
        if auth_url:
            self.auth_url = auth_url
        if token_url:
            self.token_url = token_url
        if profile_url:
            self.profile_url = profile_url
        super().__init__(client_key, secret, callback_url, *scopes, http_client=http_client, timeout=timeout)

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        user.name = text(data.get("name"))
        user.nick_name = text(data.get("username"))
        user.email = text(data.get("email"))
        user.description = text(data.get("bio"))
        user.avatar_url = text(data.get("avatar_url"))
        user.user_id = text(data.get("id"))
        user.location = text(data.get("location"))
