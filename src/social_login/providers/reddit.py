from __future__ import annotations

from typing import Any, Dict, Mapping

import httpx

from social_login.exceptions import ConfigurationError
from social_login.providers.base import OAuth2Provider, text
from social_login.user import User

AUTH_URL = "https://www.reddit.com/api/v1/authorize"
TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
PROFILE_URL = "https://oauth.reddit.com/api/v1/me"


class Provider(OAuth2Provider):
    provider_name = "reddit"
    auth_url = AUTH_URL
    token_url = TOKEN_URL
    profile_url = PROFILE_URL
    default_scopes = ("identity",)
    # reddit only accepts client credentials via HTTP Basic
    auth_style = "header"

    def __init__(
        self,
        client_key: str,
        secret: str,
        callback_url: str,
        *scopes: str,
        user_agent: str = "",
        duration: str = "permanent",
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(client_key, secret, callback_url, *scopes, http_client=http_client, timeout=timeout)
        # reddit throttles requests without a descriptive User-Agent
        self.user_agent = user_agent or self.user_agent
        if not self.user_agent:
            raise ConfigurationError("reddit requires a User-Agent", error="missing_user_agent")
        self.duration = duration

    def auth_code_params(self) -> Dict[str, Any]:
        return {"duration": self.duration}

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        user.user_id = text(data.get("id"))
        user.name = text(data.get("name"))
        user.nick_name = user.name
        user.avatar_url = text(data.get("icon_img")).split("?")[0]
