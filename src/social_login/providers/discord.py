from __future__ import annotations

from typing import Any, Dict, Mapping

from social_login.providers.base import OAuth2Provider, text
from social_login.user import User

AUTH_URL = "https://discord.com/api/oauth2/authorize"
TOKEN_URL = "https://discord.com/api/oauth2/token"
PROFILE_URL = "https://discord.com/api/users/@me"
AVATAR_URL = "https://media.discordapp.net/avatars"

SCOPE_IDENTIFY = "identify"
SCOPE_EMAIL = "email"
SCOPE_CONNECTIONS = "connections"
SCOPE_GUILDS = "guilds"
SCOPE_GUILDS_JOIN = "guilds.join"
SCOPE_BOT = "bot"


def avatar_url(user_id: str, avatar: str) -> str:
    if not avatar:
        return ""
    # animated avatars are prefixed with "a_"
    ext = "gif" if avatar.startswith("a_") else "jpg"
    return f"{AVATAR_URL}/{user_id}/{avatar}.{ext}"


class Provider(OAuth2Provider):
    provider_name = "discord"
    auth_url = AUTH_URL
    token_url = TOKEN_URL
    profile_url = PROFILE_URL
    default_scopes = (SCOPE_IDENTIFY,)

    permissions = ""

    def set_permissions(self, permissions: str) -> None:
        """Bot permission bitfield requested together with the ``bot`` scope."""
        self.permissions = permissions

    def auth_code_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"prompt": "none", "access_type": "online"}
        if self.permissions:
            params["permissions"] = self.permissions
        return params

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        user.user_id = text(data.get("id"))
        user.name = text(data.get("username"))
        user.nick_name = user.name
        user.email = text(data.get("email"))
        user.avatar_url = avatar_url(user.user_id, text(data.get("avatar")))
