"""Facebook Login over the Graph API.

Every Graph call carries ``appsecret_proof`` so the app can enable
"Require App Secret" in its dashboard.
"""
from __future__ import annotations

from typing import Any, Mapping

from social_login.clients.oauth import OAuth2Config
from social_login.providers.base import OAuth2Provider, text
from social_login.security import compute_appsecret_proof
from social_login.session import OAuth2Session
from social_login.user import User

AUTH_URL = "https://www.facebook.com/dialog/oauth"
TOKEN_URL = "https://graph.facebook.com/oauth/access_token"
PROFILE_URL = "https://graph.facebook.com/me"

DEFAULT_FIELDS = "email,first_name,last_name,link,about,id,name,picture,location"


class Provider(OAuth2Provider):
    provider_name = "facebook"
    auth_url = AUTH_URL
    token_url = TOKEN_URL
    profile_url = PROFILE_URL
    refresh_available = False

    fields = DEFAULT_FIELDS

    def new_config(self, scopes: list[str]) -> OAuth2Config:
        # email is always requested
        if "email" not in scopes:
            scopes = ["email", *scopes]
        return super().new_config(scopes)

    def set_custom_fields(self, *fields: str) -> None:
        """Replace the Graph ``fields`` list requested for the profile."""
        self.fields = ",".join(fields)

    async def fetch_user(self, session: OAuth2Session) -> User:
        self.require_access_token(session)
        user = self.new_user(session)
        params = {
            "access_token": session.access_token,
            "appsecret_proof": compute_appsecret_proof(session.access_token, self.secret),
            "fields": self.fields,
        }
        data = await self.get_json(self.profile_url, params=params)
        user.raw_data = data
        self.populate_user(user, data)
        return user

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        user.name = text(data.get("name"))
        user.first_name = text(data.get("first_name"))
        user.last_name = text(data.get("last_name"))
        user.nick_name = user.name
        user.email = text(data.get("email"))
        user.description = text(data.get("about"))
        user.user_id = text(data.get("id"))
        picture = (data.get("picture") or {}).get("data") or {}
        user.avatar_url = text(picture.get("url"))
        user.location = text((data.get("location") or {}).get("name"))
