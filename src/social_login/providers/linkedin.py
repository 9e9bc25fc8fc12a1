"""LinkedIn sign-in over the v2 REST API.

The v2 API splits the profile and the email address across two endpoints,
and names are returned as localized maps keyed by ``language_COUNTRY``.
"""
from __future__ import annotations

from typing import Any, Mapping

from social_login.providers.base import OAuth2Provider, text
from social_login.session import OAuth2Session
from social_login.user import User

AUTH_URL = "https://www.linkedin.com/oauth/v2/authorization"
TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"

# LinkedIn expects the projection parentheses unescaped
PROFILE_URL = "https://api.linkedin.com/v2/me?projection=(id,firstName,lastName,profilePicture(displayImage~:playableStreams))"
EMAIL_URL = "https://api.linkedin.com/v2/emailAddress?q=members&projection=(elements*(handle~))"


def localized(field: Any) -> str:
    if not isinstance(field, Mapping):
        return ""
    values = field.get("localized") or {}
    locale = field.get("preferredLocale") or {}
    key = f"{locale.get('language', '')}_{locale.get('country', '')}"
    if key in values:
        return text(values[key])
    for value in values.values():
        return text(value)
    return ""


def picture_url(data: Mapping[str, Any]) -> str:
    display = (data.get("profilePicture") or {}).get("displayImage~") or {}
    elements = display.get("elements") or []
    # elements are ordered smallest first
    for element in reversed(elements):
        for identifier in element.get("identifiers") or []:
            if identifier.get("identifier"):
                return text(identifier["identifier"])
    return ""


class Provider(OAuth2Provider):
    provider_name = "linkedin"
    auth_url = AUTH_URL
    token_url = TOKEN_URL
    profile_url = PROFILE_URL
    email_url = EMAIL_URL
    default_scopes = ("r_liteprofile", "r_emailaddress")

    async def fetch_user(self, session: OAuth2Session) -> User:
        user = await super().fetch_user(session)
        data = await self.get_json(self.email_url, bearer=session.access_token, what="email")
        for element in data.get("elements") or []:
            handle = element.get("handle~") or {}
            if handle.get("emailAddress"):
                user.email = text(handle["emailAddress"])
                break
        return user

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        user.user_id = text(data.get("id"))
        user.first_name = localized(data.get("firstName"))
        user.last_name = localized(data.get("lastName"))
        user.name = f"{user.first_name} {user.last_name}".strip()
        user.nick_name = user.first_name
        user.avatar_url = picture_url(data)
