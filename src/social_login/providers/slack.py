"""Slack "Sign in with Slack" using the classic OAuth v1 app flow.

``auth.test`` identifies the user; ``users.info`` fills in the profile when
the ``users:read`` scope was granted.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping

from social_login.exceptions import ProfileError
from social_login.providers.base import OAuth2Provider, text
from social_login.session import OAuth2Session
from social_login.user import User

AUTH_URL = "https://slack.com/oauth/authorize"
TOKEN_URL = "https://slack.com/api/oauth.access"
AUTH_TEST_URL = "https://slack.com/api/auth.test"
USER_INFO_URL = "https://slack.com/api/users.info"

SCOPE_USER_READ = "users:read"


class Provider(OAuth2Provider):
    provider_name = "slack"
    auth_url = AUTH_URL
    token_url = TOKEN_URL
    default_scopes = (SCOPE_USER_READ,)
    refresh_available = False

    async def slack_call(self, url: str, access_token: str, what: str, params: Mapping[str, Any] | None = None) -> Dict[str, Any]:
        data = await self.get_json(url, bearer=access_token, params=params, what=what)
        # Slack reports failures as 200 with ok=false
        if data.get("ok") is False:
            raise ProfileError(
                f"{self.name} could not fetch {what}: {text(data.get('error'))}",
                error=text(data.get("error")) or "slack_error",
                details=data,
            )
        return data

    async def fetch_user(self, session: OAuth2Session) -> User:
        self.require_access_token(session)
        user = self.new_user(session)

        identity = await self.slack_call(AUTH_TEST_URL, session.access_token, "user identity")
        user.user_id = text(identity.get("user_id"))
        user.nick_name = text(identity.get("user"))
        user.raw_data = identity

        if self.has_scope(SCOPE_USER_READ):
            info = await self.slack_call(USER_INFO_URL, session.access_token, "user information", {"user": user.user_id})
            user.raw_data = info
            self.populate_user(user, info)
        return user

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        account = data.get("user") or {}
        profile = account.get("profile") or {}
        user.name = text(profile.get("real_name") or account.get("real_name"))
        user.first_name = text(profile.get("first_name"))
        user.last_name = text(profile.get("last_name"))
        user.email = text(profile.get("email"))
        user.avatar_url = text(profile.get("image_32"))
        if account.get("name"):
            user.nick_name = text(account.get("name"))
        if account.get("id"):
            user.user_id = text(account.get("id"))
