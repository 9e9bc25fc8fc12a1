"""Google sign-in over OpenID Connect userinfo."""
from __future__ import annotations

from typing import Any, Dict, Mapping

from social_login.providers.base import OAuth2Provider, text
from social_login.user import User

AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://accounts.google.com/o/oauth2/token"
PROFILE_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class Provider(OAuth2Provider):
    provider_name = "google"
    auth_url = AUTH_URL
    token_url = TOKEN_URL
    profile_url = PROFILE_URL
    default_scopes = ("openid", "email", "profile")

    prompt = ""
    hosted_domain = ""
    login_hint = ""

    def set_prompt(self, *prompts: str) -> None:
        """Set the ``prompt`` parameter, e.g. ``"consent", "select_account"``."""
        self.prompt = " ".join(prompts)

    def set_hosted_domain(self, domain: str) -> None:
        self.hosted_domain = domain

    def set_login_hint(self, hint: str) -> None:
        self.login_hint = hint

    def auth_code_params(self) -> Dict[str, Any]:
        # offline access is what makes Google return a refresh token
        params: Dict[str, Any] = {"access_type": "offline"}
        if self.prompt:
            params["prompt"] = self.prompt
        if self.hosted_domain:
            params["hd"] = self.hosted_domain
        if self.login_hint:
            params["login_hint"] = self.login_hint
        return params

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        user.name = text(data.get("name"))
        user.first_name = text(data.get("given_name"))
        user.last_name = text(data.get("family_name"))
        user.nick_name = user.name
        user.email = text(data.get("email"))
        user.avatar_url = text(data.get("picture"))
        # older profile endpoints report "id" instead of "sub"
        user.user_id = text(data.get("sub") or data.get("id"))
