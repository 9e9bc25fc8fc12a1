"""Microsoft identity platform (Azure AD v2.0 endpoints) with Graph profiles."""
from __future__ import annotations

from typing import Any, Mapping

import httpx

from social_login.providers.base import OAuth2Provider, text
from social_login.user import User

AUTH_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/authorize"
TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
GRAPH_ME_URL = "https://graph.microsoft.com/v1.0/me"

# Tenant aliases accepted in place of a directory id
COMMON_TENANT = "common"
ORGANIZATIONS_TENANT = "organizations"
CONSUMERS_TENANT = "consumers"


class Provider(OAuth2Provider):
    provider_name = "azureadv2"
    profile_url = GRAPH_ME_URL
    default_scopes = ("openid", "profile", "email", "offline_access", "User.Read")

    def __init__(
        self,
        client_key: str,
        secret: str,
        callback_url: str,
        *scopes: str,
        tenant: str = COMMON_TENANT,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.tenant = tenant or COMMON_TENANT
        self.auth_url = AUTH_URL_TEMPLATE.format(tenant=self.tenant)
        self.token_url = TOKEN_URL_TEMPLATE.format(tenant=self.tenant)
        super().__init__(client_key, secret, callback_url, *scopes, http_client=http_client, timeout=timeout)

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        user.name = text(data.get("displayName"))
        user.first_name = text(data.get("givenName"))
        user.last_name = text(data.get("surname"))
        user.email = text(data.get("mail") or data.get("userPrincipalName"))
        user.nick_name = text(data.get("userPrincipalName"))
        user.description = text(data.get("jobTitle"))
        user.location = text(data.get("officeLocation"))
        user.user_id = text(data.get("id"))
