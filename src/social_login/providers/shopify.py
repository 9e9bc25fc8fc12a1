"""Shopify app installation flow.

Every shop has its own hostname, so call ``set_shop_name`` before
``begin_auth``. The callback is signed with the app secret; both the HMAC and
the ``shop`` hostname are checked before the code is exchanged.
"""
from __future__ import annotations

import re
from typing import Any, Mapping

import httpx

from social_login.clients.oauth import OAuth2Config
from social_login.exceptions import InvalidCallbackError
from social_login.providers.base import OAuth2Provider, text
from social_login.security import verify_shopify_hmac
from social_login.session import OAuth2Session
from social_login.user import User

AUTH_URL_TEMPLATE = "https://{shop}.myshopify.com/admin/oauth/authorize"
TOKEN_URL_TEMPLATE = "https://{shop}.myshopify.com/admin/oauth/access_token"
PROFILE_URL_TEMPLATE = "https://{shop}.myshopify.com/admin/api/2019-04/shop.json"

HOSTNAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-]*\.myshopify\.com$")

NOT_PROVIDED = "Not provided by the Shopify API"

SCOPE_READ_CONTENT = "read_content"
SCOPE_WRITE_CONTENT = "write_content"
SCOPE_READ_THEMES = "read_themes"
SCOPE_WRITE_THEMES = "write_themes"
SCOPE_READ_PRODUCTS = "read_products"
SCOPE_WRITE_PRODUCTS = "write_products"
SCOPE_READ_CUSTOMERS = "read_customers"
SCOPE_WRITE_CUSTOMERS = "write_customers"
SCOPE_READ_ORDERS = "read_orders"
SCOPE_WRITE_ORDERS = "write_orders"
SCOPE_READ_ALL_ORDERS = "read_all_orders"
SCOPE_READ_INVENTORY = "read_inventory"
SCOPE_WRITE_INVENTORY = "write_inventory"
SCOPE_READ_FULFILLMENTS = "read_fulfillments"
SCOPE_WRITE_FULFILLMENTS = "write_fulfillments"
SCOPE_READ_SHIPPING = "read_shipping"
SCOPE_WRITE_SHIPPING = "write_shipping"
SCOPE_READ_ANALYTICS = "read_analytics"
SCOPE_READ_USERS = "read_users"
SCOPE_WRITE_USERS = "write_users"


class ShopifySession(OAuth2Session):
    hostname: str = ""
    hmac: str = ""

    async def authorize(self, provider: "Provider", params: Mapping[str, str]) -> str:
        if not verify_shopify_hmac(params, provider.secret):
            raise InvalidCallbackError("Invalid HMAC received", error="invalid_hmac")
        if not HOSTNAME_RE.fullmatch(params.get("shop") or ""):
            raise InvalidCallbackError("Invalid hostname received", error="invalid_hostname")

        access_token = await super().authorize(provider, params)
        self.hostname = params.get("shop") or ""
        self.hmac = params.get("hmac") or ""
        return access_token


class Provider(OAuth2Provider):
    provider_name = "shopify"
    default_scopes = (SCOPE_READ_CUSTOMERS,)
    scope_separator = ","
    refresh_available = False
    session_class = ShopifySession

    def __init__(
        self,
        client_key: str,
        secret: str,
        callback_url: str,
        *scopes: str,
        shop_name: str = "",
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.shop_name = shop_name
        self.scopes = list(scopes)
        super().__init__(client_key, secret, callback_url, *scopes, http_client=http_client, timeout=timeout)

    def new_config(self, scopes: list[str]) -> OAuth2Config:
        self.auth_url = AUTH_URL_TEMPLATE.format(shop=self.shop_name)
        self.token_url = TOKEN_URL_TEMPLATE.format(shop=self.shop_name)
        self.profile_url = PROFILE_URL_TEMPLATE.format(shop=self.shop_name)
        return super().new_config(scopes)

    def set_shop_name(self, name: str) -> None:
        """Point the provider at another shop (``<name>.myshopify.com``)."""
        self.shop_name = name
        self.config = self.new_config(self.scopes)

    async def fetch_user(self, session: OAuth2Session) -> User:
        self.require_access_token(session, "shop information")
        user = self.new_user(session)
        data = await self.get_json(
            self.profile_url,
            headers={"X-Shopify-Access-Token": session.access_token},
            what="shop information",
        )
        user.raw_data = data
        self.populate_user(user, data)
        return user

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        shop = data.get("shop") or {}
        user.user_id = text(shop.get("id"))
        user.name = text(shop.get("name"))
        user.email = text(shop.get("email"))
        user.description = f"{text(shop.get('myshopify_domain'))} ({text(shop.get('plan_display_name'))})"
        user.location = f"{text(shop.get('city'))}, {text(shop.get('country'))}"
        user.avatar_url = NOT_PROVIDED
        user.nick_name = NOT_PROVIDED
