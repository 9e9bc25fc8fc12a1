"""Generic OpenID Connect provider driven by a discovery document.

Endpoints come from ``.well-known/openid-configuration``, loaded once on first
use. The user is built from the verified ID token claims, merged with the
userinfo response when the provider exposes one.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence

import httpx

from social_login.clients.oauth import OAuth2Config, Token, http_client as open_client
from social_login.exceptions import ConfigurationError, ProfileError
from social_login.jwt import verify_id_token
from social_login.providers.base import OAuth2Provider, text
from social_login.session import OAuth2Session, Session
from social_login.user import User

SCOPE_OPENID = "openid"

SUBJECT_CLAIM = "sub"
EMAIL_CLAIM = "email"
NAME_CLAIM = "name"
NICKNAME_CLAIM = "nickname"
PREFERRED_USERNAME_CLAIM = "preferred_username"
GIVEN_NAME_CLAIM = "given_name"
FAMILY_NAME_CLAIM = "family_name"
PICTURE_CLAIM = "picture"
ADDRESS_CLAIM = "address"


@dataclass(frozen=True)
class ProviderMetadata:
    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    jwks_uri: str
    userinfo_endpoint: Optional[str] = None


class Provider(OAuth2Provider):
    provider_name = "openid-connect"
    default_scopes = (SCOPE_OPENID,)

    def __init__(
        self,
        client_key: str,
        secret: str,
        callback_url: str,
        *scopes: str,
        discovery_url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        now: Callable[[], float] = time.time,
    ) -> None:
        self.discovery_url = discovery_url
        self.now = now
        self.user_id_claims: List[str] = [SUBJECT_CLAIM]
        self.name_claims: List[str] = [NAME_CLAIM]
        self.nick_name_claims: List[str] = [NICKNAME_CLAIM, PREFERRED_USERNAME_CLAIM]
        self.email_claims: List[str] = [EMAIL_CLAIM]
        self.first_name_claims: List[str] = [GIVEN_NAME_CLAIM]
        self.last_name_claims: List[str] = [FAMILY_NAME_CLAIM]
        self.avatar_url_claims: List[str] = [PICTURE_CLAIM]
        self.location_claims: List[str] = [ADDRESS_CLAIM]
        self._metadata: Optional[ProviderMetadata] = None
        self._metadata_lock = asyncio.Lock()
        super().__init__(client_key, secret, callback_url, *scopes, http_client=http_client, timeout=timeout)

    def new_config(self, scopes: list[str]) -> OAuth2Config:
        if SCOPE_OPENID not in scopes:
            scopes = [SCOPE_OPENID, *scopes]
        return super().new_config(scopes)

    async def metadata(self) -> ProviderMetadata:
        if self._metadata:
            return self._metadata
        async with self._metadata_lock:
            if self._metadata:
                return self._metadata
            self._metadata = await self._load_from_discovery()
            self.config.auth_url = self._metadata.authorization_endpoint
            self.config.token_url = self._metadata.token_endpoint
        return self._metadata

    async def _load_from_discovery(self) -> ProviderMetadata:
        try:
            async with open_client(self.http_client, self.timeout) as http:
                resp = await http.get(self.discovery_url, headers=self.request_headers())
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise ConfigurationError(
                "Failed to load provider metadata",
                error="discovery_error",
                description=str(exc),
            ) from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise ConfigurationError("Discovery document is not valid JSON", error="discovery_error") from exc

        missing = [k for k in ("issuer", "authorization_endpoint", "token_endpoint", "jwks_uri") if not data.get(k)]
        if missing:
            raise ConfigurationError(
                "Discovery document missing required endpoints",
                error="discovery_error",
                description=", ".join(missing),
            )
        self.logger.debug("discovery document loaded", extra={"provider": self.name, "url": self.discovery_url})
        return ProviderMetadata(
            issuer=data["issuer"],
            authorization_endpoint=data["authorization_endpoint"],
            token_endpoint=data["token_endpoint"],
            jwks_uri=data["jwks_uri"],
            userinfo_endpoint=data.get("userinfo_endpoint"),
        )

    async def begin_auth(self, state: str) -> Session:
        await self.metadata()
        return await super().begin_auth(state)

    async def exchange(self, code: str, **extra_params: Any) -> Token:
        await self.metadata()
        return await super().exchange(code, **extra_params)

    async def refresh_token(self, refresh_token: str) -> Token:
        await self.metadata()
        return await super().refresh_token(refresh_token)

    async def fetch_user(self, session: OAuth2Session) -> User:
        if not session.id_token:
            raise ProfileError(f"{self.name} cannot get user information without id_token", error="missing_id_token")
        metadata = await self.metadata()
        claims = await verify_id_token(
            session.id_token,
            jwks_url=metadata.jwks_uri,
            audience=self.client_key,
            issuer=metadata.issuer,
            access_token=session.access_token or None,
            now=self.now,
            client=self.http_client,
            timeout=self.timeout,
        )

        if metadata.userinfo_endpoint and session.access_token:
            info = await self.get_json(metadata.userinfo_endpoint, bearer=session.access_token)
            # userinfo for another subject must not be trusted
            if info.get(SUBJECT_CLAIM) == claims.get(SUBJECT_CLAIM):
                claims.update(info)
            else:
                self.logger.warning("userinfo subject mismatch", extra={"provider": self.name})

        user = self.new_user(session)
        user.raw_data = claims
        self.populate_user(user, claims)
        return user

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        user.user_id = first_claim(data, self.user_id_claims)
        user.name = first_claim(data, self.name_claims)
        user.nick_name = first_claim(data, self.nick_name_claims)
        user.email = first_claim(data, self.email_claims)
        user.first_name = first_claim(data, self.first_name_claims)
        user.last_name = first_claim(data, self.last_name_claims)
        user.avatar_url = first_claim(data, self.avatar_url_claims)
        user.location = first_claim(data, self.location_claims)


def first_claim(claims: Mapping[str, Any], names: Sequence[str]) -> str:
    for name in names:
        value = claims.get(name)
        if isinstance(value, Mapping):
            # the address claim is an object
            value = value.get("formatted") or value.get("locality")
        if value:
            return text(value)
    return ""
