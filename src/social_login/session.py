from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from social_login.clients.oauth import Token
from social_login.exceptions import NO_AUTH_URL_MESSAGE, InvalidCallbackError, NoAuthURLError, TokenError

if TYPE_CHECKING:
    from social_login.providers.base import OAuth2Provider


class Session(BaseModel):
    """State carried between ``begin_auth`` and ``fetch_user``.

    Sessions serialize to JSON with ``marshal()`` so callers can keep them
    wherever they like; ``Provider.unmarshal_session`` reverses it.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    auth_url: str = ""

    def get_auth_url(self) -> str:
        if not self.auth_url:
            raise NoAuthURLError(NO_AUTH_URL_MESSAGE, error="no_auth_url")
        return self.auth_url

    def marshal(self) -> str:
        return self.model_dump_json(by_alias=True)

    def __str__(self) -> str:
        return self.marshal()


class OAuth2Session(Session):
    access_token: str = ""
    refresh_token: str = ""
    expires_at: Optional[datetime] = None
    id_token: str = ""
    code_verifier: str = ""

    async def authorize(self, provider: "OAuth2Provider", params: Mapping[str, str]) -> str:
        """Exchange the callback ``code`` and return the access token."""
        code = params.get("code")
        if not code:
            raise InvalidCallbackError("Missing authorization code", error="invalid_request")
        extra = {"code_verifier": self.code_verifier} if self.code_verifier else {}
        token = await provider.exchange(code, **extra)
        self.apply_token(token)
        return self.access_token

    def apply_token(self, token: Token) -> None:
        if not token.valid():
            raise TokenError("invalid token received from provider", error="invalid_token")
        self.access_token = token.access_token
        self.refresh_token = token.refresh_token
        self.expires_at = token.expires_at
        id_token = token.get("id_token")
        if isinstance(id_token, str):
            self.id_token = id_token
