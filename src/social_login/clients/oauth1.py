from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.httpx_client import AsyncOAuth1Client
from pydantic import BaseModel, Field

from social_login.exceptions import TokenError


class OAuth1Token(BaseModel):
    token: str = ""
    secret: str = ""
    additional_data: Dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class OAuth1Endpoints:
    request_token_url: str
    authorize_url: str
    access_token_url: str


class OAuth1Consumer:
    """OAuth 1.0a consumer (HMAC-SHA1, header signatures) on top of Authlib."""

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        endpoints: OAuth1Endpoints,
        *,
        timeout: float = 10.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.endpoints = endpoints
        self._timeout = timeout
        self._headers = dict(headers or {})

    def _client(self, token: Optional[OAuth1Token] = None, **kwargs: Any) -> AsyncOAuth1Client:
        return AsyncOAuth1Client(
            self.consumer_key,
            self.consumer_secret,
            token=token.token if token else None,
            token_secret=token.secret if token else None,
            timeout=self._timeout,
            headers=self._headers,
            **kwargs,
        )

    async def request_token_and_url(self, callback_url: str | None) -> tuple[OAuth1Token, str]:
        async with self._client(redirect_uri=callback_url or None) as client:
            data = await _fetch(client.fetch_request_token(self.endpoints.request_token_url), "Request token")
            url = client.create_authorization_url(self.endpoints.authorize_url)
        return _token_from(data), url

    async def access_token(self, request_token: OAuth1Token, verifier: str) -> OAuth1Token:
        async with self._client(token=request_token) as client:
            data = await _fetch(
                client.fetch_access_token(self.endpoints.access_token_url, verifier=verifier),
                "Access token",
            )
        return _token_from(data)

    async def get(self, url: str, token: OAuth1Token, params: Mapping[str, str] | None = None) -> httpx.Response:
        async with self._client(token=token) as client:
            return await client.get(url, params=params)


async def _fetch(pending, what: str) -> Dict[str, Any]:
    try:
        return await pending
    except httpx.HTTPError as exc:
        raise TokenError(f"Network error during {what.lower()} exchange", error="network_error", description=str(exc)) from exc
    except (ValueError, AuthlibBaseError) as exc:
        raise TokenError(f"{what} exchange failed", error="token_denied", description=str(exc)) from exc


def _token_from(data: Mapping[str, Any]) -> OAuth1Token:
    token = data.get("oauth_token")
    if not token:
        raise TokenError("Token response did not include an oauth_token", error="invalid_token", details=data)
    return OAuth1Token(
        token=str(token),
        secret=str(data.get("oauth_token_secret", "")),
        additional_data={k: v for k, v in data.items() if k not in ("oauth_token", "oauth_token_secret")},
    )
