from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional
from urllib.parse import parse_qsl, quote_plus, urlencode, urlparse, urlunparse

import httpx

from social_login.exceptions import TokenError

# Tokens are treated as expired slightly early to absorb clock skew
EXPIRY_DELTA = timedelta(seconds=10)

_TOKEN_FIELDS = ("access_token", "token_type", "refresh_token", "expires_in")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Token:
    access_token: str
    token_type: str = "Bearer"
    refresh_token: str = ""
    expires_at: datetime | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def valid(self, now: datetime | None = None) -> bool:
        if not self.access_token:
            return False
        if self.expires_at is None:
            return True
        return self.expires_at - EXPIRY_DELTA > (now or utcnow())

    def get(self, key: str, default: Any = None) -> Any:
        return self.extra.get(key, default)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any], now: datetime | None = None) -> "Token":
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise TokenError(
                "Token response did not include an access_token",
                error=_error_code(payload) or "invalid_token",
                description=_error_description(payload, ""),
                details=payload,
            )
        return cls(
            access_token=access_token,
            token_type=str(payload.get("token_type") or "Bearer"),
            refresh_token=str(payload.get("refresh_token") or ""),
            expires_at=expiry_from(payload.get("expires_in"), now),
            extra={k: v for k, v in payload.items() if k not in _TOKEN_FIELDS},
        )


def expiry_from(expires_in: Any, now: datetime | None = None) -> datetime | None:
    if expires_in in (None, ""):
        return None
    try:
        seconds = int(expires_in)
    except (TypeError, ValueError) as exc:
        raise TokenError("Unexpected expires_in in token response", error="invalid_token", description=str(exc)) from exc
    if seconds <= 0:
        return None
    return (now or utcnow()) + timedelta(seconds=seconds)


@dataclass
class OAuth2Config:
    client_id: str
    client_secret: str
    redirect_url: str
    auth_url: str
    token_url: str
    scopes: List[str] = field(default_factory=list)
    scope_separator: str = " "
    # "params" posts the credentials in the body, "header" uses HTTP Basic
    auth_style: str = "params"

    def auth_code_url(
        self,
        state: str,
        *,
        extra_params: Mapping[str, Any] | None = None,
        quote_via: Callable[..., str] = quote_plus,
    ) -> str:
        params: Dict[str, Any] = {
            "response_type": "code",
            "client_id": self.client_id,
        }
        if self.redirect_url:
            params["redirect_uri"] = self.redirect_url
        if self.scopes:
            params["scope"] = self.scope_separator.join(self.scopes)
        if state:
            params["state"] = state
        if extra_params:
            params.update(extra_params)
        return append_query(self.auth_url, dict(sorted(params.items())), quote_via=quote_via)


@asynccontextmanager
async def http_client(client: httpx.AsyncClient | None = None, timeout: float = 10.0) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the injected client untouched, or a short-lived one."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout) as fresh:
        yield fresh


async def exchange_code(
    config: OAuth2Config,
    code: str,
    *,
    code_verifier: str | None = None,
    extra_params: Mapping[str, Any] | None = None,
    client: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
    headers: Mapping[str, str] | None = None,
) -> Token:
    data: Dict[str, Any] = {
        "grant_type": "authorization_code",
        "code": code,
    }
    if config.redirect_url:
        data["redirect_uri"] = config.redirect_url
    if code_verifier:
        data["code_verifier"] = code_verifier
    if extra_params:
        data.update(extra_params)
    return await _token_request(config, data, client=client, timeout=timeout, headers=headers)


async def refresh(
    config: OAuth2Config,
    refresh_token: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
    headers: Mapping[str, str] | None = None,
) -> Token:
    if not refresh_token:
        raise TokenError("Missing refresh token", error="invalid_request")
    data = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
    }
    token = await _token_request(config, data, client=client, timeout=timeout, headers=headers)
    if not token.refresh_token:
        # Servers may omit the refresh token when it is not rotated
        token = replace(token, refresh_token=refresh_token)
    return token


async def _token_request(
    config: OAuth2Config,
    data: Dict[str, Any],
    *,
    client: httpx.AsyncClient | None,
    timeout: float,
    headers: Mapping[str, str] | None,
) -> Token:
    auth: tuple[str, str] | None = None
    if config.auth_style == "header":
        auth = (config.client_id, config.client_secret)
    else:
        data["client_id"] = config.client_id
        if config.client_secret:
            data["client_secret"] = config.client_secret

    request_headers = {"Accept": "application/json"}
    if headers:
        request_headers.update(headers)

    try:
        async with http_client(client, timeout) as http:
            resp = await http.post(config.token_url, data=data, headers=request_headers, auth=auth)
    except httpx.HTTPError as exc:
        raise TokenError(
            "Network error during token exchange",
            error="network_error",
            description=str(exc),
        ) from exc

    payload = parse_token_payload(resp)
    if resp.status_code >= 400:
        raise TokenError(
            "Token exchange failed",
            error=_error_code(payload),
            description=_error_description(payload, resp.text),
            status_code=resp.status_code,
            details=payload,
        )
    return Token.from_response(payload)


def parse_token_payload(resp: httpx.Response) -> Dict[str, Any]:
    content_type = resp.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type or "text/plain" in content_type:
        return dict(parse_qsl(resp.text))
    return safe_json(resp)


def append_query(url: str, params: Mapping[str, Any], quote_via: Callable[..., str] = quote_plus) -> str:
    parsed = urlparse(url)
    query_params = parse_qsl(parsed.query, keep_blank_values=True)
    query_params.extend((str(k), str(v)) for k, v in params.items() if v is not None)
    new_query = urlencode(query_params, doseq=True, quote_via=quote_via)
    return urlunparse(parsed._replace(query=new_query))


def safe_json(resp: httpx.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {"raw": resp.text}
    return data if isinstance(data, dict) else {"raw": data}


def _error_code(payload: Mapping[str, Any]) -> Optional[str]:
    for key in ("error", "error_code", "code"):
        value = payload.get(key)
        if isinstance(value, str):
            return value
    return None


def _error_description(payload: Mapping[str, Any], default: str) -> str:
    for key in ("error_description", "errorReason", "message", "error_message", "msg"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return default
