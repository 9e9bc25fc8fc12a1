from __future__ import annotations

import logging
from typing import Any, ClassVar, Dict, Mapping, Optional, Sequence, Type

import httpx
from pydantic import ValidationError

from social_login.clients.oauth import OAuth2Config, Token, exchange_code, http_client as open_client, refresh, safe_json
from social_login.exceptions import ProfileError, RefreshNotAvailableError, SocialLoginError
from social_login.logging_config import provider_logger
from social_login.security import code_challenge_s256, generate_code_verifier
from social_login.session import OAuth2Session, Session
from social_login.settings import get_settings
from social_login.user import User


class OAuth2Provider:
    """Shared plumbing for authorization-code providers.

    Subclasses set the endpoint class attributes and implement
    ``populate_user``; providers whose profile call differs override
    ``fetch_user`` instead.
    """

    provider_name: ClassVar[str] = ""
    auth_url: ClassVar[str] = ""
    token_url: ClassVar[str] = ""
    profile_url: ClassVar[str] = ""
    default_scopes: ClassVar[Sequence[str]] = ()
    scope_separator: ClassVar[str] = " "
    auth_style: ClassVar[str] = "params"
    refresh_available: ClassVar[bool] = True
    session_class: ClassVar[Type[OAuth2Session]] = OAuth2Session

    def __init__(
        self,
        client_key: str,
        secret: str,
        callback_url: str,
        *scopes: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self.client_key = client_key
        self.secret = secret
        self.callback_url = callback_url
        self.http_client = http_client
        self.timeout = timeout if timeout is not None else settings.http.timeout
        self.user_agent = settings.http.user_agent
        self._name = self.provider_name
        self.logger = provider_logger(self._name)
        self.use_pkce = False
        self.config = self.new_config(list(scopes))

    def new_config(self, scopes: list[str]) -> OAuth2Config:
        return OAuth2Config(
            client_id=self.client_key,
            client_secret=self.secret,
            redirect_url=self.callback_url,
            auth_url=self.auth_url,
            token_url=self.token_url,
            scopes=scopes or list(self.default_scopes),
            scope_separator=self.scope_separator,
            auth_style=self.auth_style,
        )

    @property
    def name(self) -> str:
        return self._name

    def set_name(self, name: str) -> None:
        """Rename the provider, e.g. to register one provider type twice."""
        self._name = name
        self.logger = provider_logger(name)

    def debug(self, enabled: bool) -> None:
        self.logger.setLevel(logging.DEBUG if enabled else logging.NOTSET)

    def has_scope(self, scope: str) -> bool:
        return scope in self.config.scopes

    def auth_code_params(self) -> Dict[str, Any]:
        return {}

    def enable_pkce(self, enabled: bool = True) -> None:
        """Send an S256 code challenge with the authorization request."""
        self.use_pkce = enabled

    async def begin_auth(self, state: str) -> Session:
        params = self.auth_code_params()
        verifier = ""
        if self.use_pkce:
            verifier = generate_code_verifier()
            params = dict(params, code_challenge=code_challenge_s256(verifier), code_challenge_method="S256")
        url = self.config.auth_code_url(state, extra_params=params)
        self.logger.debug("authorization url built", extra={"provider": self.name, "url": url})
        return self.session_class(auth_url=url, code_verifier=verifier)

    def unmarshal_session(self, data: str) -> Session:
        try:
            return self.session_class.model_validate_json(data)
        except ValidationError as exc:
            raise SocialLoginError("Could not decode session", error="invalid_session", description=str(exc)) from exc

    def request_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers

    async def exchange(self, code: str, code_verifier: Optional[str] = None, **extra_params: Any) -> Token:
        self.logger.debug("exchanging authorization code", extra={"provider": self.name, "url": self.config.token_url})
        return await exchange_code(
            self.config,
            code,
            code_verifier=code_verifier,
            extra_params=extra_params or None,
            client=self.http_client,
            timeout=self.timeout,
            headers=self.request_headers(),
        )

    def refresh_token_available(self) -> bool:
        return self.refresh_available

    async def refresh_token(self, refresh_token: str) -> Token:
        if not self.refresh_token_available():
            raise RefreshNotAvailableError(f"Refresh token is not provided by {self.name}", error="refresh_unavailable")
        return await refresh(
            self.config,
            refresh_token,
            client=self.http_client,
            timeout=self.timeout,
            headers=self.request_headers(),
        )

    def new_user(self, session: OAuth2Session) -> User:
        return User(
            provider=self.name,
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
            id_token=session.id_token,
        )

    def require_access_token(self, session: OAuth2Session, what: str = "user information") -> None:
        if not session.access_token:
            raise ProfileError(
                f"{self.name} cannot get {what} without accessToken",
                error="missing_access_token",
            )

    async def request(
        self,
        url: str,
        *,
        bearer: Optional[str] = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        what: str = "user information",
    ) -> httpx.Response:
        request_headers = self.request_headers()
        request_headers["Accept"] = "application/json"
        if bearer:
            request_headers["Authorization"] = f"Bearer {bearer}"
        if headers:
            request_headers.update(headers)

        try:
            async with open_client(self.http_client, self.timeout) as http:
                resp = await http.get(url, params=params, headers=request_headers)
        except httpx.HTTPError as exc:
            raise ProfileError(
                f"Network error while fetching {what} from {self.name}",
                error="network_error",
                description=str(exc),
            ) from exc

        self.logger.debug(
            "profile request",
            extra={"provider": self.name, "method": "GET", "url": url, "status_code": resp.status_code},
        )
        if resp.status_code != 200:
            raise ProfileError(
                f"{self.name} responded with a {resp.status_code} trying to fetch {what}",
                error="profile_request_failed",
                status_code=resp.status_code,
                details=safe_json(resp),
            )
        return resp

    async def get_json(
        self,
        url: str,
        *,
        bearer: Optional[str] = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        what: str = "user information",
    ) -> Dict[str, Any]:
        resp = await self.request(url, bearer=bearer, params=params, headers=headers, what=what)
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProfileError(f"Could not decode {what} from {self.name}", error="invalid_profile") from exc
        if not isinstance(data, dict):
            raise ProfileError(f"Unexpected {what} payload from {self.name}", error="invalid_profile")
        return data

    async def fetch_user(self, session: OAuth2Session) -> User:
        user = self.new_user(session)
        self.require_access_token(session)
        data = await self.get_json(self.profile_url, bearer=session.access_token)
        user.raw_data = data
        self.populate_user(user, data)
        return user

    def populate_user(self, user: User, data: Mapping[str, Any]) -> None:
        raise NotImplementedError


def text(value: Any) -> str:
    """Render an optional JSON scalar as a string ("" for null)."""
    if value is None:
        return ""
    return str(value)
