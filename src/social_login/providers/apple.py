"""Sign in with Apple.

Apple has no profile endpoint. The user's identity comes from the ID token
returned by the token endpoint, which is verified against Apple's published
JWKS. On the first login only, name and email are also posted back to the
redirect URL as the ``user`` form field.
"""
from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Tuple
from urllib.parse import quote

import httpx
from authlib.jose import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from social_login.exceptions import ConfigurationError, InvalidCallbackError, TokenError
from social_login.jwt import bool_claim, verify_id_token
from social_login.providers.base import OAuth2Provider
from social_login.session import OAuth2Session, Session
from social_login.user import User

AUTH_URL = "https://appleid.apple.com/auth/authorize"
TOKEN_URL = "https://appleid.apple.com/auth/token"
KEYS_URL = "https://appleid.apple.com/auth/keys"

# Apple is both the issuer of ID tokens and the audience of client secrets
APPLE_AUD_OR_ISS = "https://appleid.apple.com"

SCOPE_EMAIL = "email"
SCOPE_NAME = "name"


@dataclass(frozen=True)
class SecretParams:
    pkcs8_private_key: str
    team_id: str
    key_id: str
    client_id: str
    iat: int
    exp: int


def make_secret(params: SecretParams) -> str:
    """Sign the ES256 client secret Apple expects in place of a static secret."""
    pem = params.pkcs8_private_key.strip().encode("ascii")
    try:
        private_key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError) as exc:
        raise ConfigurationError("invalid private key", error="invalid_private_key", description=str(exc)) from exc
    if not isinstance(private_key, ec.EllipticCurvePrivateKey):
        raise ConfigurationError("invalid private key", error="invalid_private_key", description="expected an EC key")

    header = {"alg": "ES256", "kid": params.key_id}
    claims = {
        "iss": params.team_id,
        "iat": params.iat,
        "exp": params.exp,
        "aud": APPLE_AUD_OR_ISS,
        "sub": params.client_id,
    }
    return jwt.encode(header, claims, pem).decode("ascii")


class AppleSession(OAuth2Session):
    sub: str = ""
    email: str = ""
    is_private_email: bool = False
    email_verified: bool = False
    first_name: str = ""
    last_name: str = ""

    async def authorize(self, provider: "Provider", params: Mapping[str, str]) -> str:
        code = params.get("code")
        if not code:
            raise InvalidCallbackError("Missing authorization code", error="invalid_request")
        # client_id and client_secret travel in the request body
        token = await provider.exchange(code)
        if not token.valid():
            raise TokenError("invalid token received from provider", error="invalid_token")

        # nothing is stored on the session until the identity token checks out
        claims: Dict[str, Any] = {}
        id_token = token.get("id_token")
        if isinstance(id_token, str) and id_token:
            claims = await provider.verify_identity_token(id_token, token.access_token)
        first_name, last_name, form_email = parse_user_form(params.get("user") or "")

        self.apply_token(token)
        if claims:
            self.sub = str(claims.get("sub") or "")
            self.email = str(claims.get("email") or "")
            self.is_private_email = bool_claim(claims.get("is_private_email"))
            self.email_verified = bool_claim(claims.get("email_verified"))
        self.first_name = first_name
        self.last_name = last_name
        if not self.email:
            self.email = form_email
        return self.access_token


def parse_user_form(raw: str) -> Tuple[str, str, str]:
    """Read first name, last name and email from the ``user`` form field.

    The field is posted by the browser, so anything other than the expected
    object shape is rejected.
    """
    if not raw:
        return "", "", ""
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise InvalidCallbackError("Could not decode user form field", error="invalid_request") from exc
    if not isinstance(data, dict):
        raise InvalidCallbackError("Could not decode user form field", error="invalid_request")
    name = data.get("name") or {}
    if not isinstance(name, dict):
        raise InvalidCallbackError("Could not decode user form field", error="invalid_request")
    return (
        str(name.get("firstName") or ""),
        str(name.get("lastName") or ""),
        str(data.get("email") or ""),
    )


class Provider(OAuth2Provider):
    provider_name = "apple"
    auth_url = AUTH_URL
    token_url = TOKEN_URL
    keys_url = KEYS_URL
    session_class = AppleSession

    def __init__(
        self,
        client_id: str,
        secret: str,
        redirect_url: str,
        *scopes: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        now: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(client_id, secret, redirect_url, *scopes, http_client=http_client, timeout=timeout)
        self.now = now
        # Apple only returns name and email with a form_post response
        self.form_post_response_mode = any(s in (SCOPE_NAME, SCOPE_EMAIL) for s in self.config.scopes)

    def auth_code_params(self) -> Dict[str, Any]:
        if self.form_post_response_mode:
            return {"response_mode": "form_post"}
        return {}

    async def begin_auth(self, state: str) -> Session:
        # Apple rejects "+" for spaces in the scope list
        url = self.config.auth_code_url(state, extra_params=self.auth_code_params(), quote_via=quote)
        return self.session_class(auth_url=url)

    async def verify_identity_token(self, id_token: str, access_token: str) -> Dict[str, Any]:
        return await verify_id_token(
            id_token,
            jwks_url=self.keys_url,
            audience=self.client_key,
            issuer=APPLE_AUD_OR_ISS,
            access_token=access_token,
            require_kid=True,
            require_at_hash=True,
            now=self.now,
            client=self.http_client,
            timeout=self.timeout,
        )

    async def fetch_user(self, session: AppleSession) -> User:
        self.require_access_token(session)
        user = self.new_user(session)
        user.user_id = session.sub
        user.email = session.email
        user.first_name = session.first_name
        user.last_name = session.last_name
        user.name = f"{session.first_name} {session.last_name}".strip()
        user.raw_data = {
            "sub": session.sub,
            "email": session.email,
            "is_private_email": session.is_private_email,
            "email_verified": session.email_verified,
        }
        return user
