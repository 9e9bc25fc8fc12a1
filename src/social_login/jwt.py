from __future__ import annotations

import base64
import hashlib
import json
from typing import Any, Callable, Dict, Iterable, Optional

import httpx
from authlib.jose import JsonWebKey, JsonWebToken
from authlib.jose.errors import JoseError

from social_login.exceptions import IDTokenError

DEFAULT_ALGORITHMS = ("RS256", "ES256")

_DIGESTS = {
    "256": hashlib.sha256,
    "384": hashlib.sha384,
    "512": hashlib.sha512,
}


def b64url_decode(data: str) -> bytes:
    padding = '=' * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _segments(token: str) -> list[str]:
    parts = token.split(".")
    if len(parts) != 3:
        raise IDTokenError(f"Invalid JSON Web Token: expected 3 parts, got {len(parts)}", error="invalid_token")
    return parts


def unverified_header(token: str) -> Dict[str, Any]:
    try:
        return json.loads(b64url_decode(_segments(token)[0]))
    except ValueError as exc:
        raise IDTokenError("Could not decode JWT header", error="invalid_token", description=str(exc)) from exc


async def fetch_jwks(
    jwks_url: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
) -> Dict[str, Any]:
    if client is not None:
        resp = await client.get(jwks_url)
    else:
        async with httpx.AsyncClient(timeout=timeout) as http:
            resp = await http.get(jwks_url)
    resp.raise_for_status()
    return resp.json()


def pick_jwk(jwks: Dict[str, Any], kid: str | None, strict: bool = False) -> Dict[str, Any] | None:
    keys = jwks.get("keys", [])
    if kid:
        for k in keys:
            if k.get("kid") == kid:
                return k
    if strict:
        return None
    return keys[0] if keys else None


def access_token_hash(access_token: str, alg: str = "RS256") -> str:
    """Left-most half of the access token digest, base64url without padding.

    The digest follows the ID token's ``alg`` (SHA-256 for RS256/ES256).
    See OpenID Connect Core 1.0 section 3.2.2.9.
    """
    digest_fn = _DIGESTS.get(alg[-3:], hashlib.sha256)
    digest = digest_fn(access_token.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest[: len(digest) // 2]).rstrip(b"=").decode("ascii")


def bool_claim(value: Any) -> bool:
    """Read a claim that may arrive as a JSON boolean or as ``"true"``/``"false"``."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() == "true"
    raise IDTokenError("json field can be either boolean or string", error="invalid_claim")


async def verify_id_token(
    id_token: str,
    jwks_url: str,
    audience: str,
    issuer: Optional[str] = None,
    *,
    access_token: Optional[str] = None,
    nonce: Optional[str] = None,
    algorithms: Iterable[str] = DEFAULT_ALGORITHMS,
    require_kid: bool = False,
    require_at_hash: bool = False,
    now: Optional[Callable[[], float]] = None,
    leeway: int = 0,
    client: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
) -> Dict[str, Any]:
    allowed = list(algorithms)
    header = unverified_header(id_token)
    kid = header.get("kid")
    alg = header.get("alg")
    if alg not in allowed:
        raise IDTokenError(f"Unsupported signing algorithm: {alg}", error="invalid_token")

    try:
        jwks = await fetch_jwks(jwks_url, client=client, timeout=timeout)
    except httpx.HTTPError as exc:
        raise IDTokenError("Failed to fetch JWKS", error="jwks_unavailable", description=str(exc)) from exc

    jwk_dict = pick_jwk(jwks, kid, strict=require_kid)
    if not jwk_dict:
        raise IDTokenError("could not find matching public key", error="jwks_key_not_found")

    try:
        key = JsonWebKey.import_key(jwk_dict)
        claims = JsonWebToken(allowed).decode(id_token, key)
        claims.validate(now=int(now()) if now else None, leeway=leeway)
    except (JoseError, ValueError) as exc:
        raise IDTokenError("identity token verification failed", error="invalid_token", description=str(exc)) from exc

    if issuer and claims.get("iss") != issuer:
        raise IDTokenError("issuer is incorrect", error="invalid_issuer")
    aud = claims.get("aud")
    if isinstance(aud, list):
        if audience not in aud:
            raise IDTokenError("audience is incorrect", error="invalid_audience")
    elif aud != audience:
        raise IDTokenError("audience is incorrect", error="invalid_audience")

    # at_hash is optional in the code flow unless required; when present it must bind the access token
    at_hash = claims.get("at_hash")
    if require_at_hash and (not at_hash or access_token is None):
        raise IDTokenError("identity token invalid", error="invalid_at_hash")
    if access_token is not None and at_hash and at_hash != access_token_hash(access_token, alg):
        raise IDTokenError("identity token invalid", error="invalid_at_hash")

    if nonce and claims.get("nonce") != nonce:
        raise IDTokenError("Nonce mismatch detected", error="invalid_nonce")

    return dict(claims)
