import pytest
from authlib.jose import JsonWebKey, jwt

from social_login.provider import clear_providers
from social_login.providers.base import OAuth2Provider, text
from social_login.settings import get_settings

# fixed clock for ID token checks
NOW = 1_700_000_000


class FauxProvider(OAuth2Provider):
    provider_name = "faux"
    auth_url = "http://example.com/auth"
    token_url = "http://example.com/token"
    profile_url = "http://example.com/profile"

    def populate_user(self, user, data):
        user.user_id = text(data.get("id"))
        user.name = text(data.get("name"))
        user.email = text(data.get("email"))


class SigningKey:
    def __init__(self, kty, size_or_curve, alg, kid):
        self.private = JsonWebKey.generate_key(kty, size_or_curve, is_private=True)
        self.alg = alg
        self.kid = kid

    def jwk(self, kid=None):
        public = self.private.as_dict(is_private=False)
        public.update(kid=kid or self.kid, alg=self.alg, use="sig")
        return public

    def jwks(self):
        return {"keys": [self.jwk()]}

    def sign(self, claims, kid=None, header=None):
        values = {"alg": self.alg, "kid": kid or self.kid}
        values.update(header or {})
        return jwt.encode(values, claims, self.private).decode("ascii")


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    # settings are cached process-wide and the registry is module state
    for key in ("SOCIAL_LOGIN_HTTP__USER_AGENT", "SOCIAL_LOGIN_HTTP__TIMEOUT"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    clear_providers()
    yield
    clear_providers()
    get_settings.cache_clear()


@pytest.fixture
def faux():
    return FauxProvider("key", "secret", "http://localhost/callback")


@pytest.fixture(scope="session")
def rsa_key():
    return SigningKey("RSA", 2048, "RS256", "rsa-1")


@pytest.fixture(scope="session")
def ec_key():
    return SigningKey("EC", "P-256", "ES256", "ec-1")
