from social_login.clients.oauth import OAuth2Config, Token, exchange_code, refresh
from social_login.clients.oauth1 import OAuth1Consumer, OAuth1Endpoints, OAuth1Token

__all__ = [
    "OAuth1Consumer",
    "OAuth1Endpoints",
    "OAuth1Token",
    "OAuth2Config",
    "Token",
    "exchange_code",
    "refresh",
]
