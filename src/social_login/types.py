from __future__ import annotations

from typing import Dict, Optional, Protocol, runtime_checkable

from social_login.clients.oauth import Token
from social_login.session import Session
from social_login.user import User


@runtime_checkable
class Provider(Protocol):
    @property
    def name(self) -> str:
        ...

    def set_name(self, name: str) -> None:
        ...

    async def begin_auth(self, state: str) -> Session:
        ...

    def unmarshal_session(self, data: str) -> Session:
        ...

    async def fetch_user(self, session: Session) -> User:
        ...

    def debug(self, enabled: bool) -> None:
        ...

    def refresh_token_available(self) -> bool:
        ...

    async def refresh_token(self, refresh_token: str) -> Token:
        ...


class ProviderResolver(Protocol):
    def get(self, name: str) -> Optional[Provider]:
        ...

    def get_all(self) -> Dict[str, Provider]:
        ...
