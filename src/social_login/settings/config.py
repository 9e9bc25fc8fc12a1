from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HttpSettings(BaseModel):
    timeout: float = 10.0
    user_agent: Optional[str] = None


class LoggingSettings(BaseModel):
    as_json: bool = False
    level: Literal["critical", "error", "warning", "info", "debug"] = "info"


class ProviderSettings(BaseModel):
    key: str = ""
    secret: str = ""
    callback_url: str = ""
    scopes: str = ""  # comma-separated
    # Provider specific constructor options, e.g. tenant, shop_name, user_agent
    options: Dict[str, Any] = Field(default_factory=dict)

    def scope_list(self) -> List[str]:
        return [part.strip() for part in self.scopes.split(",") if part.strip()]


class Settings(BaseSettings):
    """Library settings loaded from environment (and .env)."""

    http: HttpSettings = HttpSettings()
    logging: LoggingSettings = LoggingSettings()
    providers: Dict[str, ProviderSettings] = Field(default_factory=dict)

    model_config = SettingsConfigDict(
        env_prefix="SOCIAL_LOGIN_",
        env_nested_delimiter="__",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
