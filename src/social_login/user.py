from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class User:
    """Profile information common to most OAuth1 and OAuth2 providers.

    Everything the provider returned is kept untouched in ``raw_data``.
    """

    provider: str = ""
    raw_data: Dict[str, Any] = field(default_factory=dict)
    email: str = ""
    name: str = ""
    first_name: str = ""
    last_name: str = ""
    nick_name: str = ""
    description: str = ""
    user_id: str = ""
    avatar_url: str = ""
    location: str = ""
    access_token: str = ""
    access_token_secret: str = ""
    refresh_token: str = ""
    expires_at: Optional[datetime] = None
    id_token: str = ""
