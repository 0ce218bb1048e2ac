from __future__ import annotations

from pydantic import BaseModel


class UsernameUpdateRequest(BaseModel):
    # Length/charset rules live in username_service so every message is specific.
    username: str
