from __future__ import annotations

import re

from quizgate.core.errors import InputValidationError


USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 20
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def validate_username(raw: str | None) -> str:
    username = (raw or "").strip()
    if not username:
        raise InputValidationError("Please enter a valid username")
    if len(username) < USERNAME_MIN_LEN:
        raise InputValidationError(f"Username must be at least {USERNAME_MIN_LEN} characters long")
    if len(username) > USERNAME_MAX_LEN:
        raise InputValidationError(f"Username must be {USERNAME_MAX_LEN} characters or less")
    if not _USERNAME_RE.match(username):
        raise InputValidationError("Username can only contain letters, numbers, underscores, and dashes")
    return username
