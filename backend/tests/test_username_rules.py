from __future__ import annotations

import pytest

from quizgate.core.errors import InputValidationError
from quizgate.services.username_service import validate_username


@pytest.mark.parametrize(
    "raw, message",
    [
        ("", "Please enter a valid username"),
        ("   ", "Please enter a valid username"),
        ("ab", "Username must be at least 3 characters long"),
        ("a" * 21, "Username must be 20 characters or less"),
        ("bad name", "Username can only contain letters, numbers, underscores, and dashes"),
        ("tom@home", "Username can only contain letters, numbers, underscores, and dashes"),
    ],
)
def test_invalid_usernames_get_specific_messages(raw, message):
    with pytest.raises(InputValidationError) as ei:
        validate_username(raw)
    assert ei.value.message == message


def test_valid_usernames_are_trimmed():
    assert validate_username("ab_12") == "ab_12"
    assert validate_username("  Jo-Ann_3 ") == "Jo-Ann_3"
    assert validate_username("a" * 20) == "a" * 20
