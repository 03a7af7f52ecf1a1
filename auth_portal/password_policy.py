"""Password strength rules shared by sign-up and password reset."""

import re
from typing import Callable, List, Tuple

from pydantic import BaseModel

MIN_PASSWORD_LENGTH = 8


class PasswordCheck(BaseModel):
    key: str
    message: str
    passed: bool


_RULES: Tuple[Tuple[str, str, Callable[[str], bool]], ...] = (
    ("lowercase", "At least one lowercase letter", lambda p: re.search(r"[a-z]", p) is not None),
    ("length", f"Minimum of {MIN_PASSWORD_LENGTH} characters", lambda p: len(p) >= MIN_PASSWORD_LENGTH),
    ("uppercase", "At least one uppercase letter", lambda p: re.search(r"[A-Z]", p) is not None),
    ("number", "At least one number", lambda p: re.search(r"[0-9]", p) is not None),
)


def check_password(password: str) -> List[PasswordCheck]:
    """Evaluate every rule against `password`; returns a fresh list each call."""
    return [
        PasswordCheck(key=key, message=message, passed=test(password or ""))
        for key, message, test in _RULES
    ]


def password_problems(password: str) -> List[str]:
    """Messages of the rules `password` fails (empty when it is acceptable)."""
    return [check.message for check in check_password(password) if not check.passed]
